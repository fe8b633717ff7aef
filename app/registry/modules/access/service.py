"""
Access controller: explicit per-document grants plus auditable read access.
"""
from __future__ import annotations

import logging
import re

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.registry import audit, rbac
from app.registry.constants import GRANTABLE_LEVELS, MAX_PRINCIPAL_LEN, AuditAction, PermissionLevel
from app.registry.errors import InvalidPermission
from app.registry.modules.documents.service import get_or_raise
from app.registry.utils import check_identifier, utcnow

from .models import Grant

logger = logging.getLogger(__name__)

_LEVEL_RE = re.compile(r"-?[0-9]+")


def parse_level(raw: object) -> int:
    """Accept 0-4 or a level name ("read", "MANAGE")."""
    if isinstance(raw, bool):
        raise InvalidPermission(f"Unsupported permission level: {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if _LEVEL_RE.fullmatch(text):
            return int(text)
        try:
            return int(PermissionLevel[text.upper()])
        except KeyError:
            pass
    raise InvalidPermission(f"Unsupported permission level: {raw!r}")


def get_grant(s: Session, enterprise_id: str, document_id: str, user: str) -> Grant | None:
    return s.execute(
        select(Grant).where(
            Grant.enterprise_id == enterprise_id,
            Grant.document_id == document_id,
            Grant.user == user,
        )
    ).scalar_one_or_none()


def list_grants(s: Session, enterprise_id: str, document_id: str) -> list[Grant]:
    return list(
        s.execute(
            select(Grant)
            .where(Grant.enterprise_id == enterprise_id, Grant.document_id == document_id)
            .order_by(Grant.user.asc())
        ).scalars()
    )


def grant(
    s: Session,
    *,
    enterprise_id: str,
    document_id: str,
    grantor: str,
    grantee: str,
    level: int,
) -> Grant:
    """Upsert `grantee`'s grant. Any previous level for that user is overwritten."""
    get_or_raise(s, enterprise_id, document_id)
    rbac.require(s, enterprise_id, document_id, grantor, PermissionLevel.MANAGE)
    if level not in GRANTABLE_LEVELS:
        raise InvalidPermission(
            f"Permission level must be between {int(PermissionLevel.READ)} and {int(PermissionLevel.FULL)}; got {level!r}."
        )
    grantee = check_identifier("grantee", grantee, MAX_PRINCIPAL_LEN)
    new_level = PermissionLevel(level)

    row = get_grant(s, enterprise_id, document_id, grantee)
    previous = PermissionLevel(row.permission_level).name if row else None
    now = utcnow()
    if row is None:
        row = Grant(enterprise_id=enterprise_id, document_id=document_id, user=grantee)
        s.add(row)
    row.permission_level = int(new_level)
    row.granted_by = grantor
    row.granted_at = now
    s.flush()

    audit.append(
        s,
        enterprise_id=enterprise_id,
        document_id=document_id,
        user=grantor,
        action=AuditAction.SHARE,
        details={"op": "grant", "grantee": grantee, "level": new_level.name, "previous": previous},
    )
    logger.info(
        "Granted %s on %s/%s to %s (grantor=%s)", new_level.name, enterprise_id, document_id, grantee, grantor
    )
    return row


def revoke(s: Session, *, enterprise_id: str, document_id: str, grantor: str, grantee: str) -> bool:
    """
    Remove `grantee`'s stored grant. Idempotent: a missing grant still succeeds
    and is still audited. Returns whether a row was removed.

    The enterprise owner keeps FULL regardless; the resolver never reads a row for them.
    """
    get_or_raise(s, enterprise_id, document_id)
    rbac.require(s, enterprise_id, document_id, grantor, PermissionLevel.MANAGE)

    row = get_grant(s, enterprise_id, document_id, grantee)
    previous = PermissionLevel(row.permission_level).name if row else None
    if row is not None:
        s.delete(row)
        s.flush()

    audit.append(
        s,
        enterprise_id=enterprise_id,
        document_id=document_id,
        user=grantor,
        action=AuditAction.SHARE,
        details={"op": "revoke", "grantee": grantee, "previous": previous},
    )
    logger.info("Revoked grant on %s/%s from %s (grantor=%s, removed=%s)", enterprise_id, document_id, grantee, grantor, row is not None)
    return row is not None


def access(s: Session, *, enterprise_id: str, document_id: str, caller: str):
    """Record a read access. Nothing else changes."""
    doc = get_or_raise(s, enterprise_id, document_id)
    rbac.require(s, enterprise_id, document_id, caller, PermissionLevel.READ)
    return audit.append(
        s,
        enterprise_id=enterprise_id,
        document_id=document_id,
        user=caller,
        action=AuditAction.ACCESS,
        details={"version": doc.version},
    )
