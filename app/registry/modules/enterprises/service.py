"""
Enterprise registry: tenant identity and ownership.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.registry import audit
from app.registry.constants import ENTERPRISE_SCOPE, MAX_ID_LEN, MAX_NAME_LEN, MAX_PRINCIPAL_LEN, AuditAction
from app.registry.errors import DuplicateEnterprise
from app.registry.utils import check_identifier, check_length, utcnow

from .models import Enterprise

logger = logging.getLogger(__name__)


def register(s: Session, *, enterprise_id: str, name: str, caller: str) -> Enterprise:
    """Register a new enterprise owned by `caller`. The owner never changes afterwards."""
    enterprise_id = check_identifier("enterprise_id", enterprise_id, MAX_ID_LEN)
    name = check_length("name", name, MAX_NAME_LEN)
    caller = check_identifier("caller", caller, MAX_PRINCIPAL_LEN)

    if lookup(s, enterprise_id) is not None:
        raise DuplicateEnterprise(f"Enterprise {enterprise_id!r} is already registered.")

    ent = Enterprise(
        id=enterprise_id,
        owner=caller,
        name=name,
        registered_at=utcnow(),
        active=True,
    )
    try:
        s.add(ent)
        s.flush()  # Force primary key check
    except IntegrityError:
        # Another process registered the same id between our lookup and insert.
        # The caller's transaction is rolled back as this propagates.
        raise DuplicateEnterprise(f"Enterprise {enterprise_id!r} is already registered.") from None

    audit.append(
        s,
        enterprise_id=ent.id,
        document_id=ENTERPRISE_SCOPE,
        user=caller,
        action=AuditAction.REGISTER,
        details={"name": ent.name},
    )
    logger.info("Registered enterprise %s (owner=%s)", ent.id, ent.owner)
    return ent


def lookup(s: Session, enterprise_id: str) -> Enterprise | None:
    return s.get(Enterprise, enterprise_id)
