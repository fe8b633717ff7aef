from __future__ import annotations

import json
import logging
from typing import Any

from flask import g, has_request_context
from sqlalchemy import event, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from app.registry.constants import AuditAction
from app.registry.models import AuditCounter, AuditEntry
from app.registry.utils import utcnow

logger = logging.getLogger(__name__)


class AppendOnlyViolation(RuntimeError):
    pass


@event.listens_for(AuditEntry, "before_update")
def _refuse_update(mapper, connection, target):  # type: ignore[no-untyped-def]
    raise AppendOnlyViolation("Audit entries are append-only and cannot be modified.")


@event.listens_for(AuditEntry, "before_delete")
def _refuse_delete(mapper, connection, target):  # type: ignore[no-untyped-def]
    raise AppendOnlyViolation("Audit entries are append-only and cannot be deleted.")


_UPSERT_DIALECTS = {"postgresql": postgresql_insert, "sqlite": sqlite_insert}


def _ensure_counter(s: Session, enterprise_id: str, document_id: str) -> None:
    """
    Create the counter row if it is missing. A row that does not exist yet
    cannot be locked, so racing writers in other processes must not both
    insert it: INSERT ... ON CONFLICT DO NOTHING lets the loser fall through
    to the locked read instead of failing on the primary key.
    """
    insert = _UPSERT_DIALECTS.get(s.get_bind().dialect.name)
    values = {"enterprise_id": enterprise_id, "document_id": document_id, "next_sequence": 1}
    if insert is not None:
        s.execute(insert(AuditCounter).values(**values).on_conflict_do_nothing())
        return
    if s.get(AuditCounter, (enterprise_id, document_id)) is None:
        s.add(AuditCounter(**values))
        s.flush()


def next_sequence(s: Session, enterprise_id: str, document_id: str) -> int:
    """
    Hand out the next sequence number for one trail.

    The counter row is locked for the rest of the transaction (FOR UPDATE on
    backends that support it); within one process the caller already holds the
    write lock, so read-increment-store never interleaves.
    """
    _ensure_counter(s, enterprise_id, document_id)
    counter = s.execute(
        select(AuditCounter)
        .where(AuditCounter.enterprise_id == enterprise_id, AuditCounter.document_id == document_id)
        .with_for_update()
    ).scalar_one()
    seq = counter.next_sequence
    counter.next_sequence = seq + 1
    s.flush()
    return seq


def append(
    s: Session,
    *,
    enterprise_id: str,
    document_id: str,
    user: str,
    action: AuditAction,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEntry:
    """
    Append-only audit helper. Authorization is the caller's job; this never refuses.
    """
    rid = request_id
    if rid is None and has_request_context():
        rid = getattr(g, "request_id", None)
    entry = AuditEntry(
        enterprise_id=enterprise_id,
        document_id=document_id,
        sequence=next_sequence(s, enterprise_id, document_id),
        user=user,
        action=AuditAction(action).value,
        timestamp=utcnow(),
        request_id=rid,
        details_json=json.dumps(details, sort_keys=True) if details else None,
    )
    s.add(entry)
    s.flush()
    logger.debug(
        "audit append enterprise=%s document=%r seq=%s action=%s user=%s",
        enterprise_id,
        document_id,
        entry.sequence,
        entry.action,
        user,
    )
    return entry


def get_entry(s: Session, enterprise_id: str, document_id: str, sequence: int) -> AuditEntry | None:
    return s.execute(
        select(AuditEntry).where(
            AuditEntry.enterprise_id == enterprise_id,
            AuditEntry.document_id == document_id,
            AuditEntry.sequence == sequence,
        )
    ).scalar_one_or_none()


def list_entries(
    s: Session,
    enterprise_id: str,
    document_id: str,
    *,
    after: int = 0,
    limit: int = 100,
) -> list[AuditEntry]:
    """Entries with sequence > `after`, oldest first."""
    return list(
        s.execute(
            select(AuditEntry)
            .where(
                AuditEntry.enterprise_id == enterprise_id,
                AuditEntry.document_id == document_id,
                AuditEntry.sequence > after,
            )
            .order_by(AuditEntry.sequence.asc())
            .limit(limit)
        ).scalars()
    )


def entry_details(entry: AuditEntry) -> dict[str, Any]:
    return json.loads(entry.details_json) if entry.details_json else {}


def entry_to_dict(entry: AuditEntry) -> dict[str, Any]:
    return {
        "enterprise_id": entry.enterprise_id,
        "document_id": entry.document_id,
        "sequence": entry.sequence,
        "user": entry.user,
        "action": entry.action,
        "timestamp": entry.timestamp.isoformat(),
        "request_id": entry.request_id,
        "details": entry_details(entry),
    }
