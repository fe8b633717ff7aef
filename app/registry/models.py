from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.registry.utils import utcnow


class Base(DeclarativeBase):
    pass


class AuditEntry(Base):
    """
    Append-only audit trail entry.
    Keyed by (enterprise_id, document_id, sequence); document_id is "" for
    enterprise-scoped events.
    """

    __tablename__ = "audit_entries"
    __table_args__ = (
        UniqueConstraint("enterprise_id", "document_id", "sequence", name="uq_audit_entry_sequence"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    enterprise_id: Mapped[str] = mapped_column(ForeignKey("enterprises.id", ondelete="RESTRICT"), nullable=False)
    document_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    user: Mapped[str] = mapped_column("user_principal", String(128), nullable=False)
    action: Mapped[str] = mapped_column(String(16), nullable=False)  # AuditAction value
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)

    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)  # MAX_REQUEST_ID_LEN
    details_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # small JSON string


class AuditCounter(Base):
    """Next sequence number to hand out for one (enterprise, document) trail."""

    __tablename__ = "audit_counters"

    enterprise_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    document_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    next_sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.registry.modules.enterprises.models import Enterprise  # noqa: E402,F401
from app.registry.modules.documents.models import Document  # noqa: E402,F401
from app.registry.modules.access.models import Grant  # noqa: E402,F401
