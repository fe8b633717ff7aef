from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, LargeBinary, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.registry.models import Base
from app.registry.utils import utcnow


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("enterprise_id", "document_id", name="uq_document_enterprise_document"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    enterprise_id: Mapped[str] = mapped_column(ForeignKey("enterprises.id", ondelete="RESTRICT"), nullable=False)
    document_id: Mapped[str] = mapped_column(String(64), nullable=False)

    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    content_hash: Mapped[bytes] = mapped_column(LargeBinary(32), nullable=False)
    document_type: Mapped[str] = mapped_column(String(64), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # Soft-delete flag; the id stays reserved either way.
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
