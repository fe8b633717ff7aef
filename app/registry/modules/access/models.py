from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.registry.models import Base
from app.registry.utils import utcnow


class Grant(Base):
    __tablename__ = "document_grants"
    __table_args__ = (
        UniqueConstraint("enterprise_id", "document_id", "user_principal", name="uq_grant_document_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    enterprise_id: Mapped[str] = mapped_column(ForeignKey("enterprises.id", ondelete="RESTRICT"), nullable=False)
    document_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user: Mapped[str] = mapped_column("user_principal", String(128), nullable=False)

    permission_level: Mapped[int] = mapped_column(Integer, nullable=False)  # PermissionLevel value

    granted_by: Mapped[str] = mapped_column(String(128), nullable=False)
    granted_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
