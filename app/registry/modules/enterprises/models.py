from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from app.registry.models import Base
from app.registry.utils import utcnow


class Enterprise(Base):
    __tablename__ = "enterprises"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    owner: Mapped[str] = mapped_column(String(128), nullable=False)  # immutable after registration
    name: Mapped[str] = mapped_column(String(256), nullable=False)

    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    # Soft deactivation only; enterprises are never removed.
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
