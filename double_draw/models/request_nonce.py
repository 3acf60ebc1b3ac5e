"""Nonces of accepted signed requests (replay guard)."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from double_draw.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RequestNonce(Base):
    __tablename__ = "request_nonces"

    caller: Mapped[str] = mapped_column(String(42), primary_key=True)
    nonce: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
