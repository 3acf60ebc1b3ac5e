"""Observable lottery events (identity only, never ciphertext values)."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from double_draw.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LotteryEvent(Base):
    __tablename__ = "lottery_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(32), nullable=False)  # TicketPurchased | DrawCompleted
    player: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    tx_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
