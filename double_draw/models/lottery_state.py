"""Global counters and held balance (single row)."""

from __future__ import annotations

from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from double_draw.models.base import Base
from double_draw.models.types import WeiAmount

STATE_ROW_ID = 1


class LotteryState(Base):
    __tablename__ = "lottery_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner: Mapped[str] = mapped_column(String(42), nullable=False)

    total_tickets: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_draws: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    balance: Mapped[int] = mapped_column(WeiAmount, nullable=False, default=0)
