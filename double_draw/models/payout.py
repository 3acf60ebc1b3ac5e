"""Funds moved out of the lottery by the owner."""

from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from double_draw.models.base import Base
from double_draw.models.types import WeiAmount


class Payout(Base):
    __tablename__ = "payouts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipient: Mapped[str] = mapped_column(String(42), nullable=False)
    amount: Mapped[int] = mapped_column(WeiAmount, nullable=False)
    tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
