"""Per-player lottery record.

Ciphertext columns hold 32-byte handles (``0x`` + 64 hex chars); the values
behind them live in the ciphertext backend only.
"""

from __future__ import annotations

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from double_draw.models.base import Base

HANDLE_LENGTH = 66


class PlayerRecord(Base):
    """One row per player address, created on first ticket purchase."""

    __tablename__ = "player_records"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)

    first_guess: Mapped[str | None] = mapped_column(String(HANDLE_LENGTH), nullable=True)
    second_guess: Mapped[str | None] = mapped_column(String(HANDLE_LENGTH), nullable=True)
    encrypted_points: Mapped[str | None] = mapped_column(String(HANDLE_LENGTH), nullable=True)
    last_winning_first: Mapped[str | None] = mapped_column(String(HANDLE_LENGTH), nullable=True)
    last_winning_second: Mapped[str | None] = mapped_column(String(HANDLE_LENGTH), nullable=True)

    has_ticket: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_result: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_points: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
