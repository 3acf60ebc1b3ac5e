"""Storage owned by the mock ciphertext backend.

Nothing outside ``double_draw.fhe`` reads these tables.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from double_draw.models.base import Base


class Ciphertext(Base):
    """Plaintext behind a handle, as kept by the coprocessor."""

    __tablename__ = "ciphertexts"

    handle: Mapped[str] = mapped_column(String(66), primary_key=True)
    fhe_type: Mapped[str] = mapped_column(String(16), nullable=False)  # euint32 | ebool
    value: Mapped[int] = mapped_column(BigInteger, nullable=False)


class CiphertextGrant(Base):
    """Standing decrypt/use capability of one identity on one handle."""

    __tablename__ = "ciphertext_grants"

    handle: Mapped[str] = mapped_column(
        String(66), ForeignKey("ciphertexts.handle", ondelete="CASCADE"), primary_key=True
    )
    identity: Mapped[str] = mapped_column(String(42), primary_key=True)
