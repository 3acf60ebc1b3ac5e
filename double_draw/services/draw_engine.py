"""Encrypted winning-digit generation."""

from __future__ import annotations

from double_draw.fhe.algebra import CiphertextAlgebra
from double_draw.fhe.types import EncryptedUint32

DIGIT_MIN = 1
DIGIT_MAX = 9
DIGIT_RANGE = DIGIT_MAX - DIGIT_MIN + 1


class DrawEngine:
    """Generate winning digits in [1, 9] without revealing them.

    ``random_bounded`` is uniform over 2**32 values and 2**32 % 9 == 4, so
    digits 1..4 are each favoured by one outcome in 2**32.
    """

    def __init__(self, fhe: CiphertextAlgebra) -> None:
        self._fhe = fhe

    def generate_bounded_digit(self) -> EncryptedUint32:
        offset = self._fhe.remainder(self._fhe.random_bounded(), DIGIT_RANGE)
        return self._fhe.add(offset, self._fhe.constant(DIGIT_MIN))

    def draw_winning_pair(self) -> tuple[EncryptedUint32, EncryptedUint32]:
        return self.generate_bounded_digit(), self.generate_bounded_digit()
