"""Tiered reward computed over encrypted operands.

Every decision goes through an encrypted ``select``; no Python conditional
ever depends on a guess or a winning digit.
"""

from __future__ import annotations

from double_draw.fhe.algebra import CiphertextAlgebra
from double_draw.fhe.types import EncryptedUint32

JACKPOT_REWARD = 1000
PARTIAL_REWARD = 100
NO_REWARD = 0

REWARD_TIERS = (NO_REWARD, PARTIAL_REWARD, JACKPOT_REWARD)


def compute_reward(
    fhe: CiphertextAlgebra,
    guess_first: EncryptedUint32,
    guess_second: EncryptedUint32,
    win_first: EncryptedUint32,
    win_second: EncryptedUint32,
) -> EncryptedUint32:
    """Return an encrypted 1000 (both match), 100 (one matches) or 0."""

    zero = fhe.constant(0)
    one = fhe.constant(1)

    match_first = fhe.equals(guess_first, win_first)
    match_second = fhe.equals(guess_second, win_second)

    match_count = fhe.add(
        fhe.select(match_first, one, zero),
        fhe.select(match_second, one, zero),
    )

    both = fhe.equals(match_count, fhe.constant(2))
    single = fhe.equals(match_count, one)

    partial_or_nothing = fhe.select(single, fhe.constant(PARTIAL_REWARD), fhe.constant(NO_REWARD))
    return fhe.select(both, fhe.constant(JACKPOT_REWARD), partial_or_nothing)
