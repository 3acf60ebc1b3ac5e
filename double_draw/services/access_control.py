"""Decrypt-capability grants for stored ciphertexts.

Grants are flat: the lottery contract and the record's owner, nobody else.
"""

from __future__ import annotations

from double_draw.fhe.algebra import CiphertextAlgebra, Encrypted


def grant_to_contract_and_player(fhe: CiphertextAlgebra, player: str, *ciphertexts: Encrypted) -> None:
    """Attach the two standing grants to every ciphertext about to be stored."""

    for ct in ciphertexts:
        fhe.grant_self_access(ct)
        fhe.grant_access(ct, player)
