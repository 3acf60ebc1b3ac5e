"""Encrypted-integer algebra used by the lottery core.

The core only ever holds :class:`EncryptedUint32` / :class:`EncryptedBool`
markers and calls these operations. Nothing above this interface can read a
plaintext.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from double_draw.fhe.types import EncryptedBool, EncryptedUint32

Encrypted = EncryptedUint32 | EncryptedBool


class CiphertextAlgebra(ABC):
    """Operation set of the homomorphic backend."""

    def begin_transaction(self) -> None:
        """Start a new ledger transaction.

        Results of earlier transactions stay usable only through standing
        grants. Backends without transaction-scoped state need not override it.
        """

    @abstractmethod
    def add(self, a: EncryptedUint32, b: EncryptedUint32) -> EncryptedUint32:
        """Sum modulo 2**32."""

    @abstractmethod
    def remainder(self, a: EncryptedUint32, modulus: int) -> EncryptedUint32:
        """Remainder by a plaintext modulus."""

    @abstractmethod
    def equals(self, a: EncryptedUint32, b: EncryptedUint32) -> EncryptedBool: ...

    @abstractmethod
    def select(
        self, cond: EncryptedBool, if_true: EncryptedUint32, if_false: EncryptedUint32
    ) -> EncryptedUint32:
        """Encrypted ternary; both branches are always evaluated."""

    @abstractmethod
    def constant(self, value: int) -> EncryptedUint32:
        """Trivially encrypt a public value."""

    @abstractmethod
    def random_bounded(self) -> EncryptedUint32:
        """Uniform random value over the full 32-bit width."""

    @abstractmethod
    def grant_self_access(self, ct: Encrypted) -> None:
        """Give the contract a standing capability on ``ct``."""

    @abstractmethod
    def grant_access(self, ct: Encrypted, identity: str) -> None:
        """Give ``identity`` a standing decrypt capability on ``ct``."""

    @abstractmethod
    def import_external(self, handle: str, proof: str, caller: str) -> EncryptedUint32:
        """Accept a client-encrypted value after checking its input proof.

        Raises:
            ProofInvalidError: the proof does not cover ``handle`` for this
                contract and caller.
        """
