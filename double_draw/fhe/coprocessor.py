"""Mock homomorphic coprocessor.

Evaluates the encrypted operations on plaintext kept in a
:class:`CiphertextStore`, with the same access rules a real fhEVM coprocessor
applies: results of this transaction are usable by the contract, anything
older needs a standing grant.
"""

from __future__ import annotations

import logging
import random

from nacl.signing import VerifyKey

from double_draw.errors import CiphertextAccessDenied, ProofInvalidError
from double_draw.fhe.algebra import CiphertextAlgebra, Encrypted
from double_draw.fhe.inputs import MalformedProof, verify_proof
from double_draw.fhe.stores import CiphertextStore
from double_draw.fhe.types import EBOOL, EUINT32, UINT32_MAX, EncryptedBool, EncryptedUint32, new_handle

logger = logging.getLogger(__name__)

_MODULUS = 2**32


class MockCoprocessor(CiphertextAlgebra):
    """Plaintext-backed coprocessor bound to one ledger transaction at a time.

    Handles it emits or imports are usable by the contract without a grant
    until the next :meth:`begin_transaction`; build one per request, or call
    that method between transactions when reusing an instance.
    """

    def __init__(
        self,
        store: CiphertextStore,
        contract_address: str,
        input_verifier: VerifyKey,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._contract = contract_address.lower()
        self._input_verifier = input_verifier
        self._rng = rng or random.SystemRandom()
        self._transient: set[str] = set()

    @property
    def contract_address(self) -> str:
        return self._contract

    def begin_transaction(self) -> None:
        self._transient.clear()

    def _require_usable(self, ct: Encrypted) -> int:
        stored = self._store.load(ct.handle)
        if stored is None:
            raise CiphertextAccessDenied(message=f"Unknown ciphertext {ct.handle}")
        if stored.fhe_type != ct.fhe_type:
            raise CiphertextAccessDenied(message=f"Ciphertext {ct.handle} is not {ct.fhe_type}")
        if ct.handle not in self._transient and not self._store.is_allowed(ct.handle, self._contract):
            raise CiphertextAccessDenied(message=f"Contract has no access to {ct.handle}")
        return stored.value

    def _emit_uint(self, value: int) -> EncryptedUint32:
        handle = new_handle()
        self._store.put(handle, EUINT32, int(value) % _MODULUS)
        self._transient.add(handle)
        return EncryptedUint32(handle)

    def _emit_bool(self, value: bool) -> EncryptedBool:
        handle = new_handle()
        self._store.put(handle, EBOOL, 1 if value else 0)
        self._transient.add(handle)
        return EncryptedBool(handle)

    def add(self, a: EncryptedUint32, b: EncryptedUint32) -> EncryptedUint32:
        return self._emit_uint(self._require_usable(a) + self._require_usable(b))

    def remainder(self, a: EncryptedUint32, modulus: int) -> EncryptedUint32:
        if int(modulus) <= 0:
            raise ValueError("modulus must be positive")
        return self._emit_uint(self._require_usable(a) % int(modulus))

    def equals(self, a: EncryptedUint32, b: EncryptedUint32) -> EncryptedBool:
        return self._emit_bool(self._require_usable(a) == self._require_usable(b))

    def select(
        self, cond: EncryptedBool, if_true: EncryptedUint32, if_false: EncryptedUint32
    ) -> EncryptedUint32:
        flag = self._require_usable(cond)
        on_true = self._require_usable(if_true)
        on_false = self._require_usable(if_false)
        return self._emit_uint(on_true if flag else on_false)

    def constant(self, value: int) -> EncryptedUint32:
        if int(value) < 0 or int(value) > UINT32_MAX:
            raise ValueError(f"{value} does not fit in euint32")
        return self._emit_uint(int(value))

    def random_bounded(self) -> EncryptedUint32:
        return self._emit_uint(self._rng.getrandbits(32))

    def grant_self_access(self, ct: Encrypted) -> None:
        self.grant_access(ct, self._contract)

    def grant_access(self, ct: Encrypted, identity: str) -> None:
        self._require_usable(ct)
        self._store.allow(ct.handle, identity.lower())

    def import_external(self, handle: str, proof: str, caller: str) -> EncryptedUint32:
        handle = str(handle).lower()
        try:
            covered = verify_proof(self._input_verifier, proof, self._contract, caller)
        except MalformedProof as exc:
            logger.info("Rejected input proof from %s: %s", caller, exc)
            raise ProofInvalidError() from exc

        if handle not in covered:
            raise ProofInvalidError(details={"handle": handle})

        stored = self._store.load(handle)
        if stored is None or stored.fhe_type != EUINT32:
            raise ProofInvalidError(details={"handle": handle})

        self._transient.add(handle)
        return EncryptedUint32(handle)

    def grantees(self, ct: Encrypted) -> set[str]:
        """Identities holding a standing capability on ``ct``."""

        return self._store.grantees(ct.handle)
