"""Client-side input encryption and input-proof format.

Stands in for the off-chain encryption service: it registers ciphertexts with
the backend and signs a proof binding the handles to one contract and one user.

Proof layout (hex, ``0x``-prefixed)::

    count (1 byte) || handle_1 .. handle_n (32 bytes each) || Ed25519 signature (64 bytes)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from double_draw.fhe.stores import CiphertextStore
from double_draw.fhe.types import EUINT32, UINT32_MAX, new_handle

_PROOF_DOMAIN = b"double-draw/input-proof/v1"
_HANDLE_BYTES = 32
_SIGNATURE_BYTES = 64
MAX_INPUTS = 255


class MalformedProof(ValueError):
    pass


@dataclass(frozen=True)
class EncryptedInput:
    handles: list[str]
    input_proof: str


def proof_message(contract: str, user: str, handles: Sequence[str]) -> bytes:
    parts = [_PROOF_DOMAIN, contract.lower().encode(), user.lower().encode()]
    parts.extend(h.lower().encode() for h in handles)
    return b"|".join(parts)


def encode_proof(handles: Sequence[str], signature: bytes) -> str:
    body = bytes([len(handles)])
    for h in handles:
        body += bytes.fromhex(h.removeprefix("0x"))
    return "0x" + (body + signature).hex()


def decode_proof(proof: str) -> tuple[list[str], bytes]:
    """Split a proof into its handles and signature."""

    try:
        raw = bytes.fromhex(str(proof).removeprefix("0x"))
    except ValueError as exc:
        raise MalformedProof("proof is not hex") from exc
    if not raw:
        raise MalformedProof("empty proof")

    count = raw[0]
    expected = 1 + count * _HANDLE_BYTES + _SIGNATURE_BYTES
    if count == 0 or len(raw) != expected:
        raise MalformedProof("unexpected proof length")

    handles = []
    for i in range(count):
        start = 1 + i * _HANDLE_BYTES
        handles.append("0x" + raw[start : start + _HANDLE_BYTES].hex())
    return handles, raw[-_SIGNATURE_BYTES:]


def verify_proof(verify_key: VerifyKey, proof: str, contract: str, user: str) -> list[str]:
    """Return the handles a proof vouches for, or raise MalformedProof."""

    handles, signature = decode_proof(proof)
    try:
        verify_key.verify(proof_message(contract, user, handles), signature)
    except BadSignatureError as exc:
        raise MalformedProof("bad proof signature") from exc
    return handles


class InputEncryptor:
    """Encrypt plaintext inputs for a contract on behalf of a user."""

    def __init__(self, store: CiphertextStore, signing_key: SigningKey) -> None:
        self._store = store
        self._signing_key = signing_key

    def encrypt(self, contract: str, user: str, values: Sequence[int]) -> EncryptedInput:
        if not values:
            raise ValueError("at least one value is required")
        if len(values) > MAX_INPUTS:
            raise ValueError(f"at most {MAX_INPUTS} values per input")

        handles: list[str] = []
        for v in values:
            value = int(v)
            if value < 0 or value > UINT32_MAX:
                raise ValueError(f"{value} does not fit in euint32")
            handle = new_handle()
            self._store.put(handle, EUINT32, value)
            handles.append(handle)

        signed = self._signing_key.sign(proof_message(contract, user, handles))
        return EncryptedInput(handles=handles, input_proof=encode_proof(handles, signed.signature))
