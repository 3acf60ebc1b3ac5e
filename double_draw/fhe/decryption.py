"""User decryption (mock relayer + client helpers).

A user asks for the plaintext of handles they were granted. The request is
authorised by an Ed25519 signature over a one-time X25519 public key, the
contract list and a validity window. Plaintexts come back sealed to that
public key, so only the holder of the one-time private key can read them.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from nacl.encoding import HexEncoder
from nacl.exceptions import BadSignatureError, CryptoError
from nacl.public import PrivateKey, PublicKey, SealedBox
from nacl.signing import SigningKey, VerifyKey

from double_draw.errors import DecryptionRejectedError
from double_draw.fhe.stores import CiphertextStore
from double_draw.utils.addresses import address_from_verify_key

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86_400


@dataclass(frozen=True)
class HandleContractPair:
    handle: str
    contract_address: str


@dataclass(frozen=True)
class DecryptRequest:
    pairs: Sequence[HandleContractPair]
    public_key: str
    signature: str
    contract_addresses: Sequence[str]
    user_address: str
    user_verify_key: str
    start_timestamp: int
    duration_days: int


def authorization_message(
    public_key: str, contract_addresses: Iterable[str], start_timestamp: int, duration_days: int
) -> bytes:
    """Canonical bytes the user signs to authorise a decryption window."""

    payload = {
        "publicKey": public_key.lower().removeprefix("0x"),
        "contractAddresses": sorted(c.lower() for c in contract_addresses),
        "startTimestamp": int(start_timestamp),
        "durationDays": int(duration_days),
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()


# Client side


def generate_keypair() -> PrivateKey:
    return PrivateKey.generate()


def sign_decrypt_request(
    signing_key: SigningKey,
    keypair: PrivateKey,
    pairs: Sequence[HandleContractPair],
    contract_addresses: Sequence[str],
    start_timestamp: int,
    duration_days: int,
) -> DecryptRequest:
    public_key = keypair.public_key.encode(HexEncoder).decode()
    message = authorization_message(public_key, contract_addresses, start_timestamp, duration_days)
    signature = signing_key.sign(message).signature.hex()
    return DecryptRequest(
        pairs=list(pairs),
        public_key=public_key,
        signature=signature,
        contract_addresses=list(contract_addresses),
        user_address=address_from_verify_key(signing_key.verify_key),
        user_verify_key=signing_key.verify_key.encode(HexEncoder).decode(),
        start_timestamp=int(start_timestamp),
        duration_days=int(duration_days),
    )


def open_decrypted(keypair: PrivateKey, sealed: dict[str, str]) -> dict[str, int]:
    """Unseal relayer output into ``{handle: plaintext}``."""

    box = SealedBox(keypair)
    return {handle: int(box.decrypt(bytes.fromhex(blob)).decode()) for handle, blob in sealed.items()}


# Relayer side


class UserDecryptionService:
    def __init__(
        self,
        store: CiphertextStore,
        max_duration_days: int = 365,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._max_duration_days = max_duration_days
        self._clock = clock

    def _check_window(self, start_timestamp: int, duration_days: int) -> None:
        if duration_days < 1 or duration_days > self._max_duration_days:
            raise DecryptionRejectedError(
                message=f"durationDays must be within 1..{self._max_duration_days}"
            )
        now = int(self._clock())
        if start_timestamp > now:
            raise DecryptionRejectedError(message="Authorization window has not started")
        if now >= start_timestamp + duration_days * SECONDS_PER_DAY:
            raise DecryptionRejectedError(message="Authorization window expired")

    def _check_signature(self, request: DecryptRequest) -> None:
        try:
            verify_key = VerifyKey(request.user_verify_key.removeprefix("0x"), encoder=HexEncoder)
        except (CryptoError, ValueError, TypeError) as exc:
            raise DecryptionRejectedError(message="Malformed verify key") from exc

        if address_from_verify_key(verify_key) != request.user_address.lower():
            raise DecryptionRejectedError(message="Verify key does not match user address")

        message = authorization_message(
            request.public_key, request.contract_addresses, request.start_timestamp, request.duration_days
        )
        try:
            verify_key.verify(message, bytes.fromhex(request.signature.removeprefix("0x")))
        except (BadSignatureError, ValueError) as exc:
            raise DecryptionRejectedError(message="Invalid authorization signature") from exc

    def user_decrypt(self, request: DecryptRequest) -> dict[str, str]:
        """Return ``{handle: sealed plaintext hex}`` for every requested pair."""

        self._check_window(int(request.start_timestamp), int(request.duration_days))
        self._check_signature(request)

        try:
            public_key = PublicKey(request.public_key.removeprefix("0x"), encoder=HexEncoder)
        except (CryptoError, ValueError, TypeError) as exc:
            raise DecryptionRejectedError(message="Malformed public key") from exc

        user = request.user_address.lower()
        allowed_contracts = {c.lower() for c in request.contract_addresses}
        box = SealedBox(public_key)

        out: dict[str, str] = {}
        for pair in request.pairs:
            handle = pair.handle.lower()
            contract = pair.contract_address.lower()
            if contract not in allowed_contracts:
                raise DecryptionRejectedError(
                    message="Contract not covered by the authorization", details={"handle": handle}
                )
            stored = self._store.load(handle)
            if (
                stored is None
                or not self._store.is_allowed(handle, user)
                or not self._store.is_allowed(handle, contract)
            ):
                raise DecryptionRejectedError(
                    message="User is not allowed to decrypt this handle", details={"handle": handle}
                )
            out[handle] = box.encrypt(str(stored.value).encode()).hex()

        logger.info("User decryption served for %s (%d handles)", user, len(out))
        return out
