"""Signed-request authentication for mutating calls.

A caller proves who it is by signing the request with the Ed25519 key its
address derives from. The signature covers the method, path, a digest of the
raw body, a timestamp and a one-time nonce; accepted nonces are stored in the
request's own transaction so a captured request cannot be replayed.
"""

from __future__ import annotations

import hashlib
import logging
import re
import secrets
import time
from collections.abc import Callable, Mapping

from nacl.encoding import HexEncoder
from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import SigningKey, VerifyKey
from sqlalchemy.orm import Session

from double_draw.errors import AuthenticationError, CallerMismatchError
from double_draw.models.request_nonce import RequestNonce
from double_draw.utils.addresses import address_from_verify_key

logger = logging.getLogger(__name__)

REQUEST_DOMAIN = b"double-draw/request/v1"

KEY_HEADER = "X-Caller-Key"
TIMESTAMP_HEADER = "X-Caller-Timestamp"
NONCE_HEADER = "X-Caller-Nonce"
SIGNATURE_HEADER = "X-Caller-Signature"
ADDRESS_HEADER = "X-Caller-Address"

_REQUIRED_HEADERS = (KEY_HEADER, TIMESTAMP_HEADER, NONCE_HEADER, SIGNATURE_HEADER)
_NONCE_RE = re.compile(r"^[0-9a-f]{16,64}$")


def request_message(method: str, path: str, timestamp: int, nonce: str, body: bytes) -> bytes:
    """Canonical bytes a caller signs for one request."""

    return b"\n".join(
        [
            REQUEST_DOMAIN,
            method.upper().encode(),
            path.encode(),
            str(int(timestamp)).encode(),
            nonce.lower().encode(),
            hashlib.sha256(body).hexdigest().encode(),
        ]
    )


def sign_request(
    signing_key: SigningKey,
    method: str,
    path: str,
    body: bytes = b"",
    timestamp: int | None = None,
    nonce: str | None = None,
) -> dict[str, str]:
    """Client helper: headers that authenticate ``method path`` with ``body``."""

    ts = int(time.time()) if timestamp is None else int(timestamp)
    nonce = nonce or secrets.token_hex(16)
    signature = signing_key.sign(request_message(method, path, ts, nonce, body)).signature
    return {
        KEY_HEADER: signing_key.verify_key.encode(HexEncoder).decode(),
        TIMESTAMP_HEADER: str(ts),
        NONCE_HEADER: nonce,
        SIGNATURE_HEADER: signature.hex(),
    }


class RequestAuthenticator:
    def __init__(self, max_age_seconds: int = 300, clock: Callable[[], float] = time.time) -> None:
        self._max_age_seconds = max_age_seconds
        self._clock = clock

    def _check_timestamp(self, raw: str) -> int:
        try:
            timestamp = int(raw)
        except ValueError as exc:
            raise AuthenticationError(message="Malformed request timestamp") from exc

        if abs(int(self._clock()) - timestamp) > self._max_age_seconds:
            raise AuthenticationError(message="Request timestamp outside the accepted window")
        return timestamp

    def _verify_key(self, raw: str) -> VerifyKey:
        try:
            return VerifyKey(raw.removeprefix("0x"), encoder=HexEncoder)
        except (CryptoError, ValueError, TypeError) as exc:
            raise AuthenticationError(message="Malformed caller key") from exc

    def authenticate(
        self,
        session: Session,
        method: str,
        path: str,
        body: bytes,
        headers: Mapping[str, str],
    ) -> str:
        """Return the caller address proven by the request's signature.

        Raises:
            AuthenticationError: missing, malformed, stale, forged or replayed.
            CallerMismatchError: ``X-Caller-Address`` names someone else.
        """

        missing = [name for name in _REQUIRED_HEADERS if not (headers.get(name) or "").strip()]
        if missing:
            raise AuthenticationError(details={"missing": missing})

        timestamp = self._check_timestamp(headers[TIMESTAMP_HEADER].strip())

        nonce = headers[NONCE_HEADER].strip().lower()
        if not _NONCE_RE.match(nonce):
            raise AuthenticationError(message="Malformed request nonce")

        verify_key = self._verify_key(headers[KEY_HEADER].strip())
        message = request_message(method, path, timestamp, nonce, body)
        try:
            verify_key.verify(message, bytes.fromhex(headers[SIGNATURE_HEADER].strip().removeprefix("0x")))
        except (BadSignatureError, ValueError) as exc:
            raise AuthenticationError(message="Invalid request signature") from exc

        caller = address_from_verify_key(verify_key)

        claimed = (headers.get(ADDRESS_HEADER) or "").strip().lower()
        if claimed and claimed != caller:
            raise CallerMismatchError(details={"claimed": claimed, "signer": caller})

        if session.get(RequestNonce, (caller, nonce)) is not None:
            raise AuthenticationError(message="Request already used")
        session.add(RequestNonce(caller=caller, nonce=nonce))
        session.flush()

        logger.debug("Authenticated %s %s as %s", method, path, caller)
        return caller
