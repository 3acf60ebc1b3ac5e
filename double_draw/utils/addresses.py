"""Account address helpers."""

from __future__ import annotations

import hashlib
import re

from nacl.signing import VerifyKey

ZERO_ADDRESS = "0x" + "0" * 40

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


def is_address(value: str | None) -> bool:
    return bool(value) and bool(_ADDRESS_RE.match(str(value).lower()))


def normalize_address(value: str) -> str:
    """Lowercase an address, raising ValueError if it is malformed."""

    lowered = str(value).strip().lower()
    if not _ADDRESS_RE.match(lowered):
        raise ValueError(f"Malformed address: {value!r}")
    return lowered


def address_from_verify_key(verify_key: VerifyKey) -> str:
    """Derive the account address bound to an Ed25519 public key."""

    digest = hashlib.sha256(bytes(verify_key)).hexdigest()
    return "0x" + digest[-40:]
