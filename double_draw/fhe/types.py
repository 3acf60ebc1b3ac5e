"""Opaque encrypted value markers.

Values above the backend carry a handle and nothing else.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass

EUINT32 = "euint32"
EBOOL = "ebool"

UINT32_MAX = 2**32 - 1

ZERO_HANDLE = "0x" + "0" * 64

_HANDLE_RE = re.compile(r"^0x[0-9a-f]{64}$")


def new_handle() -> str:
    return "0x" + secrets.token_hex(32)


def is_handle(value: str | None) -> bool:
    return bool(value) and bool(_HANDLE_RE.match(str(value).lower()))


@dataclass(frozen=True)
class EncryptedUint32:
    handle: str

    fhe_type = EUINT32


@dataclass(frozen=True)
class EncryptedBool:
    handle: str

    fhe_type = EBOOL
