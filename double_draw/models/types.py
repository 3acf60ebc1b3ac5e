"""Column types."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.types import TypeDecorator


class WeiAmount(TypeDecorator):
    """Non-negative integer amount of wei, stored as a decimal string.

    Keeps full uint256 precision on every backend (SQLite included).
    """

    impl = String(78)
    cache_ok = True

    def process_bind_param(self, value, dialect):  # type: ignore[no-untyped-def]
        if value is None:
            return None
        return str(int(value))

    def process_result_value(self, value, dialect):  # type: ignore[no-untyped-def]
        if value is None:
            return None
        return int(value)
