"""Ciphertext storage for the mock coprocessor.

Two backends with one interface: a dict-based store for unit tests and an
SQLAlchemy store that shares the request's session (and so its transaction).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from double_draw.models.ciphertext import Ciphertext, CiphertextGrant


@dataclass(frozen=True)
class StoredCiphertext:
    handle: str
    fhe_type: str
    value: int


class CiphertextStore(ABC):
    """Handle -> plaintext map plus the per-handle grant list."""

    @abstractmethod
    def put(self, handle: str, fhe_type: str, value: int) -> None: ...

    @abstractmethod
    def load(self, handle: str) -> StoredCiphertext | None: ...

    @abstractmethod
    def allow(self, handle: str, identity: str) -> None: ...

    @abstractmethod
    def is_allowed(self, handle: str, identity: str) -> bool: ...

    @abstractmethod
    def grantees(self, handle: str) -> set[str]: ...


class InMemoryCiphertextStore(CiphertextStore):
    def __init__(self) -> None:
        self._values: dict[str, StoredCiphertext] = {}
        self._grants: dict[str, set[str]] = {}

    def put(self, handle: str, fhe_type: str, value: int) -> None:
        self._values[handle] = StoredCiphertext(handle=handle, fhe_type=fhe_type, value=int(value))

    def load(self, handle: str) -> StoredCiphertext | None:
        return self._values.get(handle)

    def allow(self, handle: str, identity: str) -> None:
        self._grants.setdefault(handle, set()).add(identity)

    def is_allowed(self, handle: str, identity: str) -> bool:
        return identity in self._grants.get(handle, set())

    def grantees(self, handle: str) -> set[str]:
        return set(self._grants.get(handle, set()))


class SqlCiphertextStore(CiphertextStore):
    def __init__(self, session: Session) -> None:
        self._session = session

    def put(self, handle: str, fhe_type: str, value: int) -> None:
        self._session.add(Ciphertext(handle=handle, fhe_type=fhe_type, value=int(value)))
        self._session.flush()

    def load(self, handle: str) -> StoredCiphertext | None:
        row = self._session.get(Ciphertext, handle)
        if row is None:
            return None
        return StoredCiphertext(handle=row.handle, fhe_type=row.fhe_type, value=int(row.value))

    def allow(self, handle: str, identity: str) -> None:
        if self.is_allowed(handle, identity):
            return
        self._session.add(CiphertextGrant(handle=handle, identity=identity))
        self._session.flush()

    def is_allowed(self, handle: str, identity: str) -> bool:
        return self._session.get(CiphertextGrant, (handle, identity)) is not None

    def grantees(self, handle: str) -> set[str]:
        stmt = select(CiphertextGrant.identity).where(CiphertextGrant.handle == handle)
        return set(self._session.scalars(stmt).all())
