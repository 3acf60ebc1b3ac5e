"""Ciphertext backend wiring.

The app holds one input-signing key; every request gets a coprocessor bound
to its own session so ciphertexts commit or roll back with the ledger.
"""

from __future__ import annotations

from flask import Flask, current_app
from nacl.signing import SigningKey
from sqlalchemy.orm import Session

from double_draw.fhe.algebra import CiphertextAlgebra
from double_draw.fhe.coprocessor import MockCoprocessor
from double_draw.fhe.decryption import UserDecryptionService
from double_draw.fhe.inputs import InputEncryptor
from double_draw.fhe.stores import SqlCiphertextStore
from double_draw.fhe.types import EncryptedBool, EncryptedUint32

__all__ = [
    "CiphertextAlgebra",
    "EncryptedBool",
    "EncryptedUint32",
    "MockCoprocessor",
    "get_coprocessor",
    "get_decryption_service",
    "get_input_encryptor",
    "init_fhe",
]


def init_fhe(app: Flask) -> None:
    """Load the input-proof signing key from configuration."""

    seed = bytes.fromhex(str(app.config["INPUT_SIGNER_SEED"]).removeprefix("0x"))
    if len(seed) != 32:
        raise RuntimeError("INPUT_SIGNER_SEED must be 32 bytes of hex")
    app.extensions["input_signer"] = SigningKey(seed)


def _signer() -> SigningKey:
    return current_app.extensions["input_signer"]


def get_coprocessor(session: Session) -> MockCoprocessor:
    return MockCoprocessor(
        SqlCiphertextStore(session),
        contract_address=str(current_app.config["CONTRACT_ADDRESS"]),
        input_verifier=_signer().verify_key,
    )


def get_input_encryptor(session: Session) -> InputEncryptor:
    return InputEncryptor(SqlCiphertextStore(session), _signer())


def get_decryption_service(session: Session) -> UserDecryptionService:
    return UserDecryptionService(
        SqlCiphertextStore(session),
        max_duration_days=int(current_app.config["DECRYPT_MAX_DURATION_DAYS"]),
    )
