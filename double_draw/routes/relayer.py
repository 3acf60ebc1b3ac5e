"""Mock relayer routes: encrypt inputs, serve user decryption."""

from __future__ import annotations

from dataclasses import asdict

from flask import Blueprint, request

from double_draw.db import get_session
from double_draw.errors import ValidationError
from double_draw.fhe import get_decryption_service, get_input_encryptor
from double_draw.fhe.decryption import DecryptRequest, HandleContractPair
from double_draw.schemas.relayer import EncryptedInputSchema, EncryptInputSchema, UserDecryptSchema
from double_draw.utils.responses import ok

relayer_bp = Blueprint("relayer", __name__)

_encrypt_schema = EncryptInputSchema()
_encrypted_schema = EncryptedInputSchema()
_decrypt_schema = UserDecryptSchema()


@relayer_bp.post("/relayer/inputs")
def encrypt_inputs():
    payload = request.get_json(silent=True) or {}
    data = _encrypt_schema.load(payload)

    session = get_session()
    try:
        encrypted = get_input_encryptor(session).encrypt(
            contract=str(data["contract_address"]).lower(),
            user=str(data["user_address"]).lower(),
            values=[int(v) for v in data["values"]],
        )
    except ValueError as exc:
        raise ValidationError(message=str(exc)) from exc

    return ok(_encrypted_schema.dump(asdict(encrypted)), status_code=201)


@relayer_bp.post("/relayer/user-decrypt")
def user_decrypt():
    payload = request.get_json(silent=True) or {}
    data = _decrypt_schema.load(payload)

    decrypt_request = DecryptRequest(
        pairs=[HandleContractPair(p["handle"], p["contract_address"]) for p in data["pairs"]],
        public_key=str(data["public_key"]),
        signature=str(data["signature"]),
        contract_addresses=[str(c) for c in data["contract_addresses"]],
        user_address=str(data["user_address"]),
        user_verify_key=str(data["user_verify_key"]),
        start_timestamp=int(data["start_timestamp"]),
        duration_days=int(data["duration_days"]),
    )

    session = get_session()
    sealed = get_decryption_service(session).user_decrypt(decrypt_request)
    return ok({"results": sealed})
