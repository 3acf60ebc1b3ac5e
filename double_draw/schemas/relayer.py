"""Schemas for the mock relayer (input encryption, user decryption)."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from double_draw.schemas.lottery import ADDRESS, HANDLE, HEX


class EncryptInputSchema(Schema):
    contract_address = fields.String(required=True, validate=ADDRESS)
    user_address = fields.String(required=True, validate=ADDRESS)
    values = fields.List(
        fields.Integer(strict=True, validate=validate.Range(min=0, max=2**32 - 1)),
        required=True,
        validate=validate.Length(min=1, max=255),
    )


class EncryptedInputSchema(Schema):
    handles = fields.List(fields.String(), required=True)
    input_proof = fields.String(required=True)


class HandleContractPairSchema(Schema):
    handle = fields.String(required=True, validate=HANDLE)
    contract_address = fields.String(required=True, validate=ADDRESS)


class UserDecryptSchema(Schema):
    pairs = fields.List(fields.Nested(HandleContractPairSchema), required=True, validate=validate.Length(min=1))
    public_key = fields.String(required=True, validate=HEX)
    signature = fields.String(required=True, validate=HEX)
    contract_addresses = fields.List(fields.String(validate=ADDRESS), required=True, validate=validate.Length(min=1))
    user_address = fields.String(required=True, validate=ADDRESS)
    user_verify_key = fields.String(required=True, validate=HEX)
    start_timestamp = fields.Integer(required=True, strict=True)
    duration_days = fields.Integer(required=True, strict=True)
