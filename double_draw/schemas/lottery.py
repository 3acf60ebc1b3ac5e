"""Schemas for the lottery API."""

from __future__ import annotations

import re

from marshmallow import Schema, fields, validate

ADDRESS = validate.Regexp(r"^0x[0-9a-fA-F]{40}$", error="Must be a 0x-prefixed 20-byte address")
HANDLE = validate.Regexp(r"^0x[0-9a-fA-F]{64}$", error="Must be a 0x-prefixed 32-byte handle")
HEX = validate.Regexp(r"^(0x)?[0-9a-fA-F]+$", flags=re.ASCII, error="Must be hex encoded")


class BuyTicketSchema(Schema):
    first_handle = fields.String(required=True, validate=HANDLE)
    second_handle = fields.String(required=True, validate=HANDLE)
    input_proof = fields.String(required=True, validate=HEX)
    value = fields.Integer(required=True, strict=True, validate=validate.Range(min=0))


class WithdrawSchema(Schema):
    # Recipient shape is checked by the service so a bad one maps to invalid_recipient.
    recipient = fields.String(required=False, allow_none=True, load_default=None)
    amount = fields.Integer(required=True, strict=True, validate=validate.Range(min=0))


class EventsQuerySchema(Schema):
    player = fields.String(required=False, load_default=None, validate=ADDRESS)
    limit = fields.Integer(required=False, load_default=100, validate=validate.Range(min=1, max=500))


class TxReceiptSchema(Schema):
    tx_hash = fields.String(required=True)
    status = fields.String(required=True)


class TicketSchema(Schema):
    first_guess = fields.String(required=True)
    second_guess = fields.String(required=True)
    has_ticket = fields.Boolean(required=True)


class PointsSchema(Schema):
    encrypted_points = fields.String(required=True)
    has_points = fields.Boolean(required=True)


class WinningNumbersSchema(Schema):
    winning_first = fields.String(required=True)
    winning_second = fields.String(required=True)
    has_result = fields.Boolean(required=True)


class PlayerStatusSchema(Schema):
    has_ticket = fields.Boolean(required=True)
    has_result = fields.Boolean(required=True)
    has_points = fields.Boolean(required=True)


class StatsSchema(Schema):
    total_tickets = fields.Integer(required=True)
    total_draws = fields.Integer(required=True)
    # wei can exceed 2**53, keep it exact for JSON clients
    balance = fields.String(required=True)


class EventSchema(Schema):
    name = fields.String(required=True)
    player = fields.String(required=True)
    tx_hash = fields.String(required=True)
    created_at = fields.DateTime(required=True)
