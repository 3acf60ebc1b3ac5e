"""Lottery routes (controllers). No business logic here.

Mutating calls must be signed (see ``double_draw.auth``); the caller is the
address of the signing key. Read-only views are public.
"""

from __future__ import annotations

from dataclasses import asdict

from flask import Blueprint, current_app, request
from sqlalchemy.orm import Session

from double_draw.auth import RequestAuthenticator
from double_draw.db import get_session
from double_draw.fhe import get_coprocessor
from double_draw.schemas.lottery import (
    BuyTicketSchema,
    EventSchema,
    EventsQuerySchema,
    PlayerStatusSchema,
    PointsSchema,
    StatsSchema,
    TicketSchema,
    TxReceiptSchema,
    WinningNumbersSchema,
    WithdrawSchema,
)
from double_draw.services.lottery_service import LotteryService, LotterySettings, format_ether
from double_draw.utils.responses import ok

lottery_bp = Blueprint("lottery", __name__)

_buy_schema = BuyTicketSchema()
_withdraw_schema = WithdrawSchema()
_events_query_schema = EventsQuerySchema()
_receipt_schema = TxReceiptSchema()
_ticket_schema = TicketSchema()
_points_schema = PointsSchema()
_winning_schema = WinningNumbersSchema()
_status_schema = PlayerStatusSchema()
_stats_schema = StatsSchema()
_events_schema = EventSchema(many=True)


def _service(session: Session) -> LotteryService:
    return LotteryService(get_coprocessor(session), LotterySettings.from_config(current_app.config))


def _caller(session: Session) -> str:
    authenticator = RequestAuthenticator(max_age_seconds=int(current_app.config["REQUEST_MAX_AGE_SECONDS"]))
    return authenticator.authenticate(
        session,
        method=request.method,
        path=request.path,
        body=request.get_data(cache=True),
        headers=request.headers,
    )


@lottery_bp.get("/lottery/info")
def get_info():
    session = get_session()
    service = _service(session)
    price = service.ticket_price()
    return ok(
        {
            "contract_address": service.contract_address(),
            "owner": service.owner(session),
            "ticket_price": str(price),
            "ticket_price_ether": format_ether(price),
        }
    )


@lottery_bp.get("/lottery/stats")
def get_stats():
    session = get_session()
    stats = _service(session).stats(session)
    data = asdict(stats)
    data["balance"] = str(stats.balance)
    return ok(_stats_schema.dump(data))


@lottery_bp.post("/lottery/tickets")
def buy_ticket():
    session = get_session()
    caller = _caller(session)

    payload = request.get_json(silent=True) or {}
    data = _buy_schema.load(payload)

    receipt = _service(session).buy_ticket(
        session,
        caller=caller,
        first_handle=str(data["first_handle"]),
        second_handle=str(data["second_handle"]),
        input_proof=str(data["input_proof"]),
        value=int(data["value"]),
    )
    # Committed by the after_request hook before this body is sent.
    return ok(_receipt_schema.dump(asdict(receipt)), status_code=201)


@lottery_bp.post("/lottery/draws")
def start_draw():
    session = get_session()
    caller = _caller(session)
    receipt = _service(session).start_draw(session, caller=caller)
    return ok(_receipt_schema.dump(asdict(receipt)), status_code=201)


@lottery_bp.post("/lottery/withdraw")
def withdraw():
    session = get_session()
    caller = _caller(session)

    payload = request.get_json(silent=True) or {}
    data = _withdraw_schema.load(payload)

    receipt = _service(session).withdraw(
        session,
        caller=caller,
        recipient=data.get("recipient"),
        amount=int(data["amount"]),
    )
    return ok(_receipt_schema.dump(asdict(receipt)))


@lottery_bp.get("/lottery/players/<string:address>/status")
def get_player_status(address: str):
    session = get_session()
    status = _service(session).get_player_status(session, address)
    return ok(_status_schema.dump(asdict(status)))


@lottery_bp.get("/lottery/players/<string:address>/ticket")
def get_ticket(address: str):
    session = get_session()
    ticket = _service(session).get_ticket(session, address)
    return ok(_ticket_schema.dump(asdict(ticket)))


@lottery_bp.get("/lottery/players/<string:address>/points")
def get_points(address: str):
    session = get_session()
    points = _service(session).get_encrypted_points(session, address)
    return ok(_points_schema.dump(asdict(points)))


@lottery_bp.get("/lottery/players/<string:address>/winning-numbers")
def get_winning_numbers(address: str):
    session = get_session()
    winning = _service(session).get_last_winning_numbers(session, address)
    return ok(_winning_schema.dump(asdict(winning)))


@lottery_bp.get("/lottery/events")
def list_events():
    query = _events_query_schema.load(request.args.to_dict())
    session = get_session()
    events = _service(session).list_events(session, player=query.get("player"), limit=int(query["limit"]))
    return ok(_events_schema.dump(events))
