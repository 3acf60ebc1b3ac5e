"""Lottery protocol: ticket purchase, draw, reward accrual, withdrawals.

Every operation checks all of its preconditions and runs every fallible
collaborator call before touching the ledger, so a failure leaves players,
counters and balance unchanged.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from flask import Flask
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from double_draw.errors import (
    InsufficientBalanceError,
    InvalidPaymentError,
    InvalidRecipientError,
    NoActiveTicketError,
    NotOwnerError,
    TicketAlreadyActiveError,
    TransferFailedError,
    ValidationError,
)
from double_draw.fhe.algebra import CiphertextAlgebra
from double_draw.fhe.types import ZERO_HANDLE, EncryptedUint32
from double_draw.models.lottery_event import LotteryEvent
from double_draw.models.player_record import PlayerRecord
from double_draw.repositories.lottery_state_repository import LotteryStateRepository
from double_draw.repositories.player_repository import PlayerRepository
from double_draw.services.access_control import grant_to_contract_and_player
from double_draw.services.draw_engine import DrawEngine
from double_draw.services.payouts import LedgerPayoutGateway, PayoutGateway
from double_draw.services.reward_engine import compute_reward
from double_draw.utils.addresses import ZERO_ADDRESS, is_address, normalize_address

logger = logging.getLogger(__name__)

TICKET_PURCHASED = "TicketPurchased"
DRAW_COMPLETED = "DrawCompleted"

WEI_PER_ETHER = 10**18


def format_ether(wei: int) -> str:
    return format((Decimal(int(wei)) / Decimal(WEI_PER_ETHER)).normalize(), "f")


def new_tx_hash() -> str:
    return "0x" + secrets.token_hex(32)


@dataclass(frozen=True)
class LotterySettings:
    contract_address: str
    owner: str
    ticket_price: int

    @classmethod
    def from_config(cls, config: Mapping) -> "LotterySettings":
        return cls(
            contract_address=normalize_address(str(config["CONTRACT_ADDRESS"])),
            owner=normalize_address(str(config["LOTTERY_OWNER"])),
            ticket_price=int(config["TICKET_PRICE_WEI"]),
        )


@dataclass(frozen=True)
class TxReceipt:
    tx_hash: str
    status: str = "confirmed"


@dataclass(frozen=True)
class TicketView:
    first_guess: str
    second_guess: str
    has_ticket: bool


@dataclass(frozen=True)
class PointsView:
    encrypted_points: str
    has_points: bool


@dataclass(frozen=True)
class WinningNumbersView:
    winning_first: str
    winning_second: str
    has_result: bool


@dataclass(frozen=True)
class PlayerStatus:
    has_ticket: bool
    has_result: bool
    has_points: bool


@dataclass(frozen=True)
class LotteryStats:
    total_tickets: int
    total_draws: int
    balance: int


def _address(value: str | None, field: str) -> str:
    try:
        return normalize_address(str(value))
    except ValueError as exc:
        raise ValidationError(message=f"Invalid {field}", details={field: ["Must be a 0x-prefixed address"]}) from exc


def init_lottery(app: Flask) -> None:
    """Create the state row at start-up so every mutation has a row to lock."""

    settings = LotterySettings.from_config(app.config)
    session: Session = app.extensions["session_factory"]()
    try:
        LotteryStateRepository().get_or_create(session, settings.owner)
        session.commit()
    except IntegrityError:
        # Another worker created it first.
        session.rollback()
    finally:
        session.close()


class LotteryService:
    """Public protocol of the encrypted double-draw lottery."""

    def __init__(
        self,
        fhe: CiphertextAlgebra,
        settings: LotterySettings,
        payouts: PayoutGateway | None = None,
        players: PlayerRepository | None = None,
        state: LotteryStateRepository | None = None,
    ) -> None:
        self._fhe = fhe
        self._settings = settings
        self._draws = DrawEngine(fhe)
        self._payouts = payouts or LedgerPayoutGateway()
        self._players = players or PlayerRepository()
        self._state = state or LotteryStateRepository()

    # Mutations. Each one locks the state row before reading anything it
    # checks, so mutations run one at a time.

    def buy_ticket(
        self,
        session: Session,
        caller: str,
        first_handle: str,
        second_handle: str,
        input_proof: str,
        value: int,
    ) -> TxReceipt:
        player = _address(caller, "caller")

        if int(value) != self._settings.ticket_price:
            raise InvalidPaymentError(
                message=f"Ticket price is {format_ether(self._settings.ticket_price)} ether",
                details={"expected": self._settings.ticket_price, "received": int(value)},
            )

        self._fhe.begin_transaction()
        state = self._state.lock(session)
        record = self._players.lock(session, player)
        if record is not None and record.has_ticket:
            raise TicketAlreadyActiveError()

        first = self._fhe.import_external(first_handle, input_proof, player)
        second = self._fhe.import_external(second_handle, input_proof, player)
        grant_to_contract_and_player(self._fhe, player, first, second)

        if record is None:
            record = self._players.create(session, player)
        record.first_guess = first.handle
        record.second_guess = second.handle
        record.has_ticket = True
        record.has_result = False

        if state is None:
            state = self._state.get_or_create(session, self._settings.owner)
        state.total_tickets = int(state.total_tickets) + 1
        state.balance = int(state.balance) + int(value)

        receipt = TxReceipt(tx_hash=new_tx_hash())
        self._state.add_event(session, TICKET_PURCHASED, player, receipt.tx_hash)
        session.flush()

        logger.info("Ticket purchased by %s (tx %s)", player, receipt.tx_hash)
        return receipt

    def start_draw(self, session: Session, caller: str) -> TxReceipt:
        player = _address(caller, "caller")

        self._fhe.begin_transaction()
        state = self._state.lock(session)
        record = self._players.lock(session, player)
        if record is None or not record.has_ticket:
            raise NoActiveTicketError()

        win_first, win_second = self._draws.draw_winning_pair()
        reward = compute_reward(
            self._fhe,
            EncryptedUint32(str(record.first_guess)),
            EncryptedUint32(str(record.second_guess)),
            win_first,
            win_second,
        )
        if record.has_points:
            points = self._fhe.add(EncryptedUint32(str(record.encrypted_points)), reward)
        else:
            points = reward
        grant_to_contract_and_player(self._fhe, player, win_first, win_second, points)

        record.last_winning_first = win_first.handle
        record.last_winning_second = win_second.handle
        record.encrypted_points = points.handle
        record.has_points = True
        record.has_ticket = False
        record.has_result = True

        if state is None:
            state = self._state.get_or_create(session, self._settings.owner)
        state.total_draws = int(state.total_draws) + 1

        receipt = TxReceipt(tx_hash=new_tx_hash())
        self._state.add_event(session, DRAW_COMPLETED, player, receipt.tx_hash)
        session.flush()

        logger.info("Draw completed for %s (tx %s)", player, receipt.tx_hash)
        return receipt

    def withdraw(self, session: Session, caller: str, recipient: str | None, amount: int) -> TxReceipt:
        sender = _address(caller, "caller")

        # The owner lives on the state row, so the lock is the only read
        # ahead of the owner check.
        state = self._state.lock(session)
        owner = state.owner if state is not None else self._settings.owner
        if sender != owner:
            raise NotOwnerError()
        if not is_address(recipient) or str(recipient).lower() == ZERO_ADDRESS:
            raise InvalidRecipientError()
        if int(amount) < 0:
            raise ValidationError(message="Invalid amount", details={"amount": ["Must be >= 0"]})

        balance = int(state.balance) if state is not None else 0
        if int(amount) > balance:
            raise InsufficientBalanceError(details={"balance": balance, "requested": int(amount)})

        to = str(recipient).lower()
        receipt = TxReceipt(tx_hash=new_tx_hash())
        if not self._payouts.transfer(session, to, int(amount), receipt.tx_hash):
            raise TransferFailedError()

        if state is None:
            state = self._state.get_or_create(session, self._settings.owner)
        state.balance = int(state.balance) - int(amount)
        session.flush()

        logger.info("Owner withdrew %d wei to %s (tx %s)", int(amount), to, receipt.tx_hash)
        return receipt

    # Read-only views. Public: they never look at who is asking.

    def ticket_price(self) -> int:
        return self._settings.ticket_price

    def contract_address(self) -> str:
        return self._settings.contract_address

    def owner(self, session: Session) -> str:
        state = self._state.get(session)
        return state.owner if state is not None else self._settings.owner

    def _record(self, session: Session, player: str) -> PlayerRecord | None:
        return self._players.get(session, _address(player, "player"))

    def get_ticket(self, session: Session, player: str) -> TicketView:
        record = self._record(session, player)
        if record is None:
            return TicketView(ZERO_HANDLE, ZERO_HANDLE, False)
        return TicketView(
            first_guess=record.first_guess or ZERO_HANDLE,
            second_guess=record.second_guess or ZERO_HANDLE,
            has_ticket=bool(record.has_ticket),
        )

    def get_encrypted_points(self, session: Session, player: str) -> PointsView:
        record = self._record(session, player)
        if record is None:
            return PointsView(ZERO_HANDLE, False)
        return PointsView(record.encrypted_points or ZERO_HANDLE, bool(record.has_points))

    def get_last_winning_numbers(self, session: Session, player: str) -> WinningNumbersView:
        record = self._record(session, player)
        if record is None:
            return WinningNumbersView(ZERO_HANDLE, ZERO_HANDLE, False)
        return WinningNumbersView(
            winning_first=record.last_winning_first or ZERO_HANDLE,
            winning_second=record.last_winning_second or ZERO_HANDLE,
            has_result=bool(record.has_result),
        )

    def get_player_status(self, session: Session, player: str) -> PlayerStatus:
        record = self._record(session, player)
        if record is None:
            return PlayerStatus(False, False, False)
        return PlayerStatus(bool(record.has_ticket), bool(record.has_result), bool(record.has_points))

    def stats(self, session: Session) -> LotteryStats:
        state = self._state.get(session)
        if state is None:
            return LotteryStats(0, 0, 0)
        return LotteryStats(int(state.total_tickets), int(state.total_draws), int(state.balance))

    def list_events(self, session: Session, player: str | None = None, limit: int = 100) -> Sequence[LotteryEvent]:
        who = _address(player, "player") if player else None
        return self._state.list_events(session, player=who, limit=limit)
