from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pytest
from nacl.signing import SigningKey
from sqlalchemy.orm import Session, sessionmaker

from double_draw import create_app
from double_draw import models  # noqa: F401
from double_draw.db import create_app_engine
from double_draw.fhe.coprocessor import MockCoprocessor
from double_draw.fhe.decryption import (
    HandleContractPair,
    UserDecryptionService,
    generate_keypair,
    open_decrypted,
    sign_decrypt_request,
)
from double_draw.fhe.inputs import EncryptedInput, InputEncryptor
from double_draw.fhe.stores import InMemoryCiphertextStore, SqlCiphertextStore
from double_draw.models.base import Base
from double_draw.services.lottery_service import LotteryService, LotterySettings
from double_draw.services.payouts import LedgerPayoutGateway, PayoutGateway
from double_draw.utils.addresses import address_from_verify_key

CONTRACT = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
TICKET_PRICE = 10**15
INPUT_SIGNER = SigningKey(bytes([7]) * 32)


class ScriptedRandom(random.Random):
    """Random source whose 32-bit draws can be queued up front."""

    def __init__(self) -> None:
        super().__init__(1234)
        self.queue: list[int] = []

    def getrandbits(self, k: int) -> int:
        if self.queue:
            return self.queue.pop(0)
        return super().getrandbits(k)

    def force_digits(self, *digits: int) -> None:
        # digit = value % 9 + 1
        self.queue.extend(d - 1 for d in digits)


@dataclass(frozen=True)
class Player:
    key: SigningKey

    @property
    def address(self) -> str:
        return address_from_verify_key(self.key.verify_key)


def make_player(seed: int) -> Player:
    return Player(SigningKey(bytes([seed]) * 32))


@pytest.fixture()
def owner() -> Player:
    return make_player(1)


@pytest.fixture()
def alice() -> Player:
    return make_player(2)


@pytest.fixture()
def bob() -> Player:
    return make_player(3)


@pytest.fixture()
def session():
    engine = create_app_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    s = factory()
    try:
        yield s
    finally:
        s.close()
        engine.dispose()


@pytest.fixture()
def rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture()
def memory_fhe(rng: ScriptedRandom):
    store = InMemoryCiphertextStore()
    return MockCoprocessor(store, CONTRACT, INPUT_SIGNER.verify_key, rng=rng), store


class LotteryHarness:
    """Runs service calls as committed-or-rolled-back transactions.

    Each transaction gets a fresh coprocessor, so nothing from an earlier
    transaction is usable without a standing grant.
    """

    def __init__(self, session: Session, rng: ScriptedRandom, owner: Player) -> None:
        self.session = session
        self.rng = rng
        self.store = SqlCiphertextStore(session)
        self.settings = LotterySettings(contract_address=CONTRACT, owner=owner.address, ticket_price=TICKET_PRICE)
        self.payouts: PayoutGateway = LedgerPayoutGateway()
        self.now = int(time.time())

    def service(self) -> LotteryService:
        fhe = MockCoprocessor(self.store, CONTRACT, INPUT_SIGNER.verify_key, rng=self.rng)
        return LotteryService(fhe, self.settings, payouts=self.payouts)

    def transact(self, fn: Callable[[LotteryService], Any]) -> Any:
        try:
            result = fn(self.service())
            self.session.commit()
            return result
        except Exception:
            self.session.rollback()
            raise

    def encrypt(self, player: Player, *values: int) -> EncryptedInput:
        encrypted = InputEncryptor(self.store, INPUT_SIGNER).encrypt(CONTRACT, player.address, list(values))
        self.session.commit()
        return encrypted

    def buy(self, player: Player, first: int, second: int, value: int = TICKET_PRICE):
        enc = self.encrypt(player, first, second)
        return self.transact(
            lambda svc: svc.buy_ticket(
                self.session, player.address, enc.handles[0], enc.handles[1], enc.input_proof, value
            )
        )

    def draw(self, player: Player, *digits: int):
        if digits:
            self.rng.force_digits(*digits)
        return self.transact(lambda svc: svc.start_draw(self.session, player.address))

    def view(self) -> LotteryService:
        return self.service()

    def decrypt(self, player: Player, *handles: str) -> list[int]:
        """User-decrypt ``handles`` the way a wallet would."""

        keypair = generate_keypair()
        request = sign_decrypt_request(
            player.key,
            keypair,
            [HandleContractPair(h, CONTRACT) for h in handles],
            [CONTRACT],
            start_timestamp=self.now,
            duration_days=10,
        )
        service = UserDecryptionService(self.store, clock=lambda: self.now + 60)
        clear = open_decrypted(keypair, service.user_decrypt(request))
        return [clear[h] for h in handles]

    def points(self, player: Player) -> int:
        view = self.view().get_encrypted_points(self.session, player.address)
        assert view.has_points
        return self.decrypt(player, view.encrypted_points)[0]


@pytest.fixture()
def harness(session: Session, rng: ScriptedRandom, owner: Player) -> LotteryHarness:
    return LotteryHarness(session, rng, owner)


@pytest.fixture()
def app(owner: Player):
    return create_app(
        {
            "TESTING": True,
            "DATABASE_URL": "sqlite://",
            "CONTRACT_ADDRESS": CONTRACT,
            "LOTTERY_OWNER": owner.address,
            "TICKET_PRICE_WEI": TICKET_PRICE,
            "INPUT_SIGNER_SEED": bytes(INPUT_SIGNER).hex(),
        }
    )


@pytest.fixture()
def client(app):
    return app.test_client()
