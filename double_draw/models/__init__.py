"""ORM models."""

from double_draw.models.ciphertext import Ciphertext, CiphertextGrant
from double_draw.models.lottery_event import LotteryEvent
from double_draw.models.lottery_state import LotteryState
from double_draw.models.payout import Payout
from double_draw.models.player_record import PlayerRecord
from double_draw.models.request_nonce import RequestNonce

__all__ = [
    "Ciphertext",
    "CiphertextGrant",
    "LotteryEvent",
    "LotteryState",
    "Payout",
    "PlayerRecord",
    "RequestNonce",
]
