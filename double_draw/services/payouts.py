"""Transfer mechanism used by owner withdrawals."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from sqlalchemy.orm import Session

from double_draw.models.payout import Payout

logger = logging.getLogger(__name__)


class PayoutGateway(ABC):
    @abstractmethod
    def transfer(self, session: Session, recipient: str, amount: int, tx_hash: str | None = None) -> bool:
        """Move ``amount`` wei to ``recipient``; False if the transfer is refused."""


class LedgerPayoutGateway(PayoutGateway):
    """Records the payout in the same transaction as the balance debit."""

    def transfer(self, session: Session, recipient: str, amount: int, tx_hash: str | None = None) -> bool:
        session.add(Payout(recipient=recipient, amount=int(amount), tx_hash=tx_hash))
        session.flush()
        logger.info("Payout of %d wei to %s recorded", amount, recipient)
        return True
