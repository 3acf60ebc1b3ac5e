"""Repository layer for global lottery state and events."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from double_draw.models.lottery_event import LotteryEvent
from double_draw.models.lottery_state import STATE_ROW_ID, LotteryState


class LotteryStateRepository:
    """Counters, held balance and the event log."""

    def get(self, session: Session) -> LotteryState | None:
        return session.get(LotteryState, STATE_ROW_ID)

    def lock(self, session: Session) -> LotteryState | None:
        """Fresh read of the state row, locked until the transaction ends.

        Every mutation takes this lock first, which puts all mutations in one
        total order.
        """

        stmt = (
            select(LotteryState)
            .where(LotteryState.id == STATE_ROW_ID)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return session.scalars(stmt).one_or_none()

    def get_or_create(self, session: Session, owner: str) -> LotteryState:
        state = self.get(session)
        if state is None:
            state = LotteryState(
                id=STATE_ROW_ID,
                owner=owner,
                total_tickets=0,
                total_draws=0,
                balance=0,
            )
            session.add(state)
            session.flush()
        return state

    def add_event(self, session: Session, name: str, player: str, tx_hash: str) -> LotteryEvent:
        event = LotteryEvent(name=name, player=player, tx_hash=tx_hash)
        session.add(event)
        session.flush()
        return event

    def list_events(self, session: Session, player: str | None = None, limit: int = 100) -> Sequence[LotteryEvent]:
        stmt = select(LotteryEvent)
        if player is not None:
            stmt = stmt.where(LotteryEvent.player == player)
        stmt = stmt.order_by(LotteryEvent.id.desc()).limit(int(limit))
        return list(session.scalars(stmt).all())
