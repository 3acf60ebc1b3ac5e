"""Repository layer for player records."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from double_draw.models.player_record import PlayerRecord


class PlayerRepository:
    """Keyed store of player records (address -> record)."""

    def get(self, session: Session, address: str) -> PlayerRecord | None:
        return session.get(PlayerRecord, address)

    def lock(self, session: Session, address: str) -> PlayerRecord | None:
        """Fresh read of the record, row-locked until the transaction ends."""

        stmt = (
            select(PlayerRecord)
            .where(PlayerRecord.address == address)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return session.scalars(stmt).one_or_none()

    def create(self, session: Session, address: str) -> PlayerRecord:
        record = PlayerRecord(
            address=address,
            has_ticket=False,
            has_result=False,
            has_points=False,
        )
        session.add(record)
        session.flush()
        return record
