"""
Attempt history - save/load a player's scored attempts, keyed by player id.
"""
import logging
from datetime import datetime
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ecoops.exceptions import PersistenceError
from ecoops.models.attempt import Attempt

logger = logging.getLogger(__name__)


class HistoryStore(Protocol):
    async def save_attempt(self, player_id: str, record: dict) -> None: ...

    async def load_attempts(self, player_id: str) -> list[dict]: ...


class SqlAlchemyHistoryStore:
    """History store backed by the ``attempts`` table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def save_attempt(self, player_id: str, record: dict) -> None:
        try:
            async with self.session_maker() as db:
                db.add(Attempt(
                    player_id=player_id,
                    timestamp=datetime.fromisoformat(record["timestamp"]),
                    crop=record["crop"],
                    points_earned=record["points_earned"],
                    quiz_correct=record["quiz_correct"],
                    difficulty=record["difficulty"],
                    sliders=record["sliders"],
                    symptoms=record["symptoms"],
                    scenario_type=record.get("scenario_type", "generated"),
                ))
                await db.commit()
        except (SQLAlchemyError, OSError, KeyError, ValueError) as e:
            raise PersistenceError(f"Could not save attempt for {player_id}: {e}") from e

    async def load_attempts(self, player_id: str) -> list[dict]:
        try:
            async with self.session_maker() as db:
                result = await db.execute(
                    select(Attempt).where(Attempt.player_id == player_id).order_by(Attempt.id)
                )
                return [row.to_record() for row in result.scalars().all()]
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Could not load attempts for {player_id}: {e}") from e


async def save_attempt_quietly(store: HistoryStore, player_id: str, record: dict) -> None:
    """Background-task wrapper: a failed save is logged, never raised."""
    try:
        await store.save_attempt(player_id, record)
        logger.info("Saved attempt for %s (%s, %d pts)", player_id, record.get("crop"),
                    record.get("points_earned", 0))
    except Exception:
        logger.exception("Failed to save attempt for %s", player_id)
