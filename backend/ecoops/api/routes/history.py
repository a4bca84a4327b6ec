import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ecoops.api.deps import get_history_store, require_player_id
from ecoops.exceptions import PersistenceError
from ecoops.services.history_store import HistoryStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def get_history(
    player_id: str = Depends(require_player_id),
    store: HistoryStore = Depends(get_history_store),
):
    """Past scored attempts for the logged-in player, oldest first."""
    try:
        attempts = await store.load_attempts(player_id)
    except PersistenceError as e:
        logger.error("History load failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="History is unavailable",
        )

    return {
        "attempts": attempts,
        "total_points": sum(a.get("points_earned", 0) for a in attempts),
    }
