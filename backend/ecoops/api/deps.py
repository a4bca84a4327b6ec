import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ecoops.config import Settings, get_settings
from ecoops.services.history_store import HistoryStore
from ecoops.services.session import SessionRegistry
from ecoops.services.text_generator import TextGenerator

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_text_generator(request: Request) -> TextGenerator:
    return request.app.state.text_generator


def get_history_store(request: Request) -> HistoryStore:
    return request.app.state.history_store


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


async def get_optional_player_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
) -> str | None:
    """Player id (JWT ``sub``) if a valid bearer token was sent, else None."""
    if credentials is None:
        return None
    try:
        payload = jwt.decode(credentials.credentials, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as e:
        logger.info("Ignoring invalid bearer token: %s", e)
        return None
    return payload.get("sub")


async def require_player_id(player_id: str | None = Depends(get_optional_player_id)) -> str:
    if not player_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Log in to view your history",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return player_id
