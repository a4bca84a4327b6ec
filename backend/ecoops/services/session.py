"""
Game sessions - the per-player state of the rules-engine mode (difficulty
level, crop filter, current scenario, start time), held explicitly instead of
as process-wide globals so many players can share one server.
"""
import logging
import random
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from ecoops.services.catalog import ALL_CROPS, validate_level
from ecoops.services.scenario_generator import Scenario, generate_scenario
from ecoops.services.scoring import PlayerAttempt, ScoreResult, score

logger = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS = 1000
DEFAULT_SESSION_TTL = timedelta(hours=2)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class GameSession:
    id: str
    difficulty_level: int = 1
    crop_filter: list[str] = field(default_factory=lambda: [ALL_CROPS])
    scenario: Scenario | None = None
    started_at: datetime = field(default_factory=_utcnow)

    def render(self, rng: random.Random | None = None, level: int | None = None,
               crop_filter: list[str] | None = None) -> Scenario:
        """Replace the current scenario with a fresh one and restart the clock."""
        if level is not None:
            self.difficulty_level = validate_level(level)
        if crop_filter is not None:
            self.crop_filter = crop_filter or [ALL_CROPS]
        self.scenario = generate_scenario(self.difficulty_level, self.crop_filter, rng=rng)
        self.started_at = _utcnow()
        return self.scenario

    def score(self, attempt: PlayerAttempt) -> ScoreResult:
        if self.scenario is None:
            raise LookupError("Session has no scenario to score")
        return score(self.scenario, attempt, started_at=self.started_at)


class SessionRegistry:
    """In-process store of active game sessions keyed by id.

    Bounded two ways: sessions whose scenario was rendered more than ``ttl``
    ago are dropped, and once ``max_sessions`` is reached the least recently
    used session is evicted.
    """

    def __init__(self, rng: random.Random | None = None, max_sessions: int = DEFAULT_MAX_SESSIONS,
                 ttl: timedelta = DEFAULT_SESSION_TTL):
        self._sessions: OrderedDict[str, GameSession] = OrderedDict()
        self._rng = rng
        self.max_sessions = max_sessions
        self.ttl = ttl

    def _expired(self, session: GameSession, now: datetime) -> bool:
        return now - session.started_at > self.ttl

    def _prune(self) -> None:
        now = _utcnow()
        for session_id in [sid for sid, s in self._sessions.items() if self._expired(s, now)]:
            del self._sessions[session_id]
            logger.debug("Expired game session %s", session_id)
        while self._sessions and len(self._sessions) >= self.max_sessions:
            session_id, _ = self._sessions.popitem(last=False)
            logger.info("Evicted game session %s (registry full)", session_id)

    def create(self, level: int = 1, crop_filter: list[str] | None = None) -> GameSession:
        session = GameSession(id=uuid.uuid4().hex, difficulty_level=validate_level(level))
        session.render(rng=self._rng, crop_filter=crop_filter)
        self._prune()
        self._sessions[session.id] = session
        logger.info("Started game session %s at level %d", session.id, level)
        return session

    def get(self, session_id: str) -> GameSession | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._expired(session, _utcnow()):
            del self._sessions[session_id]
            return None
        self._sessions.move_to_end(session_id)
        return session

    def render(self, session: GameSession, level: int | None = None,
               crop_filter: list[str] | None = None) -> Scenario:
        return session.render(rng=self._rng, level=level, crop_filter=crop_filter)

    def __len__(self) -> int:
        return len(self._sessions)
