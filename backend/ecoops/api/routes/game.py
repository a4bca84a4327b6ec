"""
Rules-engine mode: catalog browsing, game sessions, scenario rendering and scoring.
"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel, StrictFloat, StrictInt

from ecoops.api.deps import get_history_store, get_optional_player_id, get_sessions
from ecoops.services.catalog import LEVEL_NAMES, catalog, level_name, validate_level
from ecoops.services.history_store import HistoryStore, save_attempt_quietly
from ecoops.services.scenario_generator import AIRFLOW_DESCRIPTIONS
from ecoops.services.scoring import PlayerAttempt, build_attempt_record, result_as_dict, to_fahrenheit
from ecoops.services.session import GameSession, SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


# Schemas
class NewSessionRequest(BaseModel):
    level: StrictInt = 1
    crops: list[str] | None = None


class RenderRequest(BaseModel):
    level: StrictInt | None = None
    crops: list[str] | None = None


class SliderSettings(BaseModel):
    temp: StrictInt | StrictFloat
    humidity: StrictInt | StrictFloat
    light: StrictInt | StrictFloat
    co2: StrictInt | StrictFloat
    dli: StrictInt | StrictFloat
    ec: StrictInt | StrictFloat
    ph: StrictInt | StrictFloat


class ScoreRequest(BaseModel):
    settings: SliderSettings
    answers: list[str | None] = []


def _get_session_or_404(sessions: SessionRegistry, session_id: str) -> GameSession:
    session = sessions.get(session_id)
    if not session:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found",
        )
    return session


def _scenario_view(session: GameSession) -> dict:
    """What the player sees before scoring: no causes revealed."""
    scenario = session.scenario
    stats = scenario.stats
    temp = stats["temp"]
    return {
        "session_id": session.id,
        "scenario_id": scenario.id,
        "level": scenario.level,
        "level_name": level_name(scenario.level),
        "crop": scenario.crop.name,
        "environment": stats,
        "temp_fahrenheit": to_fahrenheit(temp) if isinstance(temp, (int, float)) else None,
        "airflow_description": AIRFLOW_DESCRIPTIONS.get(stats["airflow"], stats["airflow"]),
        "symptoms": scenario.symptoms,
        "quiz": [{"symptom": q.symptom, "options": q.options} for q in scenario.quiz],
        "started_at": session.started_at.isoformat(),
    }


# Routes
@router.get("/levels")
async def list_levels():
    return [{"level": i, "name": name} for i, name in enumerate(LEVEL_NAMES, start=1)]


@router.get("/crops")
async def list_crops(level: int):
    validate_level(level)
    return [
        {
            "name": crop.name,
            "levels": sorted(crop.levels),
            "trivia": {
                "question": crop.trivia.question,
                "options": list(crop.trivia.options),
            } if crop.trivia else None,
        }
        for crop in catalog.crops_for_level(level)
    ]


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def create_session(
    request: NewSessionRequest,
    sessions: SessionRegistry = Depends(get_sessions),
):
    session = sessions.create(level=validate_level(request.level), crop_filter=request.crops)
    return _scenario_view(session)


@router.post("/sessions/{session_id}/scenario")
async def render_scenario(
    session_id: str,
    request: RenderRequest,
    sessions: SessionRegistry = Depends(get_sessions),
):
    session = _get_session_or_404(sessions, session_id)
    level = validate_level(request.level) if request.level is not None else None
    sessions.render(session, level=level, crop_filter=request.crops)
    return _scenario_view(session)


@router.post("/sessions/{session_id}/score")
async def score_session(
    session_id: str,
    request: ScoreRequest,
    background_tasks: BackgroundTasks,
    sessions: SessionRegistry = Depends(get_sessions),
    store: HistoryStore = Depends(get_history_store),
    player_id: str | None = Depends(get_optional_player_id),
):
    session = _get_session_or_404(sessions, session_id)
    attempt = PlayerAttempt(settings=request.settings.model_dump(), answers=request.answers)
    result = session.score(attempt)

    if player_id:
        record = build_attempt_record(session.scenario, attempt, result)
        background_tasks.add_task(save_attempt_quietly, store, player_id, record)

    response = result_as_dict(result)
    response["cause"] = session.scenario.cause
    response["crop"] = session.scenario.crop.name
    response["level"] = session.scenario.level
    return response
