"""
Free-text mode: scenario and feedback generation by the text-generation
provider. Bypasses the rules engine entirely.
"""
import json
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field, StrictInt, StrictFloat, StrictStr, ValidationError

from ecoops.exceptions import InvalidRequestError
from ecoops.api.deps import get_text_generator
from ecoops.services.catalog import validate_level
from ecoops.services.text_generator import TextGenerator

logger = logging.getLogger(__name__)

router = APIRouter()

MALFORMED_REQUEST = "Malformed request"
INVALID_LEVEL = "Invalid level (must be 1–6)"


# Schemas
class ScenarioRequest(BaseModel):
    level: StrictInt


class ScenarioResponse(BaseModel):
    scenario: str


class SliderReadings(BaseModel):
    temp: StrictInt | StrictFloat
    humidity: StrictInt | StrictFloat
    light: StrictInt | StrictFloat
    co2: StrictInt | StrictFloat
    dli: StrictInt | StrictFloat


class EvaluateRequest(BaseModel):
    level: StrictInt
    scenarioText: StrictStr = Field(min_length=1)
    sliders: SliderReadings
    recommendation: StrictStr = Field(min_length=1)


class FeedbackResponse(BaseModel):
    feedback: str


async def _read_body(request: Request, schema: type[BaseModel], message: str) -> BaseModel:
    """Parse the JSON body into ``schema``; any problem becomes a one-line 400."""
    try:
        body = await request.json()
        return schema.model_validate(body)
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
        logger.info("Rejected %s request: %s", request.url.path, e)
        raise InvalidRequestError(message) from e


# Routes
@router.post("/scenario", response_model=ScenarioResponse)
async def generate_text_scenario(
    request: Request,
    generator: TextGenerator = Depends(get_text_generator),
):
    body = await _read_body(request, ScenarioRequest, INVALID_LEVEL)
    level = validate_level(body.level)

    text = await generator.request_scenario(level)
    return ScenarioResponse(scenario=text)


@router.post("/evaluate", response_model=FeedbackResponse)
async def evaluate_recommendation(
    request: Request,
    generator: TextGenerator = Depends(get_text_generator),
):
    body = await _read_body(request, EvaluateRequest, MALFORMED_REQUEST)
    feedback = await generator.request_evaluation(
        level=body.level,
        scenario_text=body.scenarioText,
        sliders=body.sliders.model_dump(),
        recommendation=body.recommendation,
    )
    return FeedbackResponse(feedback=feedback)
