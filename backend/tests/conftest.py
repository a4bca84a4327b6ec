import random
from collections import defaultdict

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from ecoops.config import Settings
from ecoops.main import create_app
from ecoops.services.catalog import catalog
from ecoops.services.scenario_generator import Scenario, baseline_environment, apply_stressor
from ecoops.services.session import SessionRegistry
from ecoops.services.text_generator import TextGenerator

TEST_SECRET = "test-secret"

FOUR_SECTION_SCENARIO = """1) Crop Type and Growing System:
Lettuce in an NFT channel system.

2) Current Environmental Conditions:
- Temperature: 27°C (81°F)
- Relative Humidity: 38%

3) Observed Plant Symptoms:
- Brown, crispy leaf margins

Your Task:
1. Identify the primary suspected issue(s).
2. Recommend corrective actions to fix the problem.
3. Explain the underlying plant physiology or system-level rationale."""


class FakeTextGenerator(TextGenerator):
    """Text generator that records prompts instead of calling a provider."""

    def __init__(self, reply: str = FOUR_SECTION_SCENARIO, error: Exception | None = None):
        self.provider = "fake"
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply.strip()


class MemoryHistoryStore:
    def __init__(self):
        self.records: dict[str, list[dict]] = defaultdict(list)

    async def save_attempt(self, player_id: str, record: dict) -> None:
        self.records[player_id].append(dict(record))

    async def load_attempts(self, player_id: str) -> list[dict]:
        return list(self.records[player_id])


def make_scenario(crop_name: str, causes: list[str], seed: int = 0) -> Scenario:
    """Build a scenario with a known crop and stressors."""
    rng = random.Random(seed)
    crop = catalog.get_crop(crop_name)
    stressors = [catalog.find_stressor(crop, cause) for cause in causes]
    stats = baseline_environment(crop)
    for stressor in stressors:
        apply_stressor(stats, stressor, crop, rng)
    symptoms, sources = [], []
    for stressor in stressors:
        symptoms.extend(stressor.symptoms)
        sources.extend([stressor] * len(stressor.symptoms))
    return Scenario(
        id="test",
        level=stressors[0].level,
        crop=crop,
        stressors=stressors,
        stats=stats,
        symptoms=symptoms,
        symptom_sources=sources,
        cause=" + ".join(causes),
    )


def auth_header(player_id: str) -> dict:
    token = jwt.encode({"sub": player_id}, TEST_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings():
    return Settings(anthropic_api_key="test-key", secret_key=TEST_SECRET, log_level="DEBUG")


@pytest.fixture
def text_generator():
    return FakeTextGenerator()


@pytest.fixture
def history_store():
    return MemoryHistoryStore()


@pytest.fixture
def client(settings, text_generator, history_store):
    app = create_app(
        settings=settings,
        text_generator=text_generator,
        history_store=history_store,
        sessions=SessionRegistry(rng=random.Random(7)),
    )
    with TestClient(app) as client:
        yield client
