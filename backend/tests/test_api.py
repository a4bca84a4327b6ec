import pytest
from fastapi.testclient import TestClient

from ecoops.config import Settings
from ecoops.exceptions import ConfigurationError
from ecoops.main import create_app
from ecoops.services.session import SessionRegistry

from conftest import MemoryHistoryStore, auth_header

EVALUATE_BODY = {
    "level": 2,
    "scenarioText": "Lettuce in NFT ... Your Task: ...",
    "sliders": {"temp": 20, "humidity": 60, "light": 12, "co2": 400, "dli": 14},
    "recommendation": "Raise humidity and lower EC.",
}


def test_ping(client):
    assert client.get("/ping").json() == {"pong": True}


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_missing_credential_stops_startup():
    app = create_app(settings=Settings(anthropic_api_key=""), history_store=MemoryHistoryStore())
    with pytest.raises(ConfigurationError):
        with TestClient(app):
            pass


# ── Text-generation mode ────────────────────────────────────────────────────

@pytest.mark.parametrize("body", [{"level": 7}, {"level": 0}, {"level": "3"}, {"level": True}, {}, [3]])
def test_scenario_rejects_invalid_level(client, text_generator, body):
    resp = client.post("/scenario", json=body)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid level (must be 1–6)"}
    assert text_generator.prompts == []


def test_scenario_rejects_non_json_body(client):
    resp = client.post("/scenario", content=b"level=3", headers={"Content-Type": "text/plain"})
    assert resp.status_code == 400


def test_scenario_returns_generated_text(client, text_generator):
    resp = client.post("/scenario", json={"level": 3})
    assert resp.status_code == 200
    scenario = resp.json()["scenario"]
    for marker in ("Crop Type and Growing System", "Current Environmental Conditions",
                   "Observed Plant Symptoms", "Your Task"):
        assert marker in scenario
    assert "Level 3" in text_generator.prompts[0]


def test_scenario_upstream_failure(client, text_generator):
    text_generator.error = RuntimeError("upstream 429 with secret detail")
    resp = client.post("/scenario", json={"level": 2})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to generate scenario"}


def test_evaluate_returns_feedback(client, text_generator):
    text_generator.reply = "- ✅ Correct humidity diagnosis"
    resp = client.post("/evaluate", json=EVALUATE_BODY)
    assert resp.status_code == 200
    assert resp.json() == {"feedback": "- ✅ Correct humidity diagnosis"}
    assert "Raise humidity and lower EC." in text_generator.prompts[0]
    assert "20°C (68°F)" in text_generator.prompts[0]


@pytest.mark.parametrize("field", ["level", "scenarioText", "sliders", "recommendation"])
def test_evaluate_rejects_missing_fields(client, field):
    body = {k: v for k, v in EVALUATE_BODY.items() if k != field}
    resp = client.post("/evaluate", json=body)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Malformed request"}


def test_evaluate_rejects_mistyped_sliders(client):
    body = dict(EVALUATE_BODY, sliders={"temp": "warm", "humidity": 60, "light": 12, "co2": 400, "dli": 14})
    assert client.post("/evaluate", json=body).status_code == 400
    body = dict(EVALUATE_BODY, recommendation="")
    assert client.post("/evaluate", json=body).status_code == 400


def test_evaluate_upstream_failure(client, text_generator):
    text_generator.error = TimeoutError()
    resp = client.post("/evaluate", json=EVALUATE_BODY)
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to evaluate recommendation"}


# ── Rules-engine mode ───────────────────────────────────────────────────────

LETTUCE_IDEAL = {"temp": 19, "humidity": 60, "light": 10, "co2": 400, "dli": 15, "ec": 0.65, "ph": 5.8}


def test_levels(client):
    levels = client.get("/api/game/levels").json()
    assert [lvl["level"] for lvl in levels] == [1, 2, 3, 4, 5, 6]
    assert levels[3]["name"] == "Fruit & Flower Strategist"


def test_crops_for_level(client):
    crops = client.get("/api/game/crops", params={"level": 1}).json()
    assert [c["name"] for c in crops] == ["Lettuce", "Tomato"]
    assert crops[0]["trivia"]["question"] == "Why does lettuce bolt prematurely?"
    assert "answer" not in crops[0]["trivia"]
    assert client.get("/api/game/crops", params={"level": 9}).status_code == 400


def test_new_session_hides_causes(client):
    resp = client.post("/api/game/sessions", json={"level": 1, "crops": ["Lettuce"]})
    assert resp.status_code == 201
    view = resp.json()
    assert view["crop"] == "Lettuce"
    assert view["level_name"] == "Seedling Scout"
    assert len(view["symptoms"]) == 2
    assert [q["symptom"] for q in view["quiz"]] == view["symptoms"]
    assert "cause" not in view
    assert set(view["environment"]) == {"temp", "humidity", "light", "co2", "dli", "ec", "ph", "do", "airflow"}


def test_new_session_rejects_bad_level(client):
    resp = client.post("/api/game/sessions", json={"level": 8})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid level (must be 1–6)"}


def test_rerender_changes_level(client):
    session_id = client.post("/api/game/sessions", json={"level": 1}).json()["session_id"]
    view = client.post(f"/api/game/sessions/{session_id}/scenario", json={"level": 6}).json()
    assert view["session_id"] == session_id
    assert view["level"] == 6
    assert view["crop"] == "Cannabis"


def test_unknown_session(client):
    resp = client.post("/api/game/sessions/nope/score", json={"settings": LETTUCE_IDEAL})
    assert resp.status_code == 404


def _correct_answers(client, session_id):
    scenario = client.app.state.sessions.get(session_id).scenario
    return [scenario.stressor_for(i).cause for i in range(len(scenario.symptoms))]


def test_score_and_history_for_logged_in_player(client, history_store):
    session_id = client.post("/api/game/sessions", json={"level": 1, "crops": ["Lettuce"]}).json()["session_id"]
    answers = _correct_answers(client, session_id)

    resp = client.post(
        f"/api/game/sessions/{session_id}/score",
        json={"settings": LETTUCE_IDEAL, "answers": answers},
        headers=auth_header("player-1"),
    )
    assert resp.status_code == 200
    result = resp.json()
    assert result["range_points"] == 7
    assert result["symptom_points"] == 4
    assert result["total_points"] == 11
    assert result["verdict"] == "Pass"
    assert result["cause"] == answers[0]
    assert result["parameters"][0]["optimal_fahrenheit"] == [61, 72]

    assert len(history_store.records["player-1"]) == 1
    saved = history_store.records["player-1"][0]
    assert saved["crop"] == "Lettuce"
    assert saved["points_earned"] == 11
    assert saved["sliders"] == LETTUCE_IDEAL

    history = client.get("/api/history", headers=auth_header("player-1")).json()
    assert history["total_points"] == 11
    assert [a["crop"] for a in history["attempts"]] == ["Lettuce"]


def test_anonymous_score_is_not_saved(client, history_store):
    session_id = client.post("/api/game/sessions", json={"level": 2}).json()["session_id"]
    resp = client.post(f"/api/game/sessions/{session_id}/score", json={"settings": LETTUCE_IDEAL})
    assert resp.status_code == 200
    assert resp.json()["symptom_points"] == 0
    assert history_store.records == {}


def test_invalid_token_plays_anonymously(client, history_store):
    session_id = client.post("/api/game/sessions", json={"level": 1}).json()["session_id"]
    resp = client.post(
        f"/api/game/sessions/{session_id}/score",
        json={"settings": LETTUCE_IDEAL},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert resp.status_code == 200
    assert history_store.records == {}


def test_persistence_failure_does_not_block_feedback(settings, text_generator):
    class FailingStore(MemoryHistoryStore):
        async def save_attempt(self, player_id, record):
            from ecoops.exceptions import PersistenceError
            raise PersistenceError("disk full")

    app = create_app(settings=settings, text_generator=text_generator, history_store=FailingStore())
    with TestClient(app) as client:
        session_id = client.post("/api/game/sessions", json={"level": 1}).json()["session_id"]
        resp = client.post(
            f"/api/game/sessions/{session_id}/score",
            json={"settings": LETTUCE_IDEAL},
            headers=auth_header("player-1"),
        )
    assert resp.status_code == 200
    assert "verdict" in resp.json()


def test_history_requires_login(client):
    assert client.get("/api/history").status_code == 401


def test_sessions_are_independent(client):
    first = client.post("/api/game/sessions", json={"level": 1, "crops": ["Lettuce"]}).json()
    second = client.post("/api/game/sessions", json={"level": 5}).json()
    assert first["session_id"] != second["session_id"]
    assert client.app.state.sessions.get(first["session_id"]).difficulty_level == 1
    assert client.app.state.sessions.get(second["session_id"]).difficulty_level == 5


@pytest.mark.parametrize("body", [{"level": "3"}, {"level": 2.5}, {"level": None}])
def test_new_session_rejects_mistyped_level(client, body):
    resp = client.post("/api/game/sessions", json=body)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid level (must be 1–6)"}


def test_crops_rejects_non_numeric_level(client):
    resp = client.get("/api/game/crops", params={"level": "abc"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid level (must be 1–6)"}


def test_rerender_rejects_mistyped_level(client):
    session_id = client.post("/api/game/sessions", json={"level": 1}).json()["session_id"]
    resp = client.post(f"/api/game/sessions/{session_id}/scenario", json={"level": "six"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid level (must be 1–6)"}


def test_score_rejects_malformed_settings(client):
    session_id = client.post("/api/game/sessions", json={"level": 1}).json()["session_id"]
    settings = {k: v for k, v in LETTUCE_IDEAL.items() if k != "ph"}
    resp = client.post(f"/api/game/sessions/{session_id}/score", json={"settings": settings})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Malformed request"}

    settings = dict(LETTUCE_IDEAL, temp="warm")
    resp = client.post(f"/api/game/sessions/{session_id}/score", json={"settings": settings})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Malformed request"}


def test_empty_injected_session_registry_is_kept(settings, text_generator):
    registry = SessionRegistry(max_sessions=2)
    app = create_app(settings=settings, text_generator=text_generator,
                     history_store=MemoryHistoryStore(), sessions=registry)
    with TestClient(app) as client:
        assert client.app.state.sessions is registry
        for _ in range(3):
            client.post("/api/game/sessions", json={"level": 1})
    assert len(registry) == 2
