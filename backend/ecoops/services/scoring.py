"""
Scoring Engine - grades a player's parameter settings and symptom-cause
answers against a generated scenario.

``score`` is a pure function of (scenario, attempt): persisting the result is
the caller's job (see ``build_attempt_record`` and the history store).
"""
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from ecoops.services.catalog import CORE_PARAMETERS, Catalog, Range
from ecoops.services.explanations import explanations_for
from ecoops.services.scenario_generator import Scenario

PASS_THRESHOLD = 4
POINTS_PER_CORRECT_CAUSE = 2
NO_ANSWER = "No answer"


def to_fahrenheit(celsius: float) -> int:
    """Convert to Fahrenheit, rounded half up to the nearest degree."""
    return math.floor(celsius * 9 / 5 + 32 + 0.5)


def between(value: float, bounds: Range) -> bool:
    lo, hi = bounds
    return lo <= value <= hi


@dataclass
class PlayerAttempt:
    """Slider values keyed by core parameter, plus one answer per symptom."""
    settings: dict[str, float]
    answers: list[str | None] = field(default_factory=list)

    def answer_for(self, index: int) -> str | None:
        if index < len(self.answers):
            return self.answers[index] or None
        return None


@dataclass
class ParameterFeedback:
    key: str
    label: str
    unit: str
    value: float
    in_range: bool
    optimal: Range
    explanation: str
    # Only set for temperature
    optimal_fahrenheit: tuple[int, int] | None = None


@dataclass
class SymptomFeedback:
    symptom: str
    answer: str | None
    correct: bool
    correct_cause: str
    correct_cause_symptoms: str
    message: str
    wrong_answer_explanation: str | None = None


@dataclass
class ScoreResult:
    range_points: int
    symptom_points: int
    parameters: list[ParameterFeedback]
    symptoms: list[SymptomFeedback]
    time_taken_seconds: int | None = None

    @property
    def total_points(self) -> int:
        return self.range_points + self.symptom_points

    @property
    def passed(self) -> bool:
        return self.total_points >= PASS_THRESHOLD

    @property
    def verdict(self) -> str:
        return "Pass" if self.passed else "Needs Improvement"

    @property
    def quiz_correct(self) -> bool:
        return self.symptom_points > 0


def _parameter_feedback(scenario: Scenario, attempt: PlayerAttempt) -> list[ParameterFeedback]:
    explanations = explanations_for(scenario.crop.name)
    feedback = []
    for param in CORE_PARAMETERS:
        value = attempt.settings[param.key]
        optimal = scenario.crop.prefs.get(param.key)
        ok = between(value, optimal)
        feedback.append(ParameterFeedback(
            key=param.key,
            label=param.label,
            unit=param.unit,
            value=value,
            in_range=ok,
            optimal=optimal,
            explanation=explanations.get(param.key).render(ok, value),
            optimal_fahrenheit=(
                (to_fahrenheit(optimal[0]), to_fahrenheit(optimal[1])) if param.key == "temp" else None
            ),
        ))
    return feedback


def _wrong_answer_explanation(scenario: Scenario, symptom: str, answer: str | None) -> str:
    if answer is None:
        return f"{NO_ANSWER}: you did not select a cause for “{symptom}.”"
    chosen = Catalog.find_stressor(scenario.crop, answer)
    if chosen is None:
        return f"“{answer}” is not associated with “{symptom}.”"
    return f"“{answer}” typically causes {' or '.join(chosen.symptoms)}, not “{symptom}.”"


def _symptom_feedback(scenario: Scenario, attempt: PlayerAttempt) -> list[SymptomFeedback]:
    feedback = []
    for index, symptom in enumerate(scenario.symptoms):
        source = scenario.stressor_for(index)
        answer = attempt.answer_for(index)
        correct = answer == source.cause
        correct_symptoms = " or ".join(source.symptoms)
        if correct:
            feedback.append(SymptomFeedback(
                symptom=symptom,
                answer=answer,
                correct=True,
                correct_cause=source.cause,
                correct_cause_symptoms=correct_symptoms,
                message=(
                    f"Good job! “{source.cause}” is known to produce {correct_symptoms}, "
                    f"which matches the observed “{symptom}.”"
                ),
            ))
            continue
        wrong = _wrong_answer_explanation(scenario, symptom, answer)
        feedback.append(SymptomFeedback(
            symptom=symptom,
            answer=answer,
            correct=False,
            correct_cause=source.cause,
            correct_cause_symptoms=correct_symptoms,
            message=(
                f"Incorrect – {wrong} The correct cause is “{source.cause},” which is known "
                f"to lead to {correct_symptoms}, matching the observed “{symptom}.”"
            ),
            wrong_answer_explanation=wrong if answer is not None else None,
        ))
    return feedback


def score(scenario: Scenario, attempt: PlayerAttempt, started_at: datetime | None = None,
          now: datetime | None = None) -> ScoreResult:
    """Score an attempt.

    Range score: one point per core parameter inside the crop's inclusive
    optimal interval. Symptom score: two points per symptom whose selected
    cause exactly matches the stressor that produced it.
    """
    missing = [p.key for p in CORE_PARAMETERS if p.key not in attempt.settings]
    if missing:
        raise KeyError(f"Missing settings: {', '.join(missing)}")

    parameters = _parameter_feedback(scenario, attempt)
    symptoms = _symptom_feedback(scenario, attempt)

    time_taken = None
    if started_at is not None:
        now = now or datetime.now(timezone.utc)
        time_taken = round((now - started_at).total_seconds())

    return ScoreResult(
        range_points=sum(1 for p in parameters if p.in_range),
        symptom_points=sum(POINTS_PER_CORRECT_CAUSE for s in symptoms if s.correct),
        parameters=parameters,
        symptoms=symptoms,
        time_taken_seconds=time_taken,
    )


def build_attempt_record(scenario: Scenario, attempt: PlayerAttempt, result: ScoreResult,
                         mode: str = "generated", timestamp: datetime | None = None) -> dict:
    """The history record persisted for a scored attempt."""
    return {
        "timestamp": (timestamp or datetime.now(timezone.utc)).isoformat(),
        "crop": scenario.crop.name,
        "points_earned": result.total_points,
        "quiz_correct": result.quiz_correct,
        "difficulty": scenario.level,
        "sliders": dict(attempt.settings),
        "symptoms": list(scenario.symptoms),
        "scenario_type": mode,
    }


def result_as_dict(result: ScoreResult) -> dict:
    data = asdict(result)
    data.update(
        total_points=result.total_points,
        passed=result.passed,
        verdict=result.verdict,
        quiz_correct=result.quiz_correct,
    )
    return data
