"""
Scenario Generator - picks a crop and one or two stressors for a level and
derives the simulated environment and observed symptoms.

The random source is injected so generation is reproducible under test.
"""
import logging
import random
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterable

from ecoops.exceptions import CatalogInvariantViolation
from ecoops.services.catalog import (
    Catalog,
    CropDefinition,
    StressorRule,
    catalog as default_catalog,
    validate_level,
)

logger = logging.getLogger(__name__)

ERRATIC = "erratic"

# Channels a failing sensor reports as erratic
FAULT_CHANNELS = ("temp", "humidity")

AIRFLOW_ADEQUATE = "adequate"
AIRFLOW_STAGNANT = "stagnant"

AIRFLOW_DESCRIPTIONS = {
    AIRFLOW_ADEQUATE: "Adequate HAF fans",
    AIRFLOW_STAGNANT: "No HAF fans; stagnant air",
}

# Fixed near-optimal defaults; EC and pH come from the crop's midpoints
BASELINE_DEFAULTS = {
    "temp": 25,
    "humidity": 60,
    "light": 12,
    "co2": 450,
    "dli": 20,
}
BASELINE_DISSOLVED_OXYGEN = 8

EnvironmentValue = float | int | str
EnvironmentState = dict[str, EnvironmentValue]
Perturbation = Callable[[CropDefinition, random.Random], dict[str, EnvironmentValue]]


@dataclass
class SymptomQuestion:
    """Multiple-choice "likely trigger" question for one observed symptom."""
    symptom: str
    options: list[str]


@dataclass
class Scenario:
    id: str
    level: int
    crop: CropDefinition
    stressors: list[StressorRule]
    stats: EnvironmentState
    symptoms: list[str]
    # Stressor that produced each entry of ``symptoms``, index-aligned
    symptom_sources: list[StressorRule]
    cause: str
    quiz: list[SymptomQuestion] = field(default_factory=list)

    def stressor_for(self, index: int) -> StressorRule:
        return self.symptom_sources[index]


# --- Perturbations ---

PERTURBATIONS: dict[str, Perturbation] = {}


def perturbation(tag: str):
    """Register the absolute-value perturbation for an affected-parameter tag."""
    def register(fn: Perturbation) -> Perturbation:
        PERTURBATIONS[tag] = fn
        return fn
    return register


@perturbation("temp")
def _high_temperature(crop, rng):
    return {"temp": 35}


@perturbation("humidity")
def _high_humidity(crop, rng):
    return {"humidity": 85}


@perturbation("light")
def _long_photoperiod(crop, rng):
    return {"light": 20}


@perturbation("co2")
def _low_co2(crop, rng):
    return {"co2": 300}


@perturbation("dli")
def _extreme_dli(crop, rng):
    return {"dli": 0 if rng.random() < 0.5 else 45}


@perturbation("ec")
def _high_ec(crop, rng):
    return {"ec": round(crop.prefs.ec[1] + 1, 2)}


@perturbation("ph")
def _high_ph(crop, rng):
    return {"ph": round(crop.prefs.ph[1] + 0.5, 2)}


@perturbation("do")
def _low_dissolved_oxygen(crop, rng):
    return {"do": 3}


@perturbation("airflow")
def _stagnant_air(crop, rng):
    return {"airflow": AIRFLOW_STAGNANT}


@perturbation("nutrient")
def _nutrient_deficit(crop, rng):
    return {"ec": round(crop.prefs.ec[0] - 0.3, 2)}


@perturbation("disease")
def _disease_humidity(crop, rng):
    return {"humidity": 90}


@perturbation("sensor")
def _sensor_fault(crop, rng):
    return {channel: ERRATIC for channel in FAULT_CHANNELS}


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    lo, hi = bounds
    return min(max(value, lo), hi)


def baseline_environment(crop: CropDefinition) -> EnvironmentState:
    """Near-optimal starting state for a crop, before any stressor is applied."""
    stats: EnvironmentState = {
        key: _clamp(default, crop.prefs.get(key)) for key, default in BASELINE_DEFAULTS.items()
    }
    stats["ec"] = round(sum(crop.prefs.ec) / 2, 2)
    stats["ph"] = round(sum(crop.prefs.ph) / 2, 2)
    stats["do"] = BASELINE_DISSOLVED_OXYGEN
    stats["airflow"] = AIRFLOW_ADEQUATE
    return stats


def apply_stressor(stats: EnvironmentState, stressor: StressorRule, crop: CropDefinition,
                   rng: random.Random) -> None:
    """Write each affected tag's perturbation into ``stats``; later writes win."""
    for tag in stressor.affects:
        fn = PERTURBATIONS.get(tag)
        if fn is None:
            raise CatalogInvariantViolation(f"No perturbation registered for tag '{tag}'")
        stats.update(fn(crop, rng))


def _choose_stressors(candidates: list[StressorRule], level: int, rng: random.Random) -> list[StressorRule]:
    if level == 1 or len(candidates) == 1 or rng.random() < 0.5:
        return [candidates[rng.randrange(len(candidates))]]
    first = rng.randrange(len(candidates))
    second = rng.randrange(len(candidates))
    while second == first:
        second = rng.randrange(len(candidates))
    return [candidates[first], candidates[second]]


def _build_quiz(crop: CropDefinition, sources: list[StressorRule], symptoms: list[str],
                rng: random.Random, cat: Catalog) -> list[SymptomQuestion]:
    all_causes = cat.all_causes(crop)
    quiz = []
    for symptom, source in zip(symptoms, sources):
        distractors = [c for c in all_causes if c != source.cause]
        options = [source.cause]
        while len(options) < 4 and distractors:
            options.append(distractors.pop(rng.randrange(len(distractors))))
        rng.shuffle(options)
        quiz.append(SymptomQuestion(symptom=symptom, options=options))
    return quiz


def generate_scenario(
    level: int,
    crop_filter: Iterable[str] | str | None = None,
    rng: random.Random | None = None,
    cat: Catalog = default_catalog,
) -> Scenario:
    """Build a fresh scenario for ``level``.

    Args:
        level: Difficulty level, 1..6.
        crop_filter: Crop names to draw from, or None / "all" for every
            eligible crop. Falls back to every eligible crop if the filter
            leaves nothing.
        rng: Random source. A new unseeded ``random.Random`` if omitted.
        cat: Catalog to draw from.
    """
    validate_level(level)
    rng = rng or random.Random()

    eligible = cat.eligible_crops(level, crop_filter)
    if not eligible:
        logger.error("No crop is eligible at level %d", level)
        raise CatalogInvariantViolation(f"No crop is eligible at level {level}")
    crop = eligible[rng.randrange(len(eligible))]

    candidates = cat.stressors_at(crop, level)
    if not candidates:
        logger.error("%s has no stressor at level %d", crop.name, level)
        raise CatalogInvariantViolation(f"{crop.name} has no stressor at level {level}")
    chosen = _choose_stressors(candidates, level, rng)

    stats = baseline_environment(crop)
    for stressor in chosen:
        apply_stressor(stats, stressor, crop, rng)

    symptoms: list[str] = []
    sources: list[StressorRule] = []
    for stressor in chosen:
        symptoms.extend(stressor.symptoms)
        sources.extend([stressor] * len(stressor.symptoms))

    scenario = Scenario(
        id=uuid.UUID(int=rng.getrandbits(128), version=4).hex,
        level=level,
        crop=crop,
        stressors=chosen,
        stats=stats,
        symptoms=symptoms,
        symptom_sources=sources,
        cause=" + ".join(s.cause for s in chosen),
        quiz=_build_quiz(crop, sources, symptoms, rng, cat),
    )
    logger.info("Generated level %d scenario for %s: %s", level, crop.name, scenario.cause)
    return scenario
