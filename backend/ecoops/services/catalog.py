"""
Domain Catalog - static crop definitions, optimal ranges and stressor rules.

Reference data only: everything here is built once at import time and never
mutated. The catalog is validated on import so a content-authoring mistake
fails loudly instead of surfacing as an empty scenario later.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable

from ecoops.exceptions import CatalogInvariantViolation, InvalidRequestError

logger = logging.getLogger(__name__)

MIN_LEVEL = 1
MAX_LEVEL = 6

LEVEL_NAMES = [
    "Seedling Scout",
    "Vegetative Voyager",
    "Budding Specialist",
    "Fruit & Flower Strategist",
    "Yield Champion",
    "Greenhouse Grandmaster",
]

# Crop filter value meaning "no filter"
ALL_CROPS = "all"

Range = tuple[float, float]


@dataclass(frozen=True)
class ParameterSpec:
    """A core, player-adjustable parameter."""
    key: str
    label: str
    unit: str = ""


CORE_PARAMETERS: list[ParameterSpec] = [
    ParameterSpec("temp", "Temperature", "°C"),
    ParameterSpec("humidity", "Humidity", "%"),
    ParameterSpec("light", "Photoperiod", " hrs"),
    ParameterSpec("co2", "CO₂", " ppm"),
    ParameterSpec("dli", "DLI", " mol/m²/day"),
    ParameterSpec("ec", "EC", " mS/cm"),
    ParameterSpec("ph", "pH", ""),
]

CORE_PARAMETER_KEYS = [p.key for p in CORE_PARAMETERS]


@dataclass(frozen=True)
class PreferenceRanges:
    """Inclusive optimal [min, max] interval for each core parameter."""
    temp: Range
    humidity: Range
    light: Range
    co2: Range
    dli: Range
    ec: Range
    ph: Range

    def get(self, key: str) -> Range:
        if key not in CORE_PARAMETER_KEYS:
            raise KeyError(key)
        return getattr(self, key)

    def as_dict(self) -> dict[str, Range]:
        return {key: self.get(key) for key in CORE_PARAMETER_KEYS}


@dataclass(frozen=True)
class StressorRule:
    """A named deviation that perturbs the environment and produces symptoms."""
    level: int
    cause: str
    affects: tuple[str, ...]
    symptoms: tuple[str, ...]


@dataclass(frozen=True)
class TriviaQuestion:
    question: str
    options: tuple[str, ...]
    answer: str


@dataclass(frozen=True)
class CropDefinition:
    name: str
    levels: frozenset[int]
    prefs: PreferenceRanges
    stressors: tuple[StressorRule, ...] = field(default_factory=tuple)
    trivia: TriviaQuestion | None = None


def _stressor(level: int, cause: str, affects: list[str], symptoms: list[str]) -> StressorRule:
    return StressorRule(level=level, cause=cause, affects=tuple(affects), symptoms=tuple(symptoms))


# --- Crops ---

def _lettuce() -> CropDefinition:
    return CropDefinition(
        name="Lettuce",
        levels=frozenset({1, 2, 3}),
        prefs=PreferenceRanges(
            temp=(16, 22),
            humidity=(50, 70),
            light=(8, 12),
            co2=(350, 450),
            dli=(12, 18),
            ec=(0.5, 0.8),
            ph=(5.5, 6.2),
        ),
        stressors=(
            _stressor(1, "Low humidity", ["humidity"], ["Tip burn", "Leaf curling"]),
            _stressor(1, "Low DLI", ["dli"], ["Elongated internodes", "Pale leaves"]),
            _stressor(1, "EC too high", ["ec"], ["Tip burn", "Stunted roots"]),
            _stressor(1, "pH too high", ["ph"], ["Interveinal chlorosis", "Leaf yellowing"]),
            _stressor(2, "High temperature + High DLI", ["temp", "dli"], ["Bolting", "Leaf scorch"]),
            _stressor(2, "EC too low + Low humidity", ["ec", "humidity"], ["Wilting", "Pale leaves"]),
            _stressor(2, "Low pH + Low dissolved oxygen", ["ph", "do"], ["Root stunting", "Curling leaf tips"]),
            _stressor(
                3, "High EC + High DLI under low airflow", ["ec", "dli", "airflow"],
                ["Salt buildup spots", "Leggy yet crispy leaves"],
            ),
            _stressor(
                3, "Low DLI + Low pH under high humidity", ["dli", "ph", "humidity"],
                ["Weak stem elongation", "Mold on lower leaves"],
            ),
        ),
        trivia=TriviaQuestion(
            question="Why does lettuce bolt prematurely?",
            options=("Too much heat", "Low CO₂", "Too much humidity", "Low photoperiod"),
            answer="Too much heat",
        ),
    )


def _tomato() -> CropDefinition:
    return CropDefinition(
        name="Tomato",
        levels=frozenset({1, 2, 3, 4}),
        prefs=PreferenceRanges(
            temp=(22, 28),
            humidity=(55, 70),
            light=(12, 18),
            co2=(400, 500),
            dli=(20, 30),
            ec=(0.8, 1.2),
            ph=(5.8, 6.5),
        ),
        stressors=(
            _stressor(1, "Overwatering", ["humidity"], ["Root rot", "Leaf yellowing"]),
            _stressor(1, "Low DLI", ["dli"], ["Leggy growth", "Poor fruit set"]),
            _stressor(1, "EC too low", ["ec"], ["Blossom drop", "Pale new leaves"]),
            _stressor(1, "High pH", ["ph"], ["Interveinal chlorosis", "Flower abortion"]),
            _stressor(2, "High temperature + Low humidity", ["temp", "humidity"], ["Wilted tops", "Fruit cracking"]),
            _stressor(2, "Low CO₂ + Low DLI", ["co2", "dli"], ["Slow flowering", "Yellow older leaves"]),
            _stressor(
                3, "High DLI under nutrient lockout (high EC)", ["dli", "ec"],
                ["Leaf curl edges", "Sparse fruit set"],
            ),
            _stressor(3, "High CO₂ + Slight pH drift", ["co2", "ph"], ["Misshapen fruit", "Subtle interveinal striping"]),
            _stressor(
                4, "Low airflow + High DLI + High humidity", ["airflow", "dli", "humidity"],
                ["Early blossom rot", "Pale new leaves"],
            ),
        ),
        trivia=TriviaQuestion(
            question="What causes blossom end rot in tomatoes?",
            options=("Low calcium", "Too much sunlight", "High nitrogen", "Fungal disease"),
            answer="Low calcium",
        ),
    )


def _cannabis() -> CropDefinition:
    return CropDefinition(
        name="Cannabis",
        levels=frozenset({2, 3, 4, 5, 6}),
        prefs=PreferenceRanges(
            temp=(22, 28),
            humidity=(50, 60),
            light=(18, 20),
            co2=(600, 800),
            dli=(30, 40),
            ec=(1.0, 1.2),
            ph=(5.8, 6.0),
        ),
        stressors=(
            _stressor(2, "Nitrogen deficiency", ["ec"], ["Yellow lower leaves", "Stunted growth"]),
            _stressor(2, "Low DLI", ["dli"], ["Slow veg growth", "Stretching"]),
            _stressor(3, "Low CO₂ + High DLI", ["co2", "dli"], ["Leaf burn", "Sparse trichomes"]),
            _stressor(3, "High humidity + Slight pH drift", ["humidity", "ph"], ["Mold spots", "Leaf tip burn"]),
            _stressor(
                4, "High DLI + High EC under low airflow", ["dli", "ec", "airflow"],
                ["Leaf edge burn", "Leaf curl in canopy"],
            ),
            _stressor(5, "Low pH + Low dissolved oxygen", ["ph", "do"], ["Root rot smell", "Drooping leaves"]),
            _stressor(5, "High DLI + Low nitrogen", ["dli", "nutrient"], ["Yellowing interveinal", "Weak bud set"]),
            _stressor(
                6, "Sensor failure + Random pH swings", ["sensor", "ph"],
                ["Wild parameter readings", "Uneven canopy growth"],
            ),
            _stressor(
                6, "Extreme DLI variance (lighting fault) + High CO₂", ["dli", "co2"],
                ["Growth stops intermittently", "Heat stress patterns"],
            ),
        ),
        trivia=TriviaQuestion(
            question="What is the ideal flowering photoperiod for cannabis?",
            options=("12/12", "18/6", "20/4", "6/18"),
            answer="12/12",
        ),
    )


def _strawberries() -> CropDefinition:
    return CropDefinition(
        name="Strawberries",
        levels=frozenset({3, 4}),
        prefs=PreferenceRanges(
            temp=(18, 24),
            humidity=(60, 75),
            light=(10, 16),
            co2=(400, 500),
            dli=(15, 25),
            ec=(1.2, 1.6),
            ph=(5.8, 6.2),
        ),
        stressors=(
            _stressor(3, "Fungal disease + High humidity", ["disease", "humidity"], ["Gray mold", "Soft fruit"]),
            _stressor(3, "Low DLI + Slight nutrient stress", ["dli", "nutrient"], ["Small berries", "Slow flowering"]),
            _stressor(4, "High photoperiod + High DLI", ["light", "dli"], ["Leaf scorch", "Leaf bleaching"]),
            _stressor(4, "Low pH + High DLI", ["ph", "dli"], ["Poor fruit flavor", "Yellowing leaves"]),
        ),
        trivia=TriviaQuestion(
            question="What pest often affects strawberries?",
            options=("Spider mites", "Aphids", "Thrips", "All of the above"),
            answer="All of the above",
        ),
    )


# --- Lookups ---

def validate_level(level) -> int:
    """Return ``level`` if it is an integer in 1..6, else raise InvalidRequestError."""
    if isinstance(level, bool) or not isinstance(level, int) or not MIN_LEVEL <= level <= MAX_LEVEL:
        raise InvalidRequestError(f"Invalid level (must be {MIN_LEVEL}–{MAX_LEVEL})")
    return level


def level_name(level: int) -> str:
    return LEVEL_NAMES[validate_level(level) - 1]


def validate_catalog(crops: Iterable[CropDefinition]) -> None:
    """Check that stressor levels and crop levels agree in both directions."""
    for crop in crops:
        for stressor in crop.stressors:
            if stressor.level not in crop.levels:
                raise CatalogInvariantViolation(
                    f"{crop.name}: stressor '{stressor.cause}' is at level {stressor.level}, "
                    f"which is not one of the crop's levels {sorted(crop.levels)}"
                )
        for level in crop.levels:
            if not any(s.level == level for s in crop.stressors):
                raise CatalogInvariantViolation(f"{crop.name}: no stressor defined at level {level}")


class Catalog:
    """Read-only view over a set of crop definitions."""

    def __init__(self, crops: Iterable[CropDefinition]):
        self.crops: tuple[CropDefinition, ...] = tuple(crops)
        validate_catalog(self.crops)
        self._by_name = {crop.name: crop for crop in self.crops}
        logger.debug("Catalog loaded with %d crops", len(self.crops))

    def get_crop(self, name: str) -> CropDefinition | None:
        return self._by_name.get(name)

    def crops_for_level(self, level: int) -> list[CropDefinition]:
        return [crop for crop in self.crops if level in crop.levels]

    def eligible_crops(self, level: int, crop_filter: Iterable[str] | str | None = None) -> list[CropDefinition]:
        """Crops allowed at ``level``, narrowed by ``crop_filter``.

        A filter of None, "all", an empty collection, or one containing "all"
        means no filtering. If the filter matches nothing at this level the
        unfiltered list is returned instead.
        """
        allowed = self.crops_for_level(level)
        if crop_filter is None or crop_filter == ALL_CROPS:
            return allowed
        names = {crop_filter} if isinstance(crop_filter, str) else set(crop_filter)
        if not names or ALL_CROPS in names:
            return allowed
        filtered = [crop for crop in allowed if crop.name in names]
        return filtered or allowed

    @staticmethod
    def stressors_at(crop: CropDefinition, level: int) -> list[StressorRule]:
        return [s for s in crop.stressors if s.level == level]

    @staticmethod
    def all_causes(crop: CropDefinition) -> list[str]:
        """Unique cause labels of a crop, in catalog order."""
        return list(dict.fromkeys(s.cause for s in crop.stressors))

    @staticmethod
    def find_stressor(crop: CropDefinition, cause: str) -> StressorRule | None:
        return next((s for s in crop.stressors if s.cause == cause), None)


# Singleton instance
catalog = Catalog([_lettuce(), _tomato(), _cannabis(), _strawberries()])
