import pytest

from ecoops.exceptions import CatalogInvariantViolation, InvalidRequestError
from ecoops.services.catalog import (
    CORE_PARAMETER_KEYS,
    Catalog,
    CropDefinition,
    LEVEL_NAMES,
    StressorRule,
    catalog,
    level_name,
    validate_level,
)


def test_every_allowed_level_has_a_stressor():
    for crop in catalog.crops:
        for level in crop.levels:
            assert catalog.stressors_at(crop, level), f"{crop.name} @ {level}"


def test_every_stressor_level_is_allowed_for_its_crop():
    for crop in catalog.crops:
        for stressor in crop.stressors:
            assert stressor.level in crop.levels
            assert len(stressor.symptoms) == 2


def test_every_level_has_an_eligible_crop():
    for level in range(1, 7):
        assert catalog.eligible_crops(level)


def test_preference_ranges_cover_all_core_parameters():
    for crop in catalog.crops:
        prefs = crop.prefs.as_dict()
        assert list(prefs) == CORE_PARAMETER_KEYS
        for lo, hi in prefs.values():
            assert lo <= hi


def test_eligible_crops_filters_by_level_and_name():
    assert [c.name for c in catalog.eligible_crops(1)] == ["Lettuce", "Tomato"]
    assert [c.name for c in catalog.eligible_crops(1, ["Tomato"])] == ["Tomato"]
    assert [c.name for c in catalog.eligible_crops(1, "all")] == ["Lettuce", "Tomato"]
    assert [c.name for c in catalog.eligible_crops(1, ["Lettuce", "all"])] == ["Lettuce", "Tomato"]


def test_eligible_crops_falls_back_when_filter_matches_nothing():
    assert [c.name for c in catalog.eligible_crops(1, ["Cannabis"])] == ["Lettuce", "Tomato"]
    assert [c.name for c in catalog.eligible_crops(6, ["Basil"])] == ["Cannabis"]


def test_all_causes_are_unique_and_ordered():
    lettuce = catalog.get_crop("Lettuce")
    causes = catalog.all_causes(lettuce)
    assert causes[0] == "Low humidity"
    assert len(causes) == len(set(causes)) == 9


def test_find_stressor():
    tomato = catalog.get_crop("Tomato")
    assert catalog.find_stressor(tomato, "Overwatering").symptoms == ("Root rot", "Leaf yellowing")
    assert catalog.find_stressor(tomato, "Low humidity") is None


@pytest.mark.parametrize("level", [0, 7, -1, True, "3", 2.0, None])
def test_validate_level_rejects_bad_levels(level):
    with pytest.raises(InvalidRequestError) as exc:
        validate_level(level)
    assert exc.value.message == "Invalid level (must be 1–6)"


def test_level_names():
    assert len(LEVEL_NAMES) == 6
    assert level_name(1) == "Seedling Scout"
    assert level_name(6) == "Greenhouse Grandmaster"


def test_catalog_rejects_level_without_stressor():
    lettuce = catalog.get_crop("Lettuce")
    broken = CropDefinition(
        name="Broken",
        levels=frozenset({1, 2}),
        prefs=lettuce.prefs,
        stressors=(StressorRule(1, "Low DLI", ("dli",), ("Pale leaves", "Stretching")),),
    )
    with pytest.raises(CatalogInvariantViolation, match="no stressor defined at level 2"):
        Catalog([broken])


def test_catalog_rejects_stressor_at_unlisted_level():
    lettuce = catalog.get_crop("Lettuce")
    broken = CropDefinition(
        name="Broken",
        levels=frozenset({1}),
        prefs=lettuce.prefs,
        stressors=(
            StressorRule(1, "Low DLI", ("dli",), ("Pale leaves", "Stretching")),
            StressorRule(3, "High EC", ("ec",), ("Tip burn", "Stunted roots")),
        ),
    )
    with pytest.raises(CatalogInvariantViolation, match="level 3"):
        Catalog([broken])
