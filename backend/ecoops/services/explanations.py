"""
Per-crop "why?" / "what if?" explanations shown next to each parameter score.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class ParameterExplanation:
    in_range: str
    out_of_range: str  # formatted with {value}

    def render(self, in_range: bool, value: float) -> str:
        if in_range:
            return self.in_range
        return self.out_of_range.format(value=format_value(value))


@dataclass(frozen=True)
class ExplanationSet:
    temp: ParameterExplanation
    humidity: ParameterExplanation
    light: ParameterExplanation
    co2: ParameterExplanation
    dli: ParameterExplanation
    ec: ParameterExplanation
    ph: ParameterExplanation

    def get(self, key: str) -> ParameterExplanation:
        return getattr(self, key)


def format_value(value: float) -> str:
    """25.0 -> "25", 0.85 -> "0.85", 1e6 -> "1000000". Never scientific notation."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int):
        return str(value)
    return f"{value:.4f}".rstrip("0").rstrip(".")


GENERIC_EXPLANATIONS = ExplanationSet(
    temp=ParameterExplanation(
        "This temperature avoids heat stress while maximizing metabolic rates.",
        "Temp {value}°C is off target; leaves may overheat or fail to grow.",
    ),
    humidity=ParameterExplanation(
        "This humidity prevents dehydration or fungal risk.",
        "Humidity {value}% is off; plants might dehydrate or develop mold.",
    ),
    light=ParameterExplanation(
        "This photoperiod balances energy supply without photoinhibition.",
        "Photoperiod {value} hrs is off; plants might stretch or bleach.",
    ),
    co2=ParameterExplanation(
        "This CO₂ range is enough for normal photosynthesis without waste.",
        "CO₂ {value} ppm is off; plants might be CO₂-limited or close stomata.",
    ),
    dli=ParameterExplanation(
        "This DLI avoids photoinhibition while fueling healthy growth.",
        "DLI {value} mol/m²/day is off; plants might grow weak or bleach.",
    ),
    ec=ParameterExplanation(
        "This EC avoids salt stress while supplying nutrients.",
        "EC {value} mS/cm is off; roots may suffer deficiency or salt burn.",
    ),
    ph=ParameterExplanation(
        "This pH maximizes nutrient availability.",
        "pH {value} is off; nutrient lockouts or toxicity can occur.",
    ),
)


CROP_EXPLANATIONS: dict[str, ExplanationSet] = {
    "Lettuce": ExplanationSet(
        temp=ParameterExplanation(
            "Cool temperatures keep lettuce leafy and slow the switch to flowering.",
            "At {value}°C lettuce is outside its cool-season window; expect tip burn, "
            "bitter leaves and premature bolting.",
        ),
        humidity=ParameterExplanation(
            "Moderate humidity keeps VPD in range so calcium reaches the leaf margins.",
            "Humidity {value}% pushes VPD out of range; calcium transport stalls and "
            "tip burn or mildew follows.",
        ),
        light=ParameterExplanation(
            "A short-to-moderate photoperiod feeds leaf growth without triggering bolting.",
            "A {value} hr photoperiod is off for lettuce; long days trigger bolting, "
            "short days leave heads loose and pale.",
        ),
        co2=ParameterExplanation(
            "Ambient-to-slightly-enriched CO₂ is all a low-light leafy crop can use.",
            "CO₂ at {value} ppm is off; below range growth slows, above it the "
            "enrichment is wasted on a low-DLI crop.",
        ),
        dli=ParameterExplanation(
            "This DLI gives dense heads without scorching tender leaves.",
            "DLI {value} mol/m²/day is off; too little gives stretched, pale plants, "
            "too much scorches leaves and speeds bolting.",
        ),
        ec=ParameterExplanation(
            "Low EC suits lettuce's light feeding and protects leaf margins from salt stress.",
            "EC {value} mS/cm is off; high EC causes tip burn and stunted roots, "
            "low EC leaves plants pale and wilting.",
        ),
        ph=ParameterExplanation(
            "Slightly acidic pH keeps iron and manganese available.",
            "pH {value} is off; iron locks out and interveinal chlorosis appears on new leaves.",
        ),
    ),
    "Tomato": ExplanationSet(
        temp=ParameterExplanation(
            "Warm days in this band support steady flowering and fruit set.",
            "At {value}°C tomatoes struggle; heat aborts flowers and cold stalls fruit ripening.",
        ),
        humidity=ParameterExplanation(
            "This humidity keeps pollen viable and limits botrytis.",
            "Humidity {value}% is off; dry air cracks fruit and wilts tops, "
            "wet air invites mold and poor pollination.",
        ),
        light=ParameterExplanation(
            "A long photoperiod drives the sugar supply fruit needs.",
            "A {value} hr photoperiod is off; short days reduce fruit set, "
            "continuous light causes leaf chlorosis.",
        ),
        co2=ParameterExplanation(
            "Mild CO₂ enrichment lifts photosynthesis for a high-light fruiting crop.",
            "CO₂ at {value} ppm is off; low CO₂ slows flowering, excess distorts fruit.",
        ),
        dli=ParameterExplanation(
            "Tomatoes need this high DLI to carry a heavy fruit load.",
            "DLI {value} mol/m²/day is off; low light gives leggy plants and poor fruit set, "
            "excess scorches leaves.",
        ),
        ec=ParameterExplanation(
            "This EC supplies enough potassium and calcium for fruit without salt stress.",
            "EC {value} mS/cm is off; low EC drops blossoms, high EC locks out calcium "
            "and leads to blossom end rot.",
        ),
        ph=ParameterExplanation(
            "This pH keeps calcium, magnesium and micronutrients available.",
            "pH {value} is off; high pH starves flowers of iron, low pH damages roots.",
        ),
    ),
    "Cannabis": ExplanationSet(
        temp=ParameterExplanation(
            "Warm canopy temperatures match the crop's high light and CO₂ levels.",
            "At {value}°C the canopy is stressed; heat foxtails buds, cold slows metabolism.",
        ),
        humidity=ParameterExplanation(
            "Controlled humidity holds VPD steady and keeps bud rot away.",
            "Humidity {value}% is off; high RH invites mold and bud rot, low RH stresses transpiration.",
        ),
        light=ParameterExplanation(
            "A long vegetative photoperiod keeps plants growing without flowering early.",
            "A {value} hr photoperiod is off for vegetative growth; plants may flower early or stretch.",
        ),
        co2=ParameterExplanation(
            "Enriched CO₂ lets the crop use its very high DLI.",
            "CO₂ at {value} ppm is off; without enrichment the high light becomes leaf burn.",
        ),
        dli=ParameterExplanation(
            "This high DLI builds dense, resinous buds.",
            "DLI {value} mol/m²/day is off; low light stretches plants, excess bleaches the top canopy.",
        ),
        ec=ParameterExplanation(
            "This EC feeds a heavy-feeding crop without burning leaf edges.",
            "EC {value} mS/cm is off; low EC shows as nitrogen yellowing, high EC burns leaf edges.",
        ),
        ph=ParameterExplanation(
            "The narrow pH band keeps every macro and micronutrient available in coco.",
            "pH {value} is off; even small drift locks out calcium and magnesium in coco.",
        ),
    ),
    "Strawberries": ExplanationSet(
        temp=ParameterExplanation(
            "Mild temperatures keep strawberries flowering and fruit firm.",
            "At {value}°C strawberries are stressed; heat softens fruit, cold delays flowering.",
        ),
        humidity=ParameterExplanation(
            "This humidity supports pollination without encouraging gray mold.",
            "Humidity {value}% is off; high RH brings gray mold and soft fruit, low RH dries flowers.",
        ),
        light=ParameterExplanation(
            "This photoperiod supports day-neutral flowering.",
            "A {value} hr photoperiod is off; long days push runners over fruit and can bleach leaves.",
        ),
        co2=ParameterExplanation(
            "Light CO₂ enrichment raises sugar content in the berries.",
            "CO₂ at {value} ppm is off; berries stay small and flowering slows.",
        ),
        dli=ParameterExplanation(
            "This DLI gives sweet, well-sized berries.",
            "DLI {value} mol/m²/day is off; low light gives small berries, excess scorches leaves.",
        ),
        ec=ParameterExplanation(
            "This EC supports fruit sizing without salt damage to sensitive roots.",
            "EC {value} mS/cm is off; strawberries are salt sensitive and roots burn quickly at high EC.",
        ),
        ph=ParameterExplanation(
            "Slightly acidic pH keeps iron available for dark green leaves.",
            "pH {value} is off; yellowing leaves and poor fruit flavor follow nutrient lockout.",
        ),
    ),
}


def explanations_for(crop_name: str) -> ExplanationSet:
    """Explanation set for a crop, or the generic set for crops without one."""
    return CROP_EXPLANATIONS.get(crop_name, GENERIC_EXPLANATIONS)
