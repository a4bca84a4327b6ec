import logging

import anthropic
import google.generativeai as genai
from ecoops.config import Settings
from ecoops.exceptions import ConfigurationError, UpstreamError
from ecoops.services.catalog import level_name
from ecoops.services.explanations import format_value
from ecoops.services.scoring import to_fahrenheit

logger = logging.getLogger(__name__)

SCENARIO_ERROR = "Failed to generate scenario"
EVALUATION_ERROR = "Failed to evaluate recommendation"

# Prepended to every prompt
FACT_SHEET = """
Glossary of Key Facts:
- Lettuce seedling EC: 0.5 – 0.8 mS/cm; vegetative EC: 1.2 – 1.4 mS/cm; mature EC: 1.5 – 2.0 mS/cm.
- Lettuce DLI: 10 – 14 mol/m²/day.
- Tomato seedling EC: 0.8 – 1.2 mS/cm; fruiting EC: 2.0 – 3.0 mS/cm.
- Tomato DLI: 15 – 20 mol/m²/day.
- Cannabis seedling EC: 1.0 – 1.2 mS/cm; vegetative EC: 1.2 – 1.6 mS/cm; flowering EC: 1.6 – 2.0 mS/cm.
- Cannabis DLI: 30 – 40 mol/m²/day.
- Strawberry EC (fruiting): 1.2 – 1.6 mS/cm; Strawberry DLI: 15 – 25 mol/m²/day.
"""

SCENARIO_PROMPT_TEMPLATE = """
You are a world-class controlled-environment agriculture (CEA) consultant.
Generate a **diagnostic scenario** for a player at **Level {level}**: **"{level_name}"**.

**Please include exactly these four sections, in this order, and do NOT omit any of them:**

1) Crop Type and Growing System:
- List one of the exact crops used in our simulation (choose from: Lettuce in media bed/DWC/NFT; Tomato/Cucurbit/Pepper in media bed/Kratky/rockwool-gutter; Cannabis in coco-coir pots [indoor or greenhouse + lighting]; Strawberries in troughs; Edible flowers in NFT; Microgreens in rack-with-trays).
- Be very specific (e.g., "Lettuce in an ebb-and-flow media bed," or "Tomatoes in a Kratky bucket system").

2) Current Environmental Conditions:
- Temperature (°C and °F in parentheses)
- Relative Humidity (%)
- CO₂ (ppm, if relevant)
- Photoperiod or DLI (must specify "X hours light / Y hours dark" or "Z mol/m²/day")
- EC (e.g., "1.2 mS/cm")
- pH
- Water Temperature (°C/°F) OR Substrate Type (if media-based)
- Airflow description (e.g., "No HAF fans," or "Light mixing from overhead vents")

3) Observed Plant Symptoms:
- Bullet-list 2–4 symptoms (e.g., "– Interveinal chlorosis on new leaves," etc.)
- Do NOT reveal the cause—only list what you see.

4) Your Task:
- At the end, append exactly three numbered questions, like:

  Your Task:
  1. Identify the primary suspected issue(s).
  2. Recommend corrective actions to fix the problem.
  3. Explain the underlying plant physiology or system-level rationale.

- Do not put any additional text after question 3.
- Keep the total response under 200 words.
"""

EVALUATION_PROMPT_TEMPLATE = """
You are a CEA training AI. Below is the full AI-generated diagnostic scenario (including "Your Task" questions) for Level {level}.
The player has now provided their slider adjustments and a written recommendation.

---- AI SCENARIO (FULL TEXT) ----
{scenario_text}

---- PLAYER'S SLIDER SETTINGS ----
- Temperature: {temp}°C ({temp_f}°F)
- Humidity: {humidity}%
- Photoperiod: {light} hrs
- CO₂: {co2} ppm
- DLI: {dli} mol/m²/day

---- PLAYER'S WRITTEN RECOMMENDATION ----
{recommendation}

Your task:
1. Evaluate whether the player's slider adjustments and written recommendation correctly diagnose and fix the scenario's root cause.
2. Provide constructive feedback in bullet form:
   a) ✅ What the player got right.
   b) ❌ What they missed or partially answered.
   c) How they could improve their slider settings or their written strategy.
Keep your feedback concise (<200 words) and do NOT repeat the entire scenario—focus on their solution.
"""

EVALUATION_SLIDERS = ("temp", "humidity", "light", "co2", "dli")


def build_scenario_prompt(level: int) -> str:
    return FACT_SHEET + SCENARIO_PROMPT_TEMPLATE.format(level=level, level_name=level_name(level))


def build_evaluation_prompt(level: int, scenario_text: str, sliders: dict[str, float],
                            recommendation: str) -> str:
    readings = {key: format_value(sliders[key]) for key in EVALUATION_SLIDERS}
    return FACT_SHEET + EVALUATION_PROMPT_TEMPLATE.format(
        level=level,
        scenario_text=scenario_text,
        temp_f=to_fahrenheit(sliders["temp"]),
        recommendation=recommendation,
        **readings,
    )


class TextGenerator:
    """
    Sends single-turn prompts to the configured text-generation provider
    (Claude by default, Gemini optionally). No retries and no caching: a
    failed call surfaces to the caller as UpstreamError.
    """

    def __init__(self, settings: Settings):
        self.provider = settings.text_provider
        self.temperature = settings.text_temperature
        self.max_tokens = settings.text_max_tokens
        self.claude_client = None
        self.gemini_model = None

        if not settings.text_api_key:
            raise ConfigurationError(
                f"{settings.text_api_key_env} is not set; it is required for the "
                f"'{self.provider}' text-generation provider"
            )

        if self.provider == "anthropic":
            self.claude_client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
            self.model = settings.anthropic_model
        elif self.provider == "gemini":
            genai.configure(api_key=settings.gemini_api_key)
            self.gemini_model = genai.GenerativeModel(settings.gemini_model)
            self.model = settings.gemini_model
        else:
            raise ConfigurationError(f"Unknown text provider: {self.provider}")

    async def complete(self, prompt: str) -> str:
        """Send one prompt and return the trimmed response text."""
        if self.claude_client:
            response = await self.claude_client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=[
                    {"role": "user", "content": prompt}
                ]
            )
            text = response.content[0].text
        else:
            response = await self.gemini_model.generate_content_async(
                prompt,
                generation_config={"temperature": self.temperature, "max_output_tokens": self.max_tokens},
            )
            text = response.text

        text = (text or "").strip()
        if not text:
            raise ValueError("Empty response from text-generation provider")
        return text

    async def _request(self, prompt: str, public_error: str, what: str) -> str:
        try:
            return await self.complete(prompt)
        except Exception as e:
            logger.error("%s API error (%s): %s", self.provider, what, e)
            raise UpstreamError(public_error) from e

    async def request_scenario(self, level: int) -> str:
        return await self._request(build_scenario_prompt(level), SCENARIO_ERROR, "scenario")

    async def request_evaluation(self, level: int, scenario_text: str, sliders: dict[str, float],
                                 recommendation: str) -> str:
        prompt = build_evaluation_prompt(level, scenario_text, sliders, recommendation)
        return await self._request(prompt, EVALUATION_ERROR, "evaluation")
