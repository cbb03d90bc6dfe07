from __future__ import annotations

import asyncio
import json
import logging
import math
import re
from typing import Any, Optional

from . import settings
from .gemini import InsightCapability
from .models import INSIGHT_TYPES, InsightBatch, InsightResult, RecentEntries, TrackerType

logger = logging.getLogger(__name__)

MAX_INSIGHTS = 3

PROMPT_INSTRUCTION = (
    "Based on the following health and wellness data, generate 3 personalized insights. "
    "Format your response as a JSON array with objects containing 'title', 'description', "
    "'confidence' (as a percentage string), and 'type' (which should be one of "
    "'recommendation', 'trend', or 'goal'). "
    "Make the insights actionable, specific, and data-driven.\n\n"
)

NO_DATA_INSTRUCTION = (
    "No specific user data is available. Please generate general wellness insights that would be "
    "helpful for anyone tracking their health, study habits, workouts, meals, and sleep."
)

_SECTION_TITLES: dict[TrackerType, str] = {
    TrackerType.STUDY: "Study data",
    TrackerType.WORKOUT: "Workout data",
    TrackerType.MEAL: "Meal data",
    TrackerType.SLEEP: "Sleep data",
}

DEFAULT_TITLE = "AI Insight"
DEFAULT_DESCRIPTION = "No description provided"
DEFAULT_CONFIDENCE = "85%"
DEFAULT_TYPE = "recommendation"

# Bump when the fallback wording changes.
FALLBACK_VERSION = "1"
FALLBACK_INSIGHTS: tuple[InsightResult, ...] = (
    InsightResult(
        title="Smart Recommendations",
        description=(
            "Consider scheduling complex study tasks in the morning when cognitive performance "
            "tends to be higher for most people."
        ),
        confidence="90%",
        type="recommendation",
    ),
    InsightResult(
        title="Progress Trend",
        description=(
            "Consistent workouts, even short ones, lead to better long-term results than "
            "occasional intense sessions."
        ),
        confidence="85%",
        type="trend",
    ),
    InsightResult(
        title="Goal Adjustment",
        description=(
            "Setting a regular sleep schedule can significantly improve your overall wellness "
            "and productivity."
        ),
        confidence="92%",
        type="goal",
    ),
)

# Greedy: first "[" through last "]", since the model may wrap JSON in prose.
_JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")
_CONFIDENCE_RE = re.compile(r"\s*(\d+(?:\.\d+)?)\s*%?\s*")


class InsightParseError(ValueError):
    pass


def fallback_insights() -> list[InsightResult]:
    return list(FALLBACK_INSIGHTS)


def build_prompt(recent: RecentEntries) -> str:
    parts = [PROMPT_INSTRUCTION]
    for tracker in TrackerType:
        entries = recent.for_tracker(tracker)
        if not entries:
            continue
        data = [e.model_dump(mode="json") for e in entries]
        parts.append(f"{_SECTION_TITLES[tracker]}: {json.dumps(data, ensure_ascii=False)}\n")
    if recent.is_empty():
        parts.append(NO_DATA_INSTRUCTION)
    return "".join(parts)


def _text_or(raw: Any, default: str) -> str:
    if raw is None:
        return default
    s = str(raw).strip()
    return s or default


def _confidence(raw: Any) -> str:
    if isinstance(raw, bool):
        return DEFAULT_CONFIDENCE
    if isinstance(raw, (int, float)):
        try:
            v = float(raw)
        except OverflowError:
            return DEFAULT_CONFIDENCE
    elif isinstance(raw, str):
        m = _CONFIDENCE_RE.fullmatch(raw)
        if not m:
            return DEFAULT_CONFIDENCE
        v = float(m.group(1))
    else:
        return DEFAULT_CONFIDENCE
    if not math.isfinite(v):
        return DEFAULT_CONFIDENCE
    return f"{max(0, min(100, int(math.floor(v + 0.5))))}%"


def _to_insight(item: Any) -> InsightResult:
    if not isinstance(item, dict):
        item = {}
    kind = item.get("type")
    return InsightResult(
        title=_text_or(item.get("title"), DEFAULT_TITLE),
        description=_text_or(item.get("description"), DEFAULT_DESCRIPTION),
        confidence=_confidence(item.get("confidence")),
        type=kind if kind in INSIGHT_TYPES else DEFAULT_TYPE,
    )


def parse_insights(text: str) -> list[InsightResult]:
    """Pull the insight list out of a model response.

    Missing fields are defaulted, and the list is cut to 3 items but never
    padded. Raises InsightParseError when no JSON array can be decoded.
    """
    match = _JSON_ARRAY_RE.search(text or "")
    if not match:
        raise InsightParseError("No JSON array found in response")
    try:
        data = json.loads(match.group(0))
    except ValueError as exc:
        # JSONDecodeError, or an integer literal past the int conversion limit
        raise InsightParseError(f"Invalid JSON in response: {exc}") from exc
    if not isinstance(data, list):
        raise InsightParseError("Response JSON is not a list")
    return [_to_insight(item) for item in data[:MAX_INSIGHTS]]


class InsightPipeline:
    """Prompt -> external model -> parsed insights, with a fixed fallback.

    Callers always get a valid InsightBatch; failures are logged, never
    raised. Each request gets a generation number and only a response newer
    than the last published one replaces ``latest()``.
    """

    def __init__(
        self,
        client: InsightCapability,
        api_key: str | None = None,
        timeout: float | None = settings.INSIGHT_TIMEOUT_SECONDS,
    ) -> None:
        self.client = client
        self._api_key = api_key
        self.timeout = timeout if timeout and timeout > 0 else None
        self._generation = 0
        self._published_generation = 0
        self._latest: Optional[InsightBatch] = None

    def is_ready(self) -> bool:
        return self.client.is_ready()

    def ensure_client(self) -> bool:
        return self.client.is_ready() or self.client.try_initialize(self._api_key)

    def latest(self) -> InsightBatch:
        if self._latest is None:
            return self._fallback(0, "not_generated")
        return self._latest

    async def generate(self, recent: RecentEntries) -> InsightBatch:
        self._generation += 1
        batch = await self._run(recent, self._generation)
        self._publish(batch)
        return batch

    async def _run(self, recent: RecentEntries, generation: int) -> InsightBatch:
        if not self.ensure_client():
            return self._fallback(generation, "client_unavailable")

        prompt = build_prompt(recent)
        try:
            text = await self._call(prompt)
        except asyncio.TimeoutError:
            logger.warning("Insight generation timed out after %ss", self.timeout)
            return self._fallback(generation, "timeout")
        except Exception as exc:
            logger.warning("Insight generation failed: %s", exc)
            return self._fallback(generation, "call_failed")

        try:
            insights = parse_insights(text)
        except InsightParseError as exc:
            logger.warning("Could not parse insights: %s", exc)
            return self._fallback(generation, "unparseable")

        return InsightBatch(insights=insights, source="model", generation=generation)

    async def _call(self, prompt: str) -> str:
        call = asyncio.to_thread(self.client.generate, prompt)
        if self.timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self.timeout)

    def _fallback(self, generation: int, reason: str) -> InsightBatch:
        return InsightBatch(
            insights=fallback_insights(),
            source="fallback",
            reason=reason,
            generation=generation,
        )

    def _publish(self, batch: InsightBatch) -> None:
        if batch.generation <= self._published_generation:
            logger.info(
                "Discarding stale insight response (generation %s, published %s)",
                batch.generation,
                self._published_generation,
            )
            return
        self._published_generation = batch.generation
        self._latest = batch
