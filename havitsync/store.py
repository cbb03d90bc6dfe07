from __future__ import annotations

import logging
import math
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Optional

from .models import (
    MEAL_TYPES,
    AnyEntry,
    MealEntry,
    SleepEntry,
    StudyEntry,
    TrackerType,
    WorkoutEntry,
)
from .windows import ensure_aware, now_local

logger = logging.getLogger(__name__)


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        v = float(value)
    elif isinstance(value, str):
        try:
            v = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return v if math.isfinite(v) else None


def coerce_amount(raw: Any, default: float) -> float:
    v = _to_float(raw)
    if v is None or v < 0:
        return default
    return v


def coerce_rating(raw: Any, default: int) -> int:
    v = _to_float(raw)
    if v is None or not v.is_integer() or not 1 <= v <= 5:
        return default
    return int(v)


def coerce_text(raw: Any, default: str) -> str:
    if raw is None:
        return default
    s = str(raw).strip()
    return s or default


def coerce_optional_text(raw: Any, default: Optional[str]) -> Optional[str]:
    if raw is None:
        return default
    s = str(raw).strip()
    return s or default


def coerce_meal_type(raw: Any, default: str) -> str:
    if raw is None:
        return default
    s = str(raw).strip().lower()
    return s if s in MEAL_TYPES else default


@dataclass(frozen=True)
class FieldSpec:
    name: str
    default: Any
    coerce: Callable[[Any, Any], Any]
    # legacy form field names accepted for the same value
    aliases: tuple[str, ...] = ()

    def resolve(self, fields: Mapping[str, Any]) -> Any:
        for key in (self.name, *self.aliases):
            if fields.get(key) is not None:
                return self.coerce(fields[key], self.default)
        return self.default


FIELD_SPECS: dict[TrackerType, tuple[FieldSpec, ...]] = {
    TrackerType.STUDY: (
        FieldSpec("subject", "Untitled", coerce_text),
        FieldSpec("durationHours", 1.0, coerce_amount, ("duration",)),
        FieldSpec("efficiency", 3, coerce_rating),
        FieldSpec("notes", None, coerce_optional_text),
    ),
    TrackerType.WORKOUT: (
        FieldSpec("workoutType", "Other", coerce_text),
        FieldSpec("durationMinutes", 30.0, coerce_amount, ("duration",)),
        FieldSpec("calories", 0.0, coerce_amount),
        FieldSpec("intensity", 3, coerce_rating),
    ),
    TrackerType.MEAL: (
        FieldSpec("mealType", "snack", coerce_meal_type),
        FieldSpec("foodItems", "Not specified", coerce_text),
        FieldSpec("calories", 0.0, coerce_amount),
        FieldSpec("waterIntakeCups", 0.0, coerce_amount, ("waterIntake",)),
    ),
    TrackerType.SLEEP: (
        FieldSpec("durationHours", 7.0, coerce_amount, ("sleepDuration", "duration")),
        FieldSpec("quality", 3, coerce_rating, ("sleepQuality",)),
        FieldSpec("notes", None, coerce_optional_text, ("sleepNotes",)),
    ),
}

ENTRY_MODELS: dict[TrackerType, type] = {
    TrackerType.STUDY: StudyEntry,
    TrackerType.WORKOUT: WorkoutEntry,
    TrackerType.MEAL: MealEntry,
    TrackerType.SLEEP: SleepEntry,
}

for _registry in (FIELD_SPECS, ENTRY_MODELS):
    _missing = set(TrackerType) - set(_registry)
    if _missing:
        raise RuntimeError(f"Tracker registry incomplete: {sorted(t.value for t in _missing)}")


def tracker_of(entry: AnyEntry) -> TrackerType:
    for tracker, model in ENTRY_MODELS.items():
        if type(entry) is model:
            return tracker
    raise TypeError(f"Not a tracker entry: {type(entry).__name__}")


def build_entry(
    tracker: TrackerType,
    fields: Mapping[str, Any],
    *,
    entry_id: str,
    timestamp: datetime,
) -> AnyEntry:
    """Apply the tracker's field table to loosely-typed form input.

    Missing or invalid values fall back to the per-field default, so this
    never fails on user input.
    """
    values = {spec.name: spec.resolve(fields) for spec in FIELD_SPECS[tracker]}
    return ENTRY_MODELS[tracker](id=entry_id, timestamp=timestamp, **values)


class EntryStore:
    """Four append-only, in-memory logs keyed by insertion order."""

    def __init__(
        self,
        initial: Iterable[AnyEntry] = (),
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._logs: dict[TrackerType, list[AnyEntry]] = {t: [] for t in TrackerType}
        for entry in initial:
            self._logs[tracker_of(entry)].append(entry)

    def add(self, tracker: TrackerType, fields: Mapping[str, Any] | None = None) -> AnyEntry:
        entry = build_entry(
            tracker,
            fields or {},
            entry_id=uuid.uuid4().hex,
            timestamp=ensure_aware(self._clock()),
        )
        with self._lock:
            self._logs[tracker].append(entry)
        logger.debug("Added %s entry %s", tracker.value, entry.id)
        return entry

    def add_study(self, fields: Mapping[str, Any] | None = None) -> StudyEntry:
        return self.add(TrackerType.STUDY, fields)  # type: ignore[return-value]

    def add_workout(self, fields: Mapping[str, Any] | None = None) -> WorkoutEntry:
        return self.add(TrackerType.WORKOUT, fields)  # type: ignore[return-value]

    def add_meal(self, fields: Mapping[str, Any] | None = None) -> MealEntry:
        return self.add(TrackerType.MEAL, fields)  # type: ignore[return-value]

    def add_sleep(self, fields: Mapping[str, Any] | None = None) -> SleepEntry:
        return self.add(TrackerType.SLEEP, fields)  # type: ignore[return-value]

    def entries(self, tracker: TrackerType) -> tuple[AnyEntry, ...]:
        with self._lock:
            return tuple(self._logs[tracker])

    def counts(self) -> dict[str, int]:
        with self._lock:
            return {t.value: len(self._logs[t]) for t in TrackerType}


def sample_entries(now: datetime) -> list[AnyEntry]:
    """Demo entries spread over the past week, relative to ``now``."""
    now = ensure_aware(now)

    def ago(days: int) -> datetime:
        return now - timedelta(days=days)

    return [
        StudyEntry(id="study-1", timestamp=ago(6), subject="Mathematics", durationHours=2.5, efficiency=4,
                   notes="Covered calculus basics"),
        StudyEntry(id="study-2", timestamp=ago(5), subject="Physics", durationHours=1.5, efficiency=3,
                   notes="Reviewed mechanics"),
        StudyEntry(id="study-3", timestamp=ago(3), subject="Programming", durationHours=3, efficiency=5,
                   notes="Practiced React hooks"),
        WorkoutEntry(id="workout-1", timestamp=ago(6), workoutType="Cardio", durationMinutes=45, calories=320,
                     intensity=4),
        WorkoutEntry(id="workout-2", timestamp=ago(4), workoutType="Strength", durationMinutes=60, calories=380,
                     intensity=5),
        WorkoutEntry(id="workout-3", timestamp=ago(2), workoutType="Yoga", durationMinutes=30, calories=180,
                     intensity=2),
        MealEntry(id="meal-1", timestamp=ago(7), mealType="breakfast", foodItems="Oatmeal, banana, coffee",
                  calories=350, waterIntakeCups=2),
        MealEntry(id="meal-2", timestamp=ago(6), mealType="lunch", foodItems="Chicken salad sandwich, apple",
                  calories=520, waterIntakeCups=3),
        MealEntry(id="meal-3", timestamp=ago(5), mealType="dinner", foodItems="Salmon, brown rice, broccoli",
                  calories=650, waterIntakeCups=2),
        MealEntry(id="meal-4", timestamp=ago(4), mealType="snack", foodItems="Greek yogurt with berries",
                  calories=180, waterIntakeCups=1),
        SleepEntry(id="sleep-1", timestamp=ago(7), durationHours=7.5, quality=4, notes="Went to bed early"),
        SleepEntry(id="sleep-2", timestamp=ago(6), durationHours=6.5, quality=3, notes="Took time to fall asleep"),
        SleepEntry(id="sleep-3", timestamp=ago(5), durationHours=8, quality=5, notes="Felt well-rested"),
    ]
