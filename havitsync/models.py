from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Use local timezone for day-based windows
LOCAL_TZ = datetime.now().astimezone().tzinfo


class TrackerType(str, Enum):
    STUDY = "study"
    WORKOUT = "workout"
    MEAL = "meal"
    SLEEP = "sleep"

    @property
    def label(self) -> str:
        return _TRACKER_LABELS[self]

    @classmethod
    def parse(cls, raw: str) -> "TrackerType":
        """Accept either the enum value ("study") or the card title ("Study Tracker")."""
        key = (raw or "").strip().lower()
        for t in cls:
            if key in (t.value, t.label.lower()):
                return t
        raise ValueError(f"Unknown tracker type: {raw}")


_TRACKER_LABELS: dict[TrackerType, str] = {
    TrackerType.STUDY: "Study Tracker",
    TrackerType.WORKOUT: "Workout Tracker",
    TrackerType.MEAL: "Meal Planner",
    TrackerType.SLEEP: "Sleep Tracker",
}

MealType = Literal["breakfast", "lunch", "dinner", "snack"]
MEAL_TYPES: tuple[str, ...] = ("breakfast", "lunch", "dinner", "snack")


class Entry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def local_if_naive(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=LOCAL_TZ)


class StudyEntry(Entry):
    subject: str
    durationHours: float = Field(ge=0)
    efficiency: int = Field(ge=1, le=5)
    notes: Optional[str] = None


class WorkoutEntry(Entry):
    workoutType: str
    durationMinutes: float = Field(ge=0)
    calories: float = Field(ge=0)
    intensity: int = Field(ge=1, le=5)


class MealEntry(Entry):
    mealType: MealType
    foodItems: str
    calories: float = Field(ge=0)
    waterIntakeCups: float = Field(ge=0)


class SleepEntry(Entry):
    durationHours: float = Field(ge=0)
    quality: int = Field(ge=1, le=5)
    notes: Optional[str] = None


AnyEntry = Union[StudyEntry, WorkoutEntry, MealEntry, SleepEntry]


class DateWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    def contains(self, ts: datetime) -> bool:
        # closed at both ends
        return self.start <= ts <= self.end


class DailyBucket(BaseModel):
    dayLabel: str
    date: date
    metrics: dict[str, float]


class SummaryStat(BaseModel):
    key: str
    label: str
    currentValue: str
    targetValue: Optional[float] = None
    percentComplete: Optional[int] = None
    note: Optional[str] = None


class DistributionSlice(BaseModel):
    category: str
    value: float
    # True for splits derived from totals rather than measured per category
    estimated: bool = False


class TrendPoint(BaseModel):
    dayLabel: str
    date: date
    value: float


InsightType = Literal["recommendation", "trend", "goal"]
INSIGHT_TYPES: tuple[str, ...] = ("recommendation", "trend", "goal")


class InsightResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    confidence: str = Field(pattern=r"^(100|[1-9]?\d)%$")
    type: InsightType


class InsightBatch(BaseModel):
    insights: list[InsightResult]
    source: Literal["model", "fallback"]
    reason: Optional[str] = None
    generation: int = 0


class RecentEntries(BaseModel):
    """Recent slice of all four logs, as fed to the prompt and the health score."""

    study: list[StudyEntry] = Field(default_factory=list)
    workout: list[WorkoutEntry] = Field(default_factory=list)
    meal: list[MealEntry] = Field(default_factory=list)
    sleep: list[SleepEntry] = Field(default_factory=list)

    def for_tracker(self, tracker: TrackerType) -> list:
        return getattr(self, tracker.value)

    def is_empty(self) -> bool:
        return not (self.study or self.workout or self.meal or self.sleep)


class StatusResponse(BaseModel):
    ok: bool
    entryCounts: dict[str, int]
    insightsReady: bool
    demoMode: bool


class DailyBucketsResponse(BaseModel):
    tracker: TrackerType
    buckets: list[DailyBucket]
    hasData: bool


class HealthScoreResponse(BaseModel):
    score: int


class InsightsResponse(BaseModel):
    insights: list[InsightResult]
    healthScore: int
