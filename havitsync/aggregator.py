from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Sequence

from .models import (
    DailyBucket,
    DateWindow,
    DistributionSlice,
    RecentEntries,
    SummaryStat,
    TrackerType,
    TrendPoint,
)
from .store import EntryStore
from .windows import (
    RECENT_DAYS,
    end_of_day,
    last_7_days,
    recent_cutoff,
    start_of_day,
    today,
    week_days,
)

STUDY_WEEKLY_TARGET_HOURS = 40.0
WATER_DAILY_TARGET_CUPS = 8.0

# Share of total calories per macro. Estimate only: meals carry no macro data.
MACRO_SPLIT: tuple[tuple[str, float], ...] = (
    ("Protein", 0.30),
    ("Carbs", 0.50),
    ("Fats", 0.15),
    ("Fiber", 0.05),
)

# Share of total sleep hours per phase, before quality scaling. Estimate only.
DEEP_SLEEP_SHARE = 0.20
REM_SLEEP_SHARE = 0.25
LIGHT_SLEEP_SHARE = 0.40
AWAKE_SHARE = 0.15
SLEEP_QUALITY_PIVOT = 2.5

ROLLING_SLEEP_DAYS = 7

Entries = Sequence[Any]


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def round1(x: float) -> float:
    return round(float(x), 1)


def fmt0(x: float) -> str:
    return str(round_half_up(x))


def fmt1(x: float) -> str:
    return f"{float(x):.1f}"


def _sum(values: Iterable[float]) -> float:
    return float(sum(values, 0.0))


def _avg(values: Iterable[float]) -> float:
    vals = [float(v) for v in values]
    if not vals:
        return 0.0
    return sum(vals) / len(vals)


def day_label(ts: datetime) -> str:
    return ts.strftime("%a")


def short_date(ts: datetime) -> str:
    return f"{ts.strftime('%b')} {ts.day}"


def percent_of_goal(total: float, target: float) -> int:
    if target <= 0:
        return 0
    return max(0, min(100, round_half_up(total / target * 100)))


def quality_text(avg_quality: float) -> str:
    if avg_quality >= 4:
        return "Excellent"
    if avg_quality >= 3:
        return "Good"
    if avg_quality >= 2:
        return "Fair"
    return "Poor"


# --- filters -----------------------------------------------------------------


def filter_window(entries: Entries, window: DateWindow) -> list[Any]:
    return [e for e in entries if window.contains(e.timestamp)]


def filter_today(entries: Entries, now: datetime) -> list[Any]:
    return filter_window(entries, today(now))


def filter_week(entries: Entries, now: datetime) -> list[Any]:
    # Lower bound only: future-dated entries still count toward the week.
    start = last_7_days(now).start
    return [e for e in entries if e.timestamp >= start]


def filter_recent(entries: Entries, now: datetime, days: int = RECENT_DAYS) -> list[Any]:
    cutoff = recent_cutoff(now, days)
    return [e for e in entries if e.timestamp >= cutoff]


def recent_entries(store: EntryStore, now: datetime, days: int = RECENT_DAYS) -> RecentEntries:
    return RecentEntries(**{t.value: filter_recent(store.entries(t), now, days) for t in TrackerType})


def _day_window(day: datetime) -> DateWindow:
    return DateWindow(start=start_of_day(day), end=end_of_day(day))


# --- per-day metrics -----------------------------------------------------------


def _study_metrics(day: Entries) -> dict[str, float]:
    return {
        "hours": round1(_sum(e.durationHours for e in day)),
        "efficiency": round1(_avg(e.efficiency for e in day)),
    }


def _workout_metrics(day: Entries) -> dict[str, float]:
    return {
        "minutes": _sum(e.durationMinutes for e in day),
        "calories": _sum(e.calories for e in day),
    }


def _meal_metrics(day: Entries) -> dict[str, float]:
    return {
        "calories": _sum(e.calories for e in day),
        "water": _sum(e.waterIntakeCups for e in day),
    }


def _sleep_metrics(day: Entries) -> dict[str, float]:
    # Last logged entry of the day represents it; multiple logs overwrite.
    last = day[-1] if day else None
    return {
        "hours": round1(last.durationHours) if last else 0.0,
        "quality": float(last.quality) if last else 0.0,
    }


# --- weekly summaries ----------------------------------------------------------


def _study_summary(entries: Entries, now: datetime) -> list[SummaryStat]:
    hours_today = _sum(e.durationHours for e in filter_today(entries, now))
    hours_week = _sum(e.durationHours for e in filter_week(entries, now))
    pct = percent_of_goal(hours_week, STUDY_WEEKLY_TARGET_HOURS)
    return [
        SummaryStat(
            key="hoursToday",
            label="Hours Today",
            currentValue=fmt1(hours_today),
            note="✓ Tracked" if hours_today > 0 else "No data today",
        ),
        SummaryStat(
            key="hoursWeek",
            label="Weekly Goal",
            currentValue=fmt1(hours_week),
            targetValue=STUDY_WEEKLY_TARGET_HOURS,
            percentComplete=pct,
            note=f"{pct}% complete",
        ),
    ]


def _workout_summary(entries: Entries, now: datetime) -> list[SummaryStat]:
    today_entries = filter_today(entries, now)
    week_entries = filter_week(entries, now)
    minutes_today = _sum(e.durationMinutes for e in today_entries)
    calories_today = _sum(e.calories for e in today_entries)
    return [
        SummaryStat(key="minutesToday", label="Minutes Today", currentValue=fmt0(minutes_today)),
        SummaryStat(
            key="workoutsWeek",
            label="Workouts This Week",
            currentValue=str(len(week_entries)),
            note="✓ Active" if week_entries else "No workouts",
        ),
        SummaryStat(
            key="caloriesToday",
            label="Calories Burned",
            currentValue=fmt0(calories_today),
            note="Today" if calories_today > 0 else "No data today",
        ),
        SummaryStat(
            key="lastWorkout",
            label="Last Workout",
            currentValue=short_date(week_entries[-1].timestamp) if week_entries else "No workouts",
        ),
    ]


def _meal_summary(entries: Entries, now: datetime) -> list[SummaryStat]:
    today_entries = filter_today(entries, now)
    calories_today = _sum(e.calories for e in today_entries)
    water_today = _sum(e.waterIntakeCups for e in today_entries)
    pct = percent_of_goal(water_today, WATER_DAILY_TARGET_CUPS)
    return [
        SummaryStat(
            key="caloriesToday",
            label="Calories Today",
            currentValue=fmt0(calories_today),
            note="Tracked" if calories_today > 0 else "No data today",
        ),
        SummaryStat(
            key="waterToday",
            label="Water Intake",
            currentValue=fmt1(water_today),
            targetValue=WATER_DAILY_TARGET_CUPS,
            percentComplete=pct,
            note=f"{pct}% complete",
        ),
    ]


def _sleep_summary(entries: Entries, now: datetime) -> list[SummaryStat]:
    last = max(entries, key=lambda e: e.timestamp) if entries else None
    avg_quality = _avg(e.quality for e in entries)
    week_entries = filter_week(entries, now)
    return [
        SummaryStat(
            key="lastDuration",
            label="Last Night",
            currentValue=fmt1(last.durationHours) if last else "0",
            note=f"Quality: {last.quality}/5" if last else "Add an entry",
        ),
        SummaryStat(
            key="avgQuality",
            label="Average Quality",
            currentValue=fmt1(avg_quality),
            note=quality_text(avg_quality),
        ),
        SummaryStat(
            key="weekAverage",
            label="Average This Week",
            currentValue=fmt1(_avg(e.durationHours for e in week_entries)),
            note=f"{len(week_entries)} entries" if week_entries else "No data",
        ),
    ]


# --- distributions & estimates ------------------------------------------------


def _group_sum(
    entries: Entries,
    category: Callable[[Any], str],
    value: Callable[[Any], float],
) -> list[DistributionSlice]:
    totals: dict[str, float] = {}
    for e in entries:
        key = category(e)
        totals[key] = totals.get(key, 0.0) + float(value(e))
    return [DistributionSlice(category=k, value=v) for k, v in totals.items()]


def _study_distribution(entries: Entries) -> list[DistributionSlice]:
    return _group_sum(entries, lambda e: e.subject, lambda e: e.durationHours)


def _workout_distribution(entries: Entries) -> list[DistributionSlice]:
    return _group_sum(entries, lambda e: e.workoutType, lambda e: e.durationMinutes)


def _meal_distribution(entries: Entries) -> list[DistributionSlice]:
    return _group_sum(entries, lambda e: e.mealType, lambda e: e.calories)


def macro_estimate(entries: Entries) -> list[DistributionSlice]:
    """Split total calories into macros by fixed shares (not measured data)."""
    if not entries:
        return []
    total = _sum(e.calories for e in entries)
    return [
        DistributionSlice(category=name, value=round_half_up(total * share), estimated=True)
        for name, share in MACRO_SPLIT
    ]


def sleep_phase_estimate(entries: Entries) -> list[DistributionSlice]:
    """Split total sleep hours into phases, skewed by average quality.

    Better average quality moves share into deep and REM sleep and out of
    awake time. Derived from totals only.
    """
    if not entries:
        return []
    total = _sum(e.durationHours for e in entries)
    factor = max(1.0, _avg(e.quality for e in entries) / SLEEP_QUALITY_PIVOT)
    phases = (
        ("Deep Sleep", total * DEEP_SLEEP_SHARE * factor),
        ("REM Sleep", total * REM_SLEEP_SHARE * factor),
        ("Light Sleep", total * LIGHT_SLEEP_SHARE),
        ("Awake", total * AWAKE_SHARE / factor),
    )
    return [DistributionSlice(category=name, value=round_half_up(v), estimated=True) for name, v in phases]


# --- trends --------------------------------------------------------------------


def _per_day_trend(value: Callable[[Entries], float]) -> Callable[[Entries, datetime], list[TrendPoint]]:
    def build(entries: Entries, now: datetime) -> list[TrendPoint]:
        return [
            TrendPoint(
                dayLabel=day_label(day),
                date=day.date(),
                value=round1(value(filter_window(entries, _day_window(day)))),
            )
            for day in week_days(now)
        ]

    return build


def _rolling_sleep_trend(entries: Entries, now: datetime) -> list[TrendPoint]:
    out: list[TrendPoint] = []
    for day in week_days(now):
        lo = day - timedelta(days=ROLLING_SLEEP_DAYS)
        past = [e for e in entries if lo <= e.timestamp <= day]
        out.append(
            TrendPoint(
                dayLabel=day_label(day),
                date=day.date(),
                value=round1(_avg(e.durationHours for e in past)),
            )
        )
    return out


# --- tracker registry ----------------------------------------------------------


@dataclass(frozen=True)
class TrackerAggregation:
    bucket_metrics: Callable[[Entries], dict[str, float]]
    summary: Callable[[Entries, datetime], list[SummaryStat]]
    distribution: Callable[[Entries], list[DistributionSlice]]
    breakdown: Callable[[Entries], list[DistributionSlice]]
    trend: Callable[[Entries, datetime], list[TrendPoint]]


AGGREGATIONS: dict[TrackerType, TrackerAggregation] = {
    TrackerType.STUDY: TrackerAggregation(
        bucket_metrics=_study_metrics,
        summary=_study_summary,
        distribution=_study_distribution,
        breakdown=_study_distribution,
        trend=_per_day_trend(lambda day: _avg(e.efficiency for e in day)),
    ),
    TrackerType.WORKOUT: TrackerAggregation(
        bucket_metrics=_workout_metrics,
        summary=_workout_summary,
        distribution=_workout_distribution,
        breakdown=_workout_distribution,
        trend=_per_day_trend(lambda day: _avg(e.intensity for e in day)),
    ),
    TrackerType.MEAL: TrackerAggregation(
        bucket_metrics=_meal_metrics,
        summary=_meal_summary,
        distribution=_meal_distribution,
        breakdown=macro_estimate,
        trend=_per_day_trend(lambda day: _avg(e.calories for e in day)),
    ),
    TrackerType.SLEEP: TrackerAggregation(
        bucket_metrics=_sleep_metrics,
        summary=_sleep_summary,
        distribution=sleep_phase_estimate,
        breakdown=sleep_phase_estimate,
        trend=_rolling_sleep_trend,
    ),
}

_missing = set(TrackerType) - set(AGGREGATIONS)
if _missing:
    raise RuntimeError(f"No aggregation for trackers: {sorted(t.value for t in _missing)}")


def daily_buckets(tracker: TrackerType, entries: Entries, now: datetime) -> list[DailyBucket]:
    """Seven buckets, oldest first, ending today. Empty days are all-zero."""
    reduce = AGGREGATIONS[tracker].bucket_metrics
    return [
        DailyBucket(
            dayLabel=day_label(day),
            date=day.date(),
            metrics=reduce(filter_window(entries, _day_window(day))),
        )
        for day in week_days(now)
    ]


def has_data(buckets: Sequence[DailyBucket]) -> bool:
    return any(v > 0 for b in buckets for v in b.metrics.values())


def weekly_summary(tracker: TrackerType, entries: Entries, now: datetime) -> list[SummaryStat]:
    return AGGREGATIONS[tracker].summary(entries, now)


def distribution(tracker: TrackerType, entries: Entries) -> list[DistributionSlice]:
    """Category totals over the whole log (not window-limited)."""
    return AGGREGATIONS[tracker].distribution(entries)


def breakdown(tracker: TrackerType, entries: Entries) -> list[DistributionSlice]:
    return AGGREGATIONS[tracker].breakdown(entries)


def trend(tracker: TrackerType, entries: Entries, now: datetime) -> list[TrendPoint]:
    return AGGREGATIONS[tracker].trend(entries, now)
