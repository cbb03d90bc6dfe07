from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from . import aggregator
from .health_score import calc_health_score
from .insights import InsightPipeline
from .models import (
    DailyBucket,
    DistributionSlice,
    InsightBatch,
    RecentEntries,
    SummaryStat,
    TrackerType,
    TrendPoint,
)
from .store import EntryStore
from .windows import ensure_aware, now_local


class Dashboard:
    """Read-side queries over the entry store.

    Everything is recomputed from the current log on every call. ``now``
    defaults to the dashboard clock and can be pinned for a consistent view.
    """

    def __init__(
        self,
        store: EntryStore,
        pipeline: InsightPipeline,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self.store = store
        self.pipeline = pipeline
        self._clock = clock

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_aware(now if now is not None else self._clock())

    def daily_buckets(self, tracker: TrackerType, now: Optional[datetime] = None) -> list[DailyBucket]:
        return aggregator.daily_buckets(tracker, self.store.entries(tracker), self._now(now))

    def weekly_summary(self, tracker: TrackerType, now: Optional[datetime] = None) -> list[SummaryStat]:
        return aggregator.weekly_summary(tracker, self.store.entries(tracker), self._now(now))

    def distribution(self, tracker: TrackerType) -> list[DistributionSlice]:
        return aggregator.distribution(tracker, self.store.entries(tracker))

    def breakdown(self, tracker: TrackerType) -> list[DistributionSlice]:
        return aggregator.breakdown(tracker, self.store.entries(tracker))

    def trend(self, tracker: TrackerType, now: Optional[datetime] = None) -> list[TrendPoint]:
        return aggregator.trend(tracker, self.store.entries(tracker), self._now(now))

    def recent(self, now: Optional[datetime] = None) -> RecentEntries:
        return aggregator.recent_entries(self.store, self._now(now))

    def health_score(self, now: Optional[datetime] = None) -> int:
        return calc_health_score(self.recent(now))

    async def insights(self, now: Optional[datetime] = None) -> InsightBatch:
        return await self.pipeline.generate(self.recent(now))

    def latest_insights(self) -> InsightBatch:
        return self.pipeline.latest()
