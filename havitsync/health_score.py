from __future__ import annotations

from .models import RecentEntries

BASE_SCORE = 75
MAX_SCORE = 100

STUDY_BONUS = 5
WORKOUT_BONUS = 7
WORKOUT_MIN_COUNT = 3  # strictly more than this
MEAL_BONUS = 5
MEAL_MIN_COUNT = 5  # strictly more than this
SLEEP_GOOD_BONUS = 8
SLEEP_BASE_BONUS = 4
SLEEP_GOOD_QUALITY = 3  # average strictly above this
SLEEP_RECENT_ENTRIES = 7


def calc_health_score(recent: RecentEntries) -> int:
    """Engagement score over the recent window.

    Bonuses are additive on a base of 75, so the result stays in [75, 100].
    A penalty term would need a lower clamp as well.
    """
    score = BASE_SCORE

    if recent.study:
        score += STUDY_BONUS
    if len(recent.workout) > WORKOUT_MIN_COUNT:
        score += WORKOUT_BONUS
    if len(recent.meal) > MEAL_MIN_COUNT:
        score += MEAL_BONUS
    if recent.sleep:
        # last 7 by insertion order, not the last 7 days
        tail = recent.sleep[-SLEEP_RECENT_ENTRIES:]
        avg_quality = sum(e.quality for e in tail) / len(tail)
        score += SLEEP_GOOD_BONUS if avg_quality > SLEEP_GOOD_QUALITY else SLEEP_BASE_BONUS

    return min(MAX_SCORE, score)
