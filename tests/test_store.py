from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from havitsync.models import MealEntry, SleepEntry, StudyEntry, TrackerType, WorkoutEntry
from havitsync.store import EntryStore, sample_entries, tracker_of

NOW = datetime(2026, 3, 18, 15, 30, tzinfo=timezone.utc)


class EntryStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = EntryStore(clock=lambda: NOW)

    def test_add_assigns_id_and_clock_timestamp(self) -> None:
        a = self.store.add_study({"subject": "Math", "durationHours": 2})
        b = self.store.add_study({"subject": "Math", "durationHours": 2})
        self.assertIsInstance(a, StudyEntry)
        self.assertEqual(a.timestamp, NOW)
        self.assertNotEqual(a.id, b.id)

    def test_caller_cannot_set_timestamp_or_id(self) -> None:
        e = self.store.add_sleep({"timestamp": "2020-01-01T00:00:00Z", "id": "mine"})
        self.assertEqual(e.timestamp, NOW)
        self.assertNotEqual(e.id, "mine")

    def test_empty_input_uses_tracker_defaults(self) -> None:
        study = self.store.add_study()
        self.assertEqual((study.subject, study.durationHours, study.efficiency, study.notes), ("Untitled", 1.0, 3, None))

        workout = self.store.add_workout({})
        self.assertEqual(
            (workout.workoutType, workout.durationMinutes, workout.calories, workout.intensity),
            ("Other", 30.0, 0.0, 3),
        )

        meal = self.store.add_meal({})
        self.assertEqual(
            (meal.mealType, meal.foodItems, meal.calories, meal.waterIntakeCups),
            ("snack", "Not specified", 0.0, 0.0),
        )

        sleep = self.store.add_sleep({})
        self.assertEqual((sleep.durationHours, sleep.quality, sleep.notes), (7.0, 3, None))

    def test_invalid_values_fall_back_to_defaults(self) -> None:
        e = self.store.add_workout(
            {
                "workoutType": "   ",
                "durationMinutes": "abc",
                "calories": -50,
                "intensity": 9,
            }
        )
        self.assertEqual(e.workoutType, "Other")
        self.assertEqual(e.durationMinutes, 30.0)
        self.assertEqual(e.calories, 0.0)
        self.assertEqual(e.intensity, 3)

        s = self.store.add_study({"efficiency": 4.5, "durationHours": float("nan")})
        self.assertEqual(s.efficiency, 3)
        self.assertEqual(s.durationHours, 1.0)

    def test_string_numbers_and_legacy_field_names(self) -> None:
        s = self.store.add_sleep({"sleepDuration": "6.5", "sleepQuality": "5", "sleepNotes": "ok"})
        self.assertEqual((s.durationHours, s.quality, s.notes), (6.5, 5, "ok"))

        m = self.store.add_meal({"mealType": "Dinner", "waterIntake": 2, "calories": "640"})
        self.assertEqual((m.mealType, m.waterIntakeCups, m.calories), ("dinner", 2.0, 640.0))

        w = self.store.add_workout({"duration": 45})
        self.assertEqual(w.durationMinutes, 45.0)

    def test_unknown_meal_type_defaults_to_snack(self) -> None:
        m = self.store.add_meal({"mealType": "brunch"})
        self.assertEqual(m.mealType, "snack")

    def test_logs_keep_insertion_order_and_are_separate(self) -> None:
        first = self.store.add_study({"subject": "A"})
        second = self.store.add_study({"subject": "B"})
        self.store.add_meal({})
        self.assertEqual([e.id for e in self.store.entries(TrackerType.STUDY)], [first.id, second.id])
        self.assertEqual(self.store.counts(), {"study": 2, "workout": 0, "meal": 1, "sleep": 0})

    def test_entries_snapshot_is_not_affected_by_later_adds(self) -> None:
        snap = self.store.entries(TrackerType.SLEEP)
        self.store.add_sleep({})
        self.assertEqual(len(snap), 0)
        self.assertEqual(len(self.store.entries(TrackerType.SLEEP)), 1)

    def test_sample_entries_are_routed_to_their_logs(self) -> None:
        store = EntryStore(initial=sample_entries(NOW))
        self.assertEqual(store.counts(), {"study": 3, "workout": 3, "meal": 4, "sleep": 3})
        oldest_meal = store.entries(TrackerType.MEAL)[0]
        self.assertEqual(oldest_meal.timestamp, NOW - timedelta(days=7))

    def test_tracker_of(self) -> None:
        for entry, tracker in (
            (StudyEntry(id="1", timestamp=NOW, subject="x", durationHours=1, efficiency=3), TrackerType.STUDY),
            (WorkoutEntry(id="2", timestamp=NOW, workoutType="x", durationMinutes=1, calories=0, intensity=3),
             TrackerType.WORKOUT),
            (MealEntry(id="3", timestamp=NOW, mealType="lunch", foodItems="x", calories=0, waterIntakeCups=0),
             TrackerType.MEAL),
            (SleepEntry(id="4", timestamp=NOW, durationHours=7, quality=3), TrackerType.SLEEP),
        ):
            self.assertEqual(tracker_of(entry), tracker)


class TrackerTypeTests(unittest.TestCase):
    def test_parse_accepts_value_and_label(self) -> None:
        self.assertEqual(TrackerType.parse("study"), TrackerType.STUDY)
        self.assertEqual(TrackerType.parse("Meal Planner"), TrackerType.MEAL)
        self.assertEqual(TrackerType.parse("sleep tracker"), TrackerType.SLEEP)

    def test_parse_rejects_unknown(self) -> None:
        with self.assertRaises(ValueError):
            TrackerType.parse("Mood Tracker")


if __name__ == "__main__":
    unittest.main()
