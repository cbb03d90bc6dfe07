from __future__ import annotations

import unittest
from datetime import datetime, timezone

from fastapi.testclient import TestClient

from havitsync.dashboard import Dashboard
from havitsync.insights import InsightPipeline
from havitsync.main import app, get_dashboard
from havitsync.store import EntryStore, sample_entries

NOW = datetime(2026, 3, 18, 15, 30, tzinfo=timezone.utc)


class OfflineClient:
    def is_ready(self) -> bool:
        return False

    def try_initialize(self, api_key: str | None) -> bool:
        return False

    def generate(self, prompt: str) -> str:
        raise AssertionError("should not be called while offline")


class MainEndpointsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = EntryStore(clock=lambda: NOW)
        self.dashboard = Dashboard(self.store, InsightPipeline(OfflineClient(), timeout=5), clock=lambda: NOW)
        app.dependency_overrides[get_dashboard] = lambda: self.dashboard

        self.client_ctx = TestClient(app)
        self.client = self.client_ctx.__enter__()

    def tearDown(self) -> None:
        self.client_ctx.__exit__(None, None, None)
        app.dependency_overrides.clear()

    def test_status_reports_counts(self) -> None:
        self.store.add_meal({})
        r = self.client.get("/api/status")
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertTrue(body["ok"])
        self.assertEqual(body["entryCounts"], {"study": 0, "workout": 0, "meal": 1, "sleep": 0})
        self.assertFalse(body["insightsReady"])

    def test_post_entry_applies_defaults_and_server_timestamp(self) -> None:
        r = self.client.post("/api/entries/study", json={"subject": "Math", "timestamp": "2001-01-01T00:00:00Z"})
        self.assertEqual(r.status_code, 201)
        body = r.json()
        self.assertEqual(body["subject"], "Math")
        self.assertEqual(body["durationHours"], 1.0)
        self.assertEqual(body["efficiency"], 3)
        self.assertTrue(body["id"])
        self.assertTrue(body["timestamp"].startswith("2026-03-18T15:30:00"))

        r2 = self.client.post("/api/entries/sleep")
        self.assertEqual(r2.status_code, 201)
        self.assertEqual((r2.json()["durationHours"], r2.json()["quality"]), (7.0, 3))

        listed = self.client.get("/api/entries/study").json()
        self.assertEqual(listed["tracker"], "study")
        self.assertEqual([e["id"] for e in listed["entries"]], [body["id"]])

    def test_tracker_label_is_accepted_in_path(self) -> None:
        r = self.client.get("/api/trackers/Study%20Tracker/daily")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["tracker"], "study")

    def test_unknown_tracker_is_404(self) -> None:
        self.assertEqual(self.client.get("/api/trackers/mood/daily").status_code, 404)
        self.assertEqual(self.client.post("/api/entries/mood", json={}).status_code, 404)

    def test_daily_buckets_and_has_data(self) -> None:
        empty = self.client.get("/api/trackers/workout/daily").json()
        self.assertEqual(len(empty["buckets"]), 7)
        self.assertFalse(empty["hasData"])

        self.store.add_workout({"durationMinutes": 45, "calories": 320})
        body = self.client.get("/api/trackers/workout/daily").json()
        self.assertTrue(body["hasData"])
        self.assertEqual(body["buckets"][-1]["date"], "2026-03-18")
        self.assertEqual(body["buckets"][-1]["metrics"], {"minutes": 45.0, "calories": 320.0})

    def test_study_and_workout_today_scenario(self) -> None:
        self.store.add_study({"subject": "Math", "durationHours": 2.5})
        self.store.add_workout({"durationMinutes": 45, "calories": 320})

        stats = self.client.get("/api/trackers/study/summary").json()["stats"]
        hours_today = next(s for s in stats if s["key"] == "hoursToday")
        self.assertEqual(hours_today["currentValue"], "2.5")

        self.assertEqual(self.client.get("/api/health-score").json(), {"score": 80})

    def test_empty_logs_return_fallback_insights(self) -> None:
        r = self.client.get("/api/insights")
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["healthScore"], 75)
        self.assertEqual(
            [(i["title"], i["confidence"], i["type"]) for i in body["insights"]],
            [
                ("Smart Recommendations", "90%", "recommendation"),
                ("Progress Trend", "85%", "trend"),
                ("Goal Adjustment", "92%", "goal"),
            ],
        )
        self.assertEqual(self.client.get("/api/insights/latest").json(), body)

    def test_empty_distribution_and_trend(self) -> None:
        self.assertEqual(self.client.get("/api/trackers/meal/distribution").json()["slices"], [])
        self.assertEqual(self.client.get("/api/trackers/sleep/breakdown").json()["slices"], [])
        points = self.client.get("/api/trackers/sleep/trend").json()["points"]
        self.assertEqual([p["value"] for p in points], [0.0] * 7)

    def test_breakdown_of_sample_meals_is_estimated(self) -> None:
        seeded = Dashboard(EntryStore(initial=sample_entries(NOW)), self.dashboard.pipeline, clock=lambda: NOW)
        app.dependency_overrides[get_dashboard] = lambda: seeded
        slices = self.client.get("/api/trackers/meal/breakdown").json()["slices"]
        self.assertEqual([s["category"] for s in slices], ["Protein", "Carbs", "Fats", "Fiber"])
        self.assertTrue(all(s["estimated"] for s in slices))

    def test_prompt_preview(self) -> None:
        self.store.add_sleep({"durationHours": 8, "quality": 5})
        prompt = self.client.get("/api/insights/prompt").json()["prompt"]
        self.assertIn("Sleep data: [", prompt)
        self.assertNotIn("Study data", prompt)


if __name__ == "__main__":
    unittest.main()
