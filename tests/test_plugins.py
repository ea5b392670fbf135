"""
Tests for the exercise and wearable plugins.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from lifelog.core import LifeLog
from lifelog.errors import ConfigurationError
from lifelog.hooks import ON_ENTRY_ANALYZED, ON_ENTRY_CREATED, DateRange
from lifelog.models import utcnow
from plugins import load_observers
from plugins.exercise import ExerciseObserver
from plugins.exercise.data import ExerciseLog
from plugins.wearable import WearableObserver
from plugins.wearable.data import WearableData
from plugins.wearable.parsers import (
    extract_date,
    map_exercise_type,
    parse_generic_export,
    parse_samsung_export,
)

from .helpers import make_entry


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

class TestLoadObservers:

    def test_loads_in_order(self, tmp_path):
        observers = load_observers(["wearable", "exercise"], tmp_path)
        assert [o.name for o in observers] == ["wearable", "exercise"]

    def test_unknown_plugin(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_observers(["telepathy"], tmp_path)

    def test_empty_list(self, tmp_path):
        assert load_observers([], tmp_path) == []


# ---------------------------------------------------------------------------
# Exercise
# ---------------------------------------------------------------------------

class TestExerciseLog:

    def test_streak_counts_consecutive_days(self):
        log = ExerciseLog()
        log.log_session("balance", timestamp="2024-03-01T08:00:00+00:00")
        log.log_session("walk", timestamp="2024-03-02T08:00:00+00:00")
        log.log_session("walk", timestamp="2024-03-02T18:00:00+00:00")
        log.log_session("yoga", timestamp="2024-03-03T08:00:00+00:00")
        assert log.streaks == {"current": 3, "longest": 3, "last_date": "2024-03-03"}

    def test_gap_resets_current_streak(self):
        log = ExerciseLog()
        log.log_session("walk", timestamp="2024-03-01T08:00:00+00:00")
        log.log_session("walk", timestamp="2024-03-02T08:00:00+00:00")
        log.log_session("walk", timestamp="2024-03-05T08:00:00+00:00")
        assert log.streaks["current"] == 1
        assert log.streaks["longest"] == 2

    def test_invalid_timestamp_records_nothing(self, tmp_path):
        path = tmp_path / "exercise.json"
        log = ExerciseLog(path)
        log.log_session("walk", timestamp="2024-03-01T08:00:00+00:00")

        with pytest.raises(ValueError):
            log.log_session("walk", timestamp="not-a-date")

        assert len(log.sessions()) == 1
        assert log.stats()["streaks"]["current"] == 1
        assert len(ExerciseLog(path).sessions()) == 1

    def test_sessions_filtered_and_sorted(self):
        log = ExerciseLog()
        log.log_session("walk", timestamp="2024-03-01T08:00:00+00:00")
        log.log_session("yoga", timestamp="2024-03-03T08:00:00+00:00")
        log.log_session("walk", timestamp="2024-03-02T08:00:00+00:00")
        walks = log.sessions(category="walk")
        assert [s["timestamp"][:10] for s in walks] == ["2024-03-02", "2024-03-01"]
        assert len(log.sessions(from_="2024-03-02", limit=1)) == 1

    def test_stats(self):
        log = ExerciseLog()
        log.log_session("walk", duration=1200)
        log.log_session("walk", duration=600)
        log.log_session("strength", duration=900,
                        timestamp=(utcnow() - timedelta(days=30)).isoformat())
        stats = log.stats(days=7)
        assert stats["period"]["sessions_count"] == 2
        assert stats["by_category"] == {"walk": 2}
        assert stats["total_duration"] == 1800
        assert stats["days_active"] == 1

    def test_persistence(self, tmp_path):
        path = tmp_path / "exercise.json"
        ExerciseLog(path).log_session("walk", timestamp="2024-03-01T08:00:00+00:00")
        reloaded = ExerciseLog(path)
        assert len(reloaded.sessions()) == 1
        assert reloaded.streaks["current"] == 1

    def test_digest_contribution(self):
        log = ExerciseLog()
        assert log.digest_contribution(date(2024, 3, 1), date(2024, 3, 1)) is None
        log.log_session("walk", duration=1800, timestamp="2024-03-01T08:00:00+00:00")
        log.log_session("yoga", duration=1200, timestamp="2024-03-01T18:00:00+00:00")
        contribution = log.digest_contribution(date(2024, 3, 1), date(2024, 3, 1))
        assert contribution["summary"] == "2 exercise sessions (50 minutes)"
        assert contribution["details"]["categories"] == ["walk", "yoga"]


class TestExerciseObserver:

    def test_detects_keywords(self):
        observer = ExerciseObserver()
        result = observer.on_entry_created(make_entry(1, transcript="Did my PT stretches and a short walk"))
        assert result["detected"]
        assert result["keywords"] == ["stretch", "walk", "pt"]

    def test_ignores_words_containing_pt(self):
        observer = ExerciseObserver()
        assert observer.on_entry_created(make_entry(1, transcript="The receipt was optional")) is None

    def test_no_transcript(self):
        assert ExerciseObserver().on_entry_created(make_entry(1)) is None

    def test_analysis_extracts_exercise_items(self):
        entry = make_entry(
            1,
            topics=["Fitness", "budget"],
            action_items=["Schedule PT session", "Call the bank"],
        )
        result = ExerciseObserver().on_entry_analyzed(entry)
        assert result == {"topics": ["Fitness"], "action_items": ["Schedule PT session"]}

    def test_digest_uses_date_range(self):
        observer = ExerciseObserver()
        observer.log.log_session("walk", duration=600, timestamp="2024-03-04T08:00:00+00:00")
        result = observer.contribute_to_digest([], DateRange(date(2024, 3, 3), date(2024, 3, 9)))
        assert result["details"]["sessions"] == 1


# ---------------------------------------------------------------------------
# Wearable
# ---------------------------------------------------------------------------

SAMSUNG_EXPORT = {
    "com.samsung.shealth.step_daily_trend": [
        {"day_time": 1709510400000, "count": 8200, "distance": 6100, "calorie": 310},
        {"day_time": 1709596800000, "count": 12400, "distance": 9000, "calorie": 450},
    ],
    "com.samsung.shealth.calories_burned.details": [
        {"day_time": "2024-03-05", "total_calorie": 2300},
    ],
    "com.samsung.shealth.exercise": [
        {"start_time": "2024-03-05T07:30:00Z", "exercise_type": 1002, "duration": 1800000, "calorie": 280},
    ],
    "com.samsung.shealth.heart_rate": [
        {"start_time": "2024-03-05T07:40:00Z", "heart_rate": 120},
        {"start_time": "2024-03-05T12:00:00Z", "heart_rate": 70},
    ],
}


class TestParsers:

    def test_samsung_export(self):
        activities = parse_samsung_export(SAMSUNG_EXPORT)
        assert [a["date"] for a in activities] == ["2024-03-05", "2024-03-04"]

        day = activities[0]
        assert day["steps"] == 12400
        assert day["distance"] == 9.0
        assert day["calories"] == 2300
        assert day["active_minutes"] == 30
        assert day["exercises"][0]["type"] == "running"
        assert (day["heart_rate_avg"], day["heart_rate_min"], day["heart_rate_max"]) == (95, 70, 120)
        assert "heart_rate_avg" not in activities[1]

    def test_generic_export(self):
        activities = parse_generic_export([
            {"date": "2024-03-01", "steps": 5000, "activeMinutes": 20},
            {"timestamp": "2024-03-02T10:00:00Z", "steps": 7000},
            {"note": "no date"},
        ])
        assert [a["date"] for a in activities] == ["2024-03-02", "2024-03-01"]
        assert activities[1]["active_minutes"] == 20
        assert parse_generic_export({"not": "a list"}) == []

    @pytest.mark.parametrize("value,expected", [
        ("2024-03-05", "2024-03-05"),
        ("2024-03-05T23:10:00+00:00", "2024-03-05"),
        ("2024-03-05 07:30:00", "2024-03-05"),
        (1709596800000, "2024-03-05"),
        ("garbage", None),
        (None, None),
    ])
    def test_extract_date(self, value, expected):
        assert extract_date(value) == expected

    def test_map_exercise_type(self):
        assert map_exercise_type(14001) == "yoga"
        assert map_exercise_type(99999) == "other"
        assert map_exercise_type("Outdoor Cycling") == "cycling"
        assert map_exercise_type("Rowing") == "rowing"


class TestWearableData:

    def test_merge_by_date_and_source(self):
        store = WearableData()
        assert store.add_activities([{"date": "2024-03-05", "steps": 100}], "watch") == {"added": 1, "updated": 0}
        assert store.add_activities([{"date": "2024-03-05", "steps": 900}], "watch") == {"added": 0, "updated": 1}
        assert store.add_activities([{"date": "2024-03-05", "steps": 50}], "phone") == {"added": 1, "updated": 0}
        assert len(store.activities()) == 2
        assert store.activities(source_id="watch")[0]["steps"] == 900

    def test_sources_and_goals(self, tmp_path):
        path = tmp_path / "wearable.json"
        store = WearableData(path)
        store.add_source("watch-1", "samsung-health", "Galaxy Watch")
        store.add_activities([{"date": "2024-03-05", "steps": 100}], "watch-1")
        store.set_goals(steps=8000, active_minutes=None)

        reloaded = WearableData(path)
        assert reloaded.sources[0]["last_import_at"] is not None
        assert reloaded.goals == {"steps": 8000, "active_minutes": 30, "calories": 2000}
        assert reloaded.remove_source("watch-1")
        assert not reloaded.remove_source("watch-1")

    def test_snapshot_interpolates_over_the_day(self):
        store = WearableData()
        activity = {
            "date": "2024-03-05",
            "steps": 10000,
            "calories": 2000,
            "active_minutes": 45,
            "exercises": [
                {"type": "running", "start_time": "2024-03-05T07:30:00+00:00"},
                {"type": "yoga", "start_time": "2024-03-05T19:00:00+00:00"},
            ],
        }
        noon = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)
        snapshot = store.snapshot_at(activity, noon)
        assert snapshot["steps_at_time"] == 5000
        assert snapshot["calories_at_time"] == 1000
        assert snapshot["last_exercise"] == {"type": "running", "minutes_ago": 270}
        assert snapshot["day_progress"]["steps"] == 1.0
        assert snapshot["day_progress"]["active_minutes"] == 1.5

    def test_weekly_stats(self):
        store = WearableData()
        store.add_activities([
            {"date": "2024-03-05", "steps": 7000, "calories": 100, "active_minutes": 10},
            {"date": "2024-03-01", "steps": 700, "calories": 0, "active_minutes": 0},
        ], "watch")
        stats = store.weekly_stats(today=date(2024, 3, 6))
        assert len(stats["daily_data"]) == 7
        assert stats["daily_data"][-2] == {
            "date": "2024-03-05", "day_name": "Tue", "steps": 7000, "calories": 100, "active_minutes": 10,
        }
        assert stats["totals"]["steps"] == 7700
        assert stats["averages"]["steps"] == 1100

    def test_digest_contribution(self):
        store = WearableData()
        store.add_activities([
            {"date": "2024-03-04", "steps": 12000},
            {"date": "2024-03-05", "steps": 4000},
        ], "watch")
        contribution = store.digest_contribution(date(2024, 3, 3), date(2024, 3, 9))
        assert contribution["summary"] == "2 days tracked. 8,000 avg steps/day. 1 days met step goal."
        assert store.digest_contribution(date(2024, 1, 1), date(2024, 1, 7)) is None


class TestWearableObserver:

    @pytest.fixture
    def lifelog(self, config, providers):
        observer = WearableObserver()
        observer.store.add_activities([{
            "date": "2024-03-05",
            "steps": 20000,
            "active_minutes": 40,
            "exercises": [{"type": "walking", "start_time": "2024-03-05T11:30:00+00:00"}],
        }], "watch")
        return LifeLog(config, providers=providers, observers=[observer])

    def test_snapshot_attached_on_creation(self, lifelog):
        entry = lifelog.ingest(timestamp="2024-03-05T12:00:00+00:00", transcript="Feeling good")
        context = entry.plugin_data["wearable"][ON_ENTRY_CREATED]["context"]
        assert context["steps_at_time"] == 10000
        assert context["last_exercise"] == {"type": "walking", "minutes_ago": 30}

    def test_insights_after_analysis(self, lifelog):
        entry = lifelog.ingest(timestamp="2024-03-05T12:00:00+00:00", transcript="Feeling good")
        lifelog.pipeline.run(entry.id)

        insights = lifelog.get(entry.id).plugin_data["wearable"][ON_ENTRY_ANALYZED]
        assert insights["activity_insights"] == ["Step goal reached", "Activity goal met", "Recently did walking"]
        assert insights["summary"] == "Activity: 20,000 steps, 40 active min"

    def test_no_activity_that_day(self, lifelog):
        entry = lifelog.ingest(timestamp="2024-03-09T12:00:00+00:00", transcript="Quiet day")
        assert "wearable" not in entry.plugin_data
