"""
Wearable export parsers.

Samsung Health JSON exports (the files under /jsons/ in the export ZIP,
keyed by their data type) and a generic list-of-days format. Both return
daily activity records, most recent first.
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional, Union

from lifelog.models import parse_timestamp

STEP_KEYS = ("com.samsung.shealth.step_daily_trend", "step_daily_trend", "steps")
CALORIE_KEYS = ("com.samsung.shealth.calories_burned.details", "calories_burned", "calories")
EXERCISE_KEYS = ("com.samsung.shealth.exercise", "exercise", "workouts")
HEART_RATE_KEYS = ("com.samsung.shealth.heart_rate", "heart_rate", "heartRate")

# Samsung Health exercise type codes
EXERCISE_TYPES = {
    1001: "walking",
    1002: "running",
    1003: "treadmill",
    2001: "cycling",
    2002: "stationary_bike",
    3001: "hiking",
    3002: "mountain_climbing",
    4001: "tennis",
    4002: "badminton",
    5001: "soccer",
    5002: "basketball",
    10001: "strength",
    10002: "weight_training",
    10003: "circuit_training",
    11001: "swimming",
    11002: "pool_swimming",
    14001: "yoga",
    14002: "pilates",
    14003: "stretching",
    15001: "dancing",
    16001: "aerobics",
    0: "other",
}

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def extract_date(value: Union[str, int, float, None]) -> Optional[str]:
    """YYYY-MM-DD from a date string, ISO timestamp or epoch milliseconds."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date().isoformat()
    if isinstance(value, str):
        if _DATE_ONLY.match(value):
            return value
        try:
            return parse_timestamp(value.replace(" ", "T", 1)).date().isoformat()
        except ValueError:
            return None
    return None


def map_exercise_type(value: Union[str, int, None]) -> str:
    if isinstance(value, str):
        lower = value.lower()
        if "walk" in lower:
            return "walking"
        if "run" in lower:
            return "running"
        if "cycl" in lower or "bike" in lower:
            return "cycling"
        if "swim" in lower:
            return "swimming"
        if "yoga" in lower:
            return "yoga"
        if "strength" in lower or "weight" in lower:
            return "strength"
        return lower
    return EXERCISE_TYPES.get(value, "other")


def _first(data: dict[str, Any], keys: tuple[str, ...]) -> list[dict[str, Any]]:
    for key in keys:
        if data.get(key):
            return data[key]
    return []


def _blank_day(day: str) -> dict[str, Any]:
    return {
        "date": day,
        "steps": 0,
        "calories": 0,
        "distance": 0.0,
        "distance_unit": "km",
        "active_minutes": 0,
        "exercises": [],
    }


def parse_samsung_export(export: dict[str, Any]) -> list[dict[str, Any]]:
    days: dict[str, dict[str, Any]] = {}
    heart_rates: dict[str, list[float]] = {}

    def day_record(day: str) -> dict[str, Any]:
        if day not in days:
            days[day] = _blank_day(day)
        return days[day]

    for record in _first(export, STEP_KEYS):
        day = extract_date(record.get("day_time") or record.get("create_time") or record.get("date"))
        if not day:
            continue
        activity = day_record(day)
        activity["steps"] = max(activity["steps"], record.get("count") or record.get("steps") or 0)
        # Distance arrives in meters
        activity["distance"] = max(activity["distance"], (record.get("distance") or 0) / 1000)
        activity["calories"] += record.get("calorie") or 0

    for record in _first(export, CALORIE_KEYS):
        day = extract_date(record.get("day_time") or record.get("create_time") or record.get("date"))
        if not day:
            continue
        if record.get("total_calorie"):
            day_record(day)["calories"] = record["total_calorie"]

    for record in _first(export, EXERCISE_KEYS):
        day = extract_date(record.get("start_time") or record.get("date"))
        if not day:
            continue
        activity = day_record(day)
        duration_ms = record.get("duration") or 0
        activity["exercises"].append({
            "type": map_exercise_type(record.get("exercise_type") or record.get("type")),
            "start_time": record.get("start_time") or f"{day}T12:00:00+00:00",
            "duration": duration_ms,
            "calories": record.get("calorie") or record.get("calories") or 0,
            "distance": record.get("distance") or 0,
        })
        activity["active_minutes"] += round(duration_ms / 60000)

    for record in _first(export, HEART_RATE_KEYS):
        day = extract_date(record.get("start_time") or record.get("create_time") or record.get("date"))
        if not day:
            continue
        day_record(day)
        bpm = record.get("heart_rate") or record.get("value") or record.get("bpm")
        if isinstance(bpm, (int, float)) and not isinstance(bpm, bool):
            heart_rates.setdefault(day, []).append(bpm)

    for day, rates in heart_rates.items():
        days[day]["heart_rate_avg"] = round(sum(rates) / len(rates))
        days[day]["heart_rate_min"] = min(rates)
        days[day]["heart_rate_max"] = max(rates)

    return sorted(days.values(), key=lambda a: a["date"], reverse=True)


def parse_generic_export(export: Any) -> list[dict[str, Any]]:
    """Fallback for non-Samsung data: a list of per-day records."""
    if not isinstance(export, list):
        return []

    activities = []
    for record in export:
        day = extract_date(record.get("date") or record.get("timestamp") or record.get("day"))
        if not day:
            continue
        activity = _blank_day(day)
        activity.update({
            "steps": record.get("steps") or 0,
            "calories": record.get("calories") or record.get("calories_burned") or 0,
            "distance": record.get("distance") or record.get("distance_km") or 0,
            "active_minutes": record.get("active_minutes") or record.get("activeMinutes") or 0,
            "exercises": record.get("exercises") or record.get("workouts") or [],
            "heart_rate_avg": record.get("heart_rate") or record.get("avg_heart_rate"),
        })
        activities.append(activity)
    return sorted(activities, key=lambda a: a["date"], reverse=True)


def parse_export(export: Any, source_type: str) -> list[dict[str, Any]]:
    if source_type in ("samsung-health", "samsung"):
        return parse_samsung_export(export)
    return parse_generic_export(export)
