"""
Wearable activity store.

Daily activity records merged by (date, source), the devices they came
from, and the user's daily goals, persisted as one JSON document.
"""

import json
import logging
import os
import threading
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any, Optional

from lifelog.models import parse_timestamp, utcnow, utcnow_iso

logger = logging.getLogger(__name__)

DEFAULT_GOALS = {"steps": 10000, "active_minutes": 30, "calories": 2000}


def _empty() -> dict[str, Any]:
    return {"sources": [], "activities": [], "goals": dict(DEFAULT_GOALS)}


def _ratio(value: float, goal: float) -> float:
    return (value or 0) / goal if goal else 0.0


class WearableData:
    """Activity data from wearables. path=None keeps it in memory."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self.data = _empty()
        self._load()

    def _load(self):
        if not self.path or not self.path.exists():
            return
        try:
            self.data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as e:
            logger.warning(f"[Wearable] Starting with empty data: {e}")
            self.data = _empty()

    def _save(self):
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self.data, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    @property
    def sources(self) -> list[dict[str, Any]]:
        return [dict(s) for s in self.data["sources"]]

    def _find_source(self, source_id: str) -> Optional[dict[str, Any]]:
        return next((s for s in self.data["sources"] if s["id"] == source_id), None)

    def add_source(self, source_id: str, source_type: str = "unknown",
                   name: str = "Unknown Device") -> dict[str, Any]:
        """Register a device, or update the type and name of a known one."""
        with self._lock:
            source = self._find_source(source_id)
            if source:
                source.update(type=source_type, name=name)
            else:
                source = {
                    "id": source_id,
                    "type": source_type,
                    "name": name,
                    "added_at": utcnow_iso(),
                    "last_import_at": None,
                }
                self.data["sources"].append(source)
            self._save()
            return dict(source)

    def remove_source(self, source_id: str) -> bool:
        """Forget a device. Its historical activities are kept."""
        with self._lock:
            source = self._find_source(source_id)
            if not source:
                return False
            self.data["sources"].remove(source)
            self._save()
            return True

    # ------------------------------------------------------------------
    # Activities
    # ------------------------------------------------------------------

    def add_activities(self, activities: list[dict[str, Any]], source_id: str) -> dict[str, int]:
        """Merge daily records; a second record for the same date and
        source updates the first."""
        added = updated = 0
        now = utcnow_iso()
        with self._lock:
            for incoming in activities:
                record = dict(incoming, source_id=source_id, imported_at=now)
                existing = next(
                    (a for a in self.data["activities"]
                     if a["date"] == record["date"] and a["source_id"] == source_id),
                    None,
                )
                if existing:
                    existing.update(record)
                    updated += 1
                else:
                    self.data["activities"].append(record)
                    added += 1

            self.data["activities"].sort(key=lambda a: a["date"], reverse=True)
            source = self._find_source(source_id)
            if source:
                source["last_import_at"] = now
            self._save()

        logger.info(f"[Wearable] {source_id}: {added} days added, {updated} updated")
        return {"added": added, "updated": updated}

    def activity_for_date(self, day: str) -> Optional[dict[str, Any]]:
        for activity in self.data["activities"]:
            if activity["date"] == day:
                return dict(activity)
        return None

    def activities(
        self,
        from_: Optional[str] = None,
        to: Optional[str] = None,
        source_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        result = list(self.data["activities"])
        if from_:
            result = [a for a in result if a["date"] >= from_]
        if to:
            result = [a for a in result if a["date"] <= to]
        if source_id:
            result = [a for a in result if a["source_id"] == source_id]
        if limit:
            result = result[:limit]
        return result

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    @property
    def goals(self) -> dict[str, int]:
        return dict(self.data["goals"])

    def set_goals(self, **goals: Optional[int]) -> dict[str, int]:
        with self._lock:
            self.data["goals"].update({k: int(v) for k, v in goals.items() if v is not None})
            self._save()
            return self.goals

    def progress(self, activity: Optional[dict[str, Any]]) -> dict[str, float]:
        goals = self.data["goals"]
        if not activity:
            return {"steps": 0.0, "active_minutes": 0.0, "calories": 0.0}
        return {
            "steps": _ratio(activity.get("steps"), goals.get("steps")),
            "active_minutes": _ratio(activity.get("active_minutes"), goals.get("active_minutes")),
            "calories": _ratio(activity.get("calories"), goals.get("calories")),
        }

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def snapshot_at(self, activity: dict[str, Any], at: datetime) -> dict[str, Any]:
        """Activity as of `at`, interpolating the day's totals linearly
        over the calendar day."""
        day = date.fromisoformat(activity["date"])
        day_start = datetime.combine(day, time.min, tzinfo=at.tzinfo)
        elapsed = (at - day_start) / timedelta(days=1)
        elapsed = min(1.0, max(0.0, elapsed))

        past = []
        for exercise in activity.get("exercises") or []:
            start = exercise.get("start_time")
            if not start:
                continue
            try:
                started = parse_timestamp(start)
            except ValueError:
                continue
            if started < at:
                past.append((started, exercise))
        last_exercise = None
        if past:
            started, exercise = max(past, key=lambda p: p[0])
            last_exercise = {
                "type": exercise.get("type"),
                "minutes_ago": round((at - started).total_seconds() / 60),
            }

        steps = activity.get("steps") or 0
        calories = activity.get("calories") or 0
        return {
            "steps_at_time": round(steps * elapsed),
            "steps_today": steps,
            "calories_at_time": round(calories * elapsed),
            "calories_total": calories,
            "active_minutes_today": activity.get("active_minutes") or 0,
            "distance_today": activity.get("distance") or 0,
            "last_exercise": last_exercise,
            "heart_rate_current": activity.get("heart_rate_avg"),
            "day_progress": self.progress(activity),
        }

    def weekly_stats(self, today: Optional[date] = None) -> dict[str, Any]:
        """Last seven days, one row per day, plus totals and daily averages."""
        today = today or utcnow().date()
        by_date = {a["date"]: a for a in self.activities(
            from_=(today - timedelta(days=7)).isoformat(), to=today.isoformat())}

        daily = []
        for offset in range(6, -1, -1):
            day = today - timedelta(days=offset)
            activity = by_date.get(day.isoformat(), {})
            daily.append({
                "date": day.isoformat(),
                "day_name": day.strftime("%a"),
                "steps": activity.get("steps") or 0,
                "calories": activity.get("calories") or 0,
                "active_minutes": activity.get("active_minutes") or 0,
            })

        totals = {
            key: sum(a.get(key) or 0 for a in by_date.values())
            for key in ("steps", "calories", "active_minutes")
        }
        return {
            "daily_data": daily,
            "totals": totals,
            "averages": {key: round(value / 7) for key, value in totals.items()},
        }

    def digest_contribution(self, start: date, end: date) -> Optional[dict[str, Any]]:
        in_range = self.activities(from_=start.isoformat(), to=end.isoformat())
        if not in_range:
            return None

        total_steps = sum(a.get("steps") or 0 for a in in_range)
        avg_steps = round(total_steps / len(in_range))
        goal_days = sum(1 for a in in_range if (a.get("steps") or 0) >= self.data["goals"]["steps"])
        return {
            "title": "Activity Summary",
            "summary": (
                f"{len(in_range)} days tracked. {avg_steps:,} avg steps/day. "
                f"{goal_days} days met step goal."
            ),
            "details": {
                "days_tracked": len(in_range),
                "total_steps": total_steps,
                "avg_steps_per_day": avg_steps,
                "total_active_minutes": sum(a.get("active_minutes") or 0 for a in in_range),
                "total_calories": sum(a.get("calories") or 0 for a in in_range),
                "goal_days_reached": goal_days,
            },
        }
