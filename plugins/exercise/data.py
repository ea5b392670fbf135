"""
Exercise session log.

Sessions and streak counters persisted as one JSON document. A streak
counts consecutive calendar days with at least one session.
"""

import json
import logging
import os
import threading
import time
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Optional

from lifelog.models import parse_timestamp, utcnow, utcnow_iso

logger = logging.getLogger(__name__)


def _empty() -> dict[str, Any]:
    return {
        "sessions": [],
        "streaks": {"current": 0, "longest": 0, "last_date": None},
    }


class ExerciseLog:
    """Exercise sessions plus streak tracking. path=None keeps it in memory."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._last_id = 0
        self.data = _empty()
        self._load()

    def _load(self):
        if not self.path or not self.path.exists():
            return
        try:
            self.data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as e:
            logger.warning(f"[Exercise] Starting with empty data: {e}")
            self.data = _empty()
        if self.data["sessions"]:
            self._last_id = max(s["id"] for s in self.data["sessions"])

    def _save(self):
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self.data, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    def _next_id(self) -> int:
        candidate = int(time.time() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return candidate

    def log_session(
        self,
        category: str,
        exercises: Optional[list[str]] = None,
        duration: int = 0,
        notes: str = "",
        timestamp: Optional[str] = None,
    ) -> dict[str, Any]:
        """Record a session. duration is in seconds.

        Raises:
            ValueError: timestamp is not ISO-8601. Nothing is recorded.
        """
        timestamp = timestamp or utcnow_iso()
        day = parse_timestamp(timestamp).date()
        with self._lock:
            session = {
                "id": self._next_id(),
                "timestamp": timestamp,
                "category": category,
                "exercises": list(exercises or []),
                "duration": duration or 0,
                "notes": notes or "",
            }
            self.data["sessions"].append(session)
            self._update_streaks(day)
            self._save()
        logger.info(f"[Exercise] Logged {category} session ({session['duration']}s)")
        return dict(session)

    def _update_streaks(self, day: date):
        streaks = self.data["streaks"]
        last = streaks["last_date"]

        if last is None:
            streaks["current"] = 1
            streaks["longest"] = max(streaks["longest"], 1)
        else:
            gap = (day - date.fromisoformat(last)).days
            if gap == 1:
                streaks["current"] += 1
                streaks["longest"] = max(streaks["longest"], streaks["current"])
            elif gap > 1:
                streaks["current"] = 1
            elif gap < 0:
                # Backdated session; streak is anchored on the latest day
                return

        streaks["last_date"] = day.isoformat()

    @property
    def streaks(self) -> dict[str, Any]:
        return dict(self.data["streaks"])

    def sessions(
        self,
        from_: Optional[str] = None,
        to: Optional[str] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Sessions filtered by time range and category, most recent first."""
        result = list(self.data["sessions"])
        if from_:
            start = parse_timestamp(from_)
            result = [s for s in result if parse_timestamp(s["timestamp"]) >= start]
        if to:
            end = parse_timestamp(to)
            result = [s for s in result if parse_timestamp(s["timestamp"]) <= end]
        if category:
            result = [s for s in result if s["category"] == category]
        result.sort(key=lambda s: parse_timestamp(s["timestamp"]), reverse=True)
        if limit:
            result = result[:limit]
        return result

    def _between(self, start: date, end: date) -> list[dict[str, Any]]:
        return [
            s for s in self.data["sessions"]
            if start <= parse_timestamp(s["timestamp"]).date() <= end
        ]

    def stats(self, days: int = 7) -> dict[str, Any]:
        cutoff = utcnow() - timedelta(days=days)
        recent = [s for s in self.data["sessions"] if parse_timestamp(s["timestamp"]) >= cutoff]

        by_category: dict[str, int] = {}
        for s in recent:
            by_category[s["category"]] = by_category.get(s["category"], 0) + 1

        return {
            "period": {"days": days, "sessions_count": len(recent)},
            "by_category": by_category,
            "total_duration": sum(s.get("duration") or 0 for s in recent),
            "days_active": len({parse_timestamp(s["timestamp"]).date() for s in recent}),
            "streaks": self.streaks,
        }

    def digest_contribution(self, start: date, end: date) -> Optional[dict[str, Any]]:
        """Summary section for a digest, or None when nothing was logged."""
        sessions = self._between(start, end)
        if not sessions:
            return None

        minutes = round(sum(s.get("duration") or 0 for s in sessions) / 60)
        plural = "s" if len(sessions) != 1 else ""
        return {
            "title": "Exercise Activity",
            "summary": f"{len(sessions)} exercise session{plural} ({minutes} minutes)",
            "details": {
                "sessions": len(sessions),
                "total_minutes": minutes,
                "categories": list(dict.fromkeys(s["category"] for s in sessions)),
                "streak": self.data["streaks"]["current"],
            },
        }
