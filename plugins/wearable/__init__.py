"""
Wearable plugin: smartwatch activity as context for voice entries.

On creation an entry gets the day's activity interpolated to the moment
it was recorded; on analysis that snapshot turns into short insights;
digests get a steps and activity summary for the period.
"""

import logging
from pathlib import Path
from typing import Any, Optional

from lifelog.hooks import ON_ENTRY_CREATED, DateRange, Observer
from lifelog.models import Entry

from .data import WearableData
from .routes import build_router

logger = logging.getLogger(__name__)

NEAR_GOAL = 0.75
RECENT_EXERCISE_MINUTES = 60


class WearableObserver(Observer):
    name = "wearable"
    label = "Wearable"
    version = "1.0.0"
    description = "Smartwatch activity tracking and entry context"

    def __init__(self, data_dir: Optional[Path] = None):
        self.store = WearableData(Path(data_dir) / "wearable.json" if data_dir else None)
        self.routes = build_router(self.store)

    def init(self) -> None:
        logger.info("[Wearable] Initialized")

    def on_entry_created(self, entry: Entry) -> Any:
        activity = self.store.activity_for_date(entry.day.isoformat())
        if not activity:
            return None
        return {"context": self.store.snapshot_at(activity, entry.recorded_at)}

    def on_entry_analyzed(self, entry: Entry) -> Any:
        created = entry.plugin_data.get(self.name, {}).get(ON_ENTRY_CREATED) or {}
        snapshot = created.get("context")
        if not snapshot:
            return None

        progress = snapshot["day_progress"]
        insights = []
        if progress["steps"] >= 1:
            insights.append("Step goal reached")
        elif progress["steps"] >= NEAR_GOAL:
            insights.append("Near step goal")
        if progress["active_minutes"] >= 1:
            insights.append("Activity goal met")

        last = snapshot.get("last_exercise")
        if last and last["minutes_ago"] < RECENT_EXERCISE_MINUTES:
            insights.append(f"Recently did {last['type']}")

        if not insights:
            return None
        return {
            "activity_insights": insights,
            "summary": (
                f"Activity: {snapshot['steps_today']:,} steps, "
                f"{snapshot['active_minutes_today']} active min"
            ),
        }

    def contribute_to_digest(self, entries: list[Entry], date_range: DateRange) -> Any:
        return self.store.digest_contribution(date_range.start, date_range.end)
