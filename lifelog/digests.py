"""
Daily and weekly digests.

A digest is recomputed on every request from a calendar-aligned slice
of the store: one day, or the Sunday–Saturday week containing a date.
Observers may contribute auxiliary sections. When a narrative is
requested, the narrative provider's answer is attached; if it fails the
basic digest is still returned with the failure reason.
"""

import logging
from datetime import date, timedelta
from typing import Any

from .errors import ConfigurationError
from .hooks import CONTRIBUTE_TO_DIGEST, DateRange, HookDispatcher
from .models import Entry
from .providers import Providers
from .store import EntryStore

logger = logging.getLogger(__name__)


def week_bounds(day: date) -> tuple[date, date]:
    """Sunday and Saturday of the week containing `day`."""
    start = day - timedelta(days=(day.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


def _count(values) -> dict[str, int]:
    counts: dict[str, int] = {}
    for v in values:
        counts[v] = counts.get(v, 0) + 1
    return counts


def _unique_topics(entries: list[Entry]) -> list[str]:
    return list(dict.fromkeys(t for e in entries for t in (e.topics or [])))


def _action_items(entries: list[Entry]) -> list[str]:
    return [a for e in entries for a in (e.action_items or [])]


def _sentiments(entries: list[Entry]) -> dict[str, int]:
    return _count(e.sentiment.value for e in entries if e.sentiment)


class DigestBuilder:
    """Builds daily and weekly digests from the store."""

    def __init__(self, store: EntryStore, providers: Providers, dispatcher: HookDispatcher):
        self.store = store
        self.providers = providers
        self.dispatcher = dispatcher

    def _contributions(self, entries: list[Entry], start: date, end: date) -> list[dict[str, Any]]:
        results = self.dispatcher.dispatch(CONTRIBUTE_TO_DIGEST, entries, DateRange(start, end))
        return [r.to_dict() for r in results]

    def _attach_narrative(self, digest: dict[str, Any], entries: list[Entry], label: str, generate):
        """Run the narrative call; on any failure keep the basic digest."""
        if not entries:
            return
        try:
            self.providers.require_narrator()
            logger.info(f"Generating AI digest for {label}")
            narrative = generate(self.providers.narrator)
            digest["narrative"] = narrative.model_dump(by_alias=True)
            logger.info(f"AI digest generated for {label}: \"{narrative.title}\"")
        except ConfigurationError as e:
            digest["narrative_error"] = str(e)
        except Exception as e:
            logger.error(f"AI digest failed for {label}: {e}")
            digest["narrative_error"] = str(e)

    def daily(self, day: date, ai: bool = False) -> dict[str, Any]:
        entries = self.store.list_for_date(day)

        digest: dict[str, Any] = {
            "date": day.isoformat(),
            "total_entries": len(entries),
            "contexts": _count(e.context for e in entries),
            "sentiments": _sentiments(entries),
            "topics": _unique_topics(entries),
            "action_items": _action_items(entries),
            "entries": [e.to_dict(include_embedding=False) for e in entries],
            "plugins": self._contributions(entries, day, day),
        }

        if ai:
            self._attach_narrative(
                digest, entries, day.isoformat(),
                lambda narrator: narrator.daily_digest(entries, day),
            )
        return digest

    def weekly(self, day: date, ai: bool = False) -> dict[str, Any]:
        start, end = week_bounds(day)
        entries = self.store.list_for_dates(start, end)

        by_day: dict[str, dict[str, Any]] = {}
        for e in entries:
            bucket = by_day.setdefault(e.day.isoformat(), {"count": 0, "moods": [], "topics": []})
            bucket["count"] += 1
            if e.mood:
                bucket["moods"].append(e.mood)
            bucket["topics"].extend(e.topics or [])

        digest: dict[str, Any] = {
            "week_start": start.isoformat(),
            "week_end": end.isoformat(),
            "total_entries": len(entries),
            "days_with_entries": len(by_day),
            "by_day": dict(sorted(by_day.items())),
            "sentiments": _sentiments(entries),
            "topics": _unique_topics(entries),
            "action_items": _action_items(entries),
            "plugins": self._contributions(entries, start, end),
        }

        if ai:
            self._attach_narrative(
                digest, entries, f"{start.isoformat()} to {end.isoformat()}",
                lambda narrator: narrator.weekly_digest(entries, start, end),
            )
        return digest
