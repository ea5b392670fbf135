"""
Exercise plugin: exercise tracking tied into voice entries.

Flags entries that mention exercise, pulls exercise topics and action
items out of analyzed entries, and adds a session summary to digests.
"""

import logging
import re
from pathlib import Path
from typing import Any, Optional

from lifelog.hooks import DateRange, Observer
from lifelog.models import Entry

from .data import ExerciseLog
from .routes import build_router

logger = logging.getLogger(__name__)

KEYWORDS = [
    "exercise", "workout", "stretch", "balance", "walk", "walking",
    "yoga", "physical therapy", "pt", "movement", "strength",
]
TOPIC_WORDS = ["exercise", "fitness", "health", "workout"]
ACTION_PATTERN = re.compile(r"exercise|workout|stretch|walk|\bPT\b", re.IGNORECASE)

# Word-prefix match; short abbreviations must match the whole word
_KEYWORD_PATTERNS = {
    kw: re.compile(rf"\b{re.escape(kw)}" + (r"\b" if len(kw) <= 2 else ""))
    for kw in KEYWORDS
}


class ExerciseObserver(Observer):
    name = "exercise"
    label = "Exercise"
    version = "1.0.0"
    description = "Exercise tracking with streaks and digest summaries"

    def __init__(self, data_dir: Optional[Path] = None):
        self.log = ExerciseLog(Path(data_dir) / "exercise.json" if data_dir else None)
        self.routes = build_router(self.log)

    def init(self) -> None:
        logger.info("[Exercise] Initialized")

    def on_entry_created(self, entry: Entry) -> Any:
        if not entry.transcript:
            return None
        text = entry.transcript.lower()
        mentions = [kw for kw in KEYWORDS if _KEYWORD_PATTERNS[kw].search(text)]
        if not mentions:
            return None
        return {
            "detected": True,
            "keywords": mentions,
            "suggestion": "This entry mentions exercise. Consider logging a session!",
        }

    def on_entry_analyzed(self, entry: Entry) -> Any:
        topics = [t for t in entry.topics or [] if any(w in t.lower() for w in TOPIC_WORDS)]
        actions = [a for a in entry.action_items or [] if ACTION_PATTERN.search(a)]
        if not topics and not actions:
            return None
        return {"topics": topics, "action_items": actions}

    def contribute_to_digest(self, entries: list[Entry], date_range: DateRange) -> Any:
        return self.log.digest_contribution(date_range.start, date_range.end)
