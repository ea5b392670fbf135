"""
Data models for the LifeLog engine.
No external dependencies, pure Python dataclasses.
"""

import copy
from dataclasses import dataclass, field, fields
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional


class Sentiment(str, Enum):
    """Overall sentiment assigned by the analysis provider."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    MIXED = "mixed"


class Stage(str, Enum):
    """Last completed enrichment stage of an entry."""
    CAPTURED = "captured"         # Ingested, nothing derived yet
    TRANSCRIBED = "transcribed"   # Transcript available
    ANALYZED = "analyzed"         # Summary, sentiment, topics, mood set
    EMBEDDED = "embedded"         # Embedding vector set


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    return utcnow().isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp. Naive values are taken as UTC.

    The wall-clock of the returned datetime is the one recorded by the
    capturing device, so calendar day and hour are read from it directly.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string."""
    return date.fromisoformat(value)


@dataclass
class Entry:
    """One captured voice note and everything derived from it."""
    id: int
    timestamp: str = field(default_factory=utcnow_iso)
    device: str = "web"
    context: str = "auto"
    audio_ref: Optional[str] = None

    # Transcription
    transcript: Optional[str] = None

    # Analysis (set together from one result)
    summary: Optional[str] = None
    sentiment: Optional[Sentiment] = None
    sentiment_score: Optional[float] = None
    topics: Optional[list[str]] = None
    action_items: Optional[list[str]] = None
    mood: Optional[str] = None

    # Embedding
    embedding: Optional[list[float]] = None

    processed: bool = False

    # Audit trail
    created_at: str = field(default_factory=utcnow_iso)
    updated_at: Optional[str] = None
    transcribed_at: Optional[str] = None
    analyzed_at: Optional[str] = None
    embedded_at: Optional[str] = None

    # Observer context: {observer_name: {hook_name: result}}
    plugin_data: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def recorded_at(self) -> datetime:
        return parse_timestamp(self.timestamp)

    @property
    def day(self) -> date:
        """Calendar day the note was recorded on."""
        return self.recorded_at.date()

    @property
    def stage(self) -> Stage:
        if self.embedding is not None:
            return Stage.EMBEDDED
        if self.summary is not None:
            return Stage.ANALYZED
        if self.transcript is not None:
            return Stage.TRANSCRIBED
        return Stage.CAPTURED

    @property
    def embedding_text(self) -> str:
        """Text sent to the embedding provider: transcript plus summary."""
        if self.summary:
            return f"{self.transcript} {self.summary}"
        return self.transcript or ""

    def apply_analysis(self, result) -> None:
        """Set every analysis field from one result. Never partial."""
        topics = list(dict.fromkeys(result.topics))
        self.summary = result.summary
        self.sentiment = Sentiment(result.sentiment)
        self.sentiment_score = result.sentiment_score
        self.topics = topics
        self.action_items = list(result.action_items)
        self.mood = result.mood
        self.analyzed_at = utcnow_iso()

    def attach_hook_results(self, hook: str, results) -> None:
        for r in results:
            self.plugin_data.setdefault(r.observer, {})[hook] = r.result

    def copy(self) -> "Entry":
        return copy.deepcopy(self)

    def to_dict(self, include_embedding: bool = True) -> dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            data[f.name] = copy.deepcopy(value)
        if not include_embedding:
            data.pop("embedding")
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entry":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if values.get("sentiment") is not None:
            values["sentiment"] = Sentiment(values["sentiment"])
        return cls(**values)
