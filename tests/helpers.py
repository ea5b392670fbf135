"""
Deterministic stub providers and entry helpers shared by the tests.
"""

import re
from datetime import date, timedelta
from typing import Optional

from lifelog.errors import ProviderError
from lifelog.models import Entry, utcnow
from lifelog.schemas import AnalysisResult, DailyNarrative, PatternInsights, WeeklyNarrative


# Vocabulary for the bag-of-words stub embedder
VOCAB = ["work", "meeting", "budget", "family", "dinner", "exercise", "walk", "tired", "happy", "project"]


class StubTranscriber:
    """Returns a fixed transcript; can be told to fail."""

    def __init__(self, text: str = "Walked the dog and thought about the project"):
        self.text = text
        self.fail = False
        self.calls = []

    def transcribe(self, audio_ref: str) -> str:
        self.calls.append(audio_ref)
        if self.fail:
            raise ProviderError("Transcription service unavailable")
        return self.text


class StubAnalyzer:
    """Deterministic analysis: canned result per transcript, else a default."""

    def __init__(self):
        self.results: dict[str, AnalysisResult] = {}
        self.default = AnalysisResult(
            summary="A short reflection",
            sentiment="neutral",
            sentimentScore=0.5,
            topics=["reflection"],
            actionItems=[],
            mood="calm",
        )
        self.fail = False
        self.calls = []

    def analyze(self, transcript: str, context: str) -> AnalysisResult:
        self.calls.append((transcript, context))
        if self.fail:
            raise ProviderError("Analysis service unavailable")
        return self.results.get(transcript, self.default)


class StubEmbedder:
    """Bag-of-words vector over VOCAB; explicit vectors override per text."""

    dimension = len(VOCAB)

    def __init__(self):
        self.vectors: dict[str, list[float]] = {}
        self.fail = False
        self.calls = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise ProviderError("Embedding service unavailable")
        if text in self.vectors:
            return list(self.vectors[text])
        words = re.findall(r"[a-z]+", text.lower())
        return [float(sum(1 for w in words if w.startswith(v))) for v in VOCAB]


class StubNarrator:
    def __init__(self):
        self.fail = False

    def _check(self):
        if self.fail:
            raise ProviderError("Narrative service unavailable")

    def daily_digest(self, entries: list[Entry], day: date) -> DailyNarrative:
        self._check()
        return DailyNarrative(title=f"Day of {len(entries)} notes", narrative="A steady day.")

    def weekly_digest(self, entries: list[Entry], start: date, end: date) -> WeeklyNarrative:
        self._check()
        return WeeklyNarrative(title="A busy week", narrative="Lots going on.", wins=["Shipped"])

    def pattern_insights(self, report) -> PatternInsights:
        self._check()
        return PatternInsights(insights=[f"{report.total_entries} entries reviewed"], summary="Consistent")


def hours_ago(hours: float) -> str:
    return (utcnow() - timedelta(hours=hours)).isoformat()


def make_entry(entry_id: int, timestamp: Optional[str] = None, **fields) -> Entry:
    return Entry(id=entry_id, timestamp=timestamp or utcnow().isoformat(), **fields)
