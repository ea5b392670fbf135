"""
Pattern detection over a trailing window of entries.

One pass over the window collects topic, mood, sentiment, hour and
weekday counts. Ties in every ranking keep first-seen order. An empty
window raises EmptyWindowError so "nothing recorded" never looks like
"recorded, but flat".
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Optional

from .errors import EmptyWindowError
from .models import Entry, utcnow

logger = logging.getLogger(__name__)

DEFAULT_DAYS = 30
TOP_TOPICS = 10
TOP_HOURS = 5

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


@dataclass
class TopicCount:
    topic: str
    count: int


@dataclass
class MoodCount:
    mood: str
    count: int


@dataclass
class SentimentPoint:
    date: str
    avg_sentiment: float
    entries: int


@dataclass
class TimePattern:
    hour: int
    time_label: str
    count: int
    common_mood: Optional[str]


@dataclass
class DayCount:
    day: str
    count: int


@dataclass
class PatternReport:
    days: int
    from_date: str
    to_date: str
    total_entries: int
    avg_sentiment: Optional[float]
    top_topics: list[TopicCount] = field(default_factory=list)
    mood_distribution: list[MoodCount] = field(default_factory=list)
    sentiment_trend: list[SentimentPoint] = field(default_factory=list)
    time_patterns: list[TimePattern] = field(default_factory=list)
    day_of_week_patterns: list[DayCount] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["period"] = {
            "days": data.pop("days"),
            "from": data.pop("from_date"),
            "to": data.pop("to_date"),
        }
        return data


def _ranked(counts: dict, limit: Optional[int] = None) -> list[tuple[Any, int]]:
    """Sort by count descending; equal counts keep insertion order."""
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return ranked[:limit] if limit is not None else ranked


def detect_patterns(entries: list[Entry], days: int = DEFAULT_DAYS,
                    now: Optional[datetime] = None) -> PatternReport:
    """Aggregate the entries recorded in the last `days` days.

    Raises:
        EmptyWindowError: no entry falls inside the window.
    """
    now = now or utcnow()
    cutoff = now - timedelta(days=days)
    window = [e for e in entries if e.recorded_at >= cutoff]
    if not window:
        raise EmptyWindowError("No entries in the specified time range")

    topic_counts: dict[str, int] = {}
    mood_counts: dict[str, int] = {}
    scores_by_day: dict[date, list[float]] = {}
    hour_counts: dict[int, int] = {}
    moods_by_hour: dict[int, dict[str, int]] = {}
    weekday_counts: dict[int, int] = {}
    all_scores: list[float] = []

    for entry in window:
        recorded = entry.recorded_at

        for topic in entry.topics or []:
            topic_counts[topic] = topic_counts.get(topic, 0) + 1

        if entry.mood:
            mood_counts[entry.mood] = mood_counts.get(entry.mood, 0) + 1

        if entry.sentiment_score is not None:
            scores_by_day.setdefault(recorded.date(), []).append(entry.sentiment_score)
            all_scores.append(entry.sentiment_score)

        hour_counts[recorded.hour] = hour_counts.get(recorded.hour, 0) + 1
        if entry.mood:
            hour_moods = moods_by_hour.setdefault(recorded.hour, {})
            hour_moods[entry.mood] = hour_moods.get(entry.mood, 0) + 1

        weekday = recorded.weekday()
        weekday_counts[weekday] = weekday_counts.get(weekday, 0) + 1

    time_patterns = []
    for hour, count in _ranked(hour_counts, TOP_HOURS):
        top_mood = _ranked(moods_by_hour.get(hour, {}), 1)
        time_patterns.append(TimePattern(
            hour=hour,
            time_label=f"{hour}:00",
            count=count,
            common_mood=top_mood[0][0] if top_mood else None,
        ))

    avg = round(sum(all_scores) / len(all_scores), 2) if all_scores else None

    report = PatternReport(
        days=days,
        from_date=cutoff.date().isoformat(),
        to_date=now.date().isoformat(),
        total_entries=len(window),
        avg_sentiment=avg,
        top_topics=[TopicCount(t, c) for t, c in _ranked(topic_counts, TOP_TOPICS)],
        mood_distribution=[MoodCount(m, c) for m, c in _ranked(mood_counts)],
        sentiment_trend=[
            SentimentPoint(day.isoformat(), sum(scores) / len(scores), len(scores))
            for day, scores in sorted(scores_by_day.items())
        ],
        time_patterns=time_patterns,
        day_of_week_patterns=[DayCount(DAY_NAMES[d], c) for d, c in _ranked(weekday_counts)],
    )
    logger.info(f"Pattern report: {report.total_entries} entries over {days} days")
    return report
