"""
Prompts for transcription, per-entry analysis, digest narratives and
pattern insights.

Every prompt that expects structured output asks for a single JSON
object; the response is validated against lifelog.schemas.
"""

from datetime import date

from .models import Entry


# =============================================================================
# TRANSCRIPTION PROMPT (Gemini engine only; Whisper takes raw audio)
# =============================================================================

TRANSCRIPTION_PROMPT = """You are a professional transcription assistant. \
Transcribe the following voice note EXACTLY as spoken.

- Transcribe in the language spoken. DO NOT translate.
- If audio is unclear write [inaudible]; for silence write [silence].
- Never loop or repeat phrases the speaker did not repeat.
- Use paragraph breaks and proper punctuation.

Output the transcription directly. No preamble or commentary."""


# =============================================================================
# ANALYSIS PROMPT
# =============================================================================

ANALYSIS_PROMPT = """Analyze this voice note transcript. Context category: {context}

Transcript: "{transcript}"

Respond in JSON format only:
{{
  "summary": "1-2 sentence summary",
  "sentiment": "positive" | "negative" | "neutral" | "mixed",
  "sentimentScore": 0.0 to 1.0 (0=very negative, 1=very positive),
  "topics": ["topic1", "topic2"],
  "actionItems": ["action1"] or [],
  "mood": "one word describing emotional state"
}}"""


# =============================================================================
# DIGEST PROMPTS
# =============================================================================

DAILY_DIGEST_PROMPT = """Generate a daily digest for {date}. This is a personal voice journal.

Entries from today:
{entries}

Topics mentioned: {topics}
Sentiments: {sentiments}
Action items found: {actions}

Create a warm, insightful daily digest. Respond in JSON format only:
{{
  "title": "A brief title for the day (2-5 words)",
  "narrative": "A 2-3 paragraph reflection on the day, written in second person (you), connecting themes and noting patterns",
  "overallMood": "one word for overall mood",
  "highlights": ["key moment 1", "key moment 2"],
  "actionItems": ["consolidated action items"],
  "reflection": "A brief encouraging thought or question for tomorrow"
}}"""

WEEKLY_DIGEST_PROMPT = """Generate a weekly digest for {start} to {end}. This is a personal voice journal.

Week summary by day:
{days}

Topics across the week: {topics}
Sentiment distribution: {sentiments}
Action items collected: {actions}

Create an insightful weekly reflection. Respond in JSON format only:
{{
  "title": "A brief title for the week (2-5 words)",
  "narrative": "A 3-4 paragraph reflection on the week, written in second person (you), identifying patterns, growth, and themes across days",
  "overallMood": "one word for the week's overall mood",
  "topThemes": ["theme 1", "theme 2", "theme 3"],
  "wins": ["accomplishment or positive moment 1", "win 2"],
  "challenges": ["challenge faced 1"] or [],
  "patterns": ["behavioral or emotional pattern noticed"],
  "actionItems": ["consolidated/prioritized action items for next week"],
  "weekAhead": "An encouraging thought or intention for the coming week"
}}"""

PATTERN_INSIGHTS_PROMPT = """Analyze these patterns from a personal voice journal over {days} days ({total} entries):

Top Topics: {topics}
Mood Distribution: {moods}
Average Sentiment: {avg_sentiment} (0=negative, 1=positive)
Most Active Times: {times}
Most Active Days: {weekdays}

Provide insightful observations. Respond in JSON format only:
{{
  "insights": ["insight 1", "insight 2", "insight 3"],
  "strengths": ["positive pattern 1"],
  "areasForAttention": ["area that might need attention"],
  "suggestions": ["actionable suggestion based on patterns"],
  "summary": "A 2-3 sentence overall summary of what these patterns reveal"
}}"""


def _unique(items) -> list[str]:
    return list(dict.fromkeys(items))


def _joined(items, sep: str = ", ") -> str:
    return sep.join(items) or "none"


def get_transcription_prompt() -> str:
    return TRANSCRIPTION_PROMPT


def get_analysis_prompt(transcript: str, context: str) -> str:
    return ANALYSIS_PROMPT.format(transcript=transcript, context=context)


def get_daily_digest_prompt(entries: list[Entry], day: date) -> str:
    lines = []
    for e in entries:
        time_label = e.recorded_at.strftime("%I:%M %p").lstrip("0")
        content = e.summary or e.transcript or "(no content)"
        mood = f" [{e.mood}]" if e.mood else ""
        lines.append(f"{time_label}: {content}{mood}")

    return DAILY_DIGEST_PROMPT.format(
        date=day.isoformat(),
        entries="\n".join(lines),
        topics=_joined(_unique(t for e in entries for t in (e.topics or []))),
        sentiments=_joined([e.sentiment.value for e in entries if e.sentiment]),
        actions=_joined([a for e in entries for a in (e.action_items or [])], "; "),
    )


def get_weekly_digest_prompt(entries: list[Entry], start: date, end: date) -> str:
    by_day: dict[date, list[Entry]] = {}
    for e in entries:
        by_day.setdefault(e.day, []).append(e)

    day_lines = []
    for day, day_entries in sorted(by_day.items()):
        summaries = "; ".join(
            e.summary or (e.transcript or "")[:100] or "(audio)" for e in day_entries
        )
        moods = ", ".join(e.mood for e in day_entries if e.mood)
        mood_part = f" [Moods: {moods}]" if moods else ""
        day_lines.append(f"{day.strftime('%A, %b %d')}: {len(day_entries)} entries. {summaries}{mood_part}")

    sentiment_counts: dict[str, int] = {}
    for e in entries:
        if e.sentiment:
            sentiment_counts[e.sentiment.value] = sentiment_counts.get(e.sentiment.value, 0) + 1

    return WEEKLY_DIGEST_PROMPT.format(
        start=start.isoformat(),
        end=end.isoformat(),
        days="\n".join(day_lines),
        topics=_joined(_unique(t for e in entries for t in (e.topics or []))),
        sentiments=_joined([f"{k}: {v}" for k, v in sentiment_counts.items()]),
        actions=_joined([a for e in entries for a in (e.action_items or [])], "; "),
    )


def get_pattern_insights_prompt(report) -> str:
    return PATTERN_INSIGHTS_PROMPT.format(
        days=report.days,
        total=report.total_entries,
        topics=_joined([f"{t.topic} ({t.count}x)" for t in report.top_topics]),
        moods=_joined([f"{m.mood} ({m.count}x)" for m in report.mood_distribution]),
        avg_sentiment=report.avg_sentiment,
        times=_joined([
            f"{t.time_label} ({t.count} entries, mood: {t.common_mood or 'unknown'})"
            for t in report.time_patterns
        ]),
        weekdays=_joined([f"{d.day} ({d.count})" for d in report.day_of_week_patterns]),
    )
