"""
Provider contracts and the adapters that satisfy them.

The pipeline and analytics only depend on the four Protocols below.
A Providers slot set to None means "not configured": automatic stages
are skipped, manual requests fail with ConfigurationError.
"""

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional, Protocol

from .ai import GeminiClient
from .config import LifeLogConfig
from .embeddings import OpenAIEmbedder
from .errors import ConfigurationError
from .models import Entry
from .prompts import (
    get_analysis_prompt,
    get_daily_digest_prompt,
    get_pattern_insights_prompt,
    get_transcription_prompt,
    get_weekly_digest_prompt,
)
from .schemas import (
    AnalysisResult,
    DailyNarrative,
    PatternInsights,
    WeeklyNarrative,
    parse_response,
)
from .whisper import OpenAITranscriber

logger = logging.getLogger(__name__)


class Transcriber(Protocol):
    def transcribe(self, audio_ref: str) -> str: ...


class Analyzer(Protocol):
    def analyze(self, transcript: str, context: str) -> AnalysisResult: ...


class Embedder(Protocol):
    def embed(self, text: str) -> list[float]: ...


class Narrator(Protocol):
    def daily_digest(self, entries: list[Entry], day: date) -> DailyNarrative: ...

    def weekly_digest(self, entries: list[Entry], start: date, end: date) -> WeeklyNarrative: ...

    def pattern_insights(self, report) -> PatternInsights: ...


@dataclass
class Providers:
    """The external services available to the engine."""
    transcriber: Optional[Transcriber] = None
    analyzer: Optional[Analyzer] = None
    embedder: Optional[Embedder] = None
    narrator: Optional[Narrator] = None

    def require_transcriber(self) -> Transcriber:
        if self.transcriber is None:
            raise ConfigurationError("Transcription provider not configured")
        return self.transcriber

    def require_analyzer(self) -> Analyzer:
        if self.analyzer is None:
            raise ConfigurationError("Analysis provider not configured")
        return self.analyzer

    def require_embedder(self) -> Embedder:
        if self.embedder is None:
            raise ConfigurationError("Embedding provider not configured")
        return self.embedder

    def require_narrator(self) -> Narrator:
        if self.narrator is None:
            raise ConfigurationError("Narrative provider not configured")
        return self.narrator

    def describe(self) -> dict[str, bool]:
        return {
            "transcription": self.transcriber is not None,
            "analysis": self.analyzer is not None,
            "embedding": self.embedder is not None,
            "narrative": self.narrator is not None,
        }


# =============================================================================
# GEMINI ADAPTERS
# =============================================================================

class GeminiTranscriber:
    def __init__(self, client: GeminiClient):
        self._client = client

    def transcribe(self, audio_ref: str) -> str:
        return self._client.transcribe(Path(audio_ref), get_transcription_prompt()).strip()


class GeminiAnalyzer:
    """Summary, sentiment, topics, action items and mood for one transcript."""

    def __init__(self, client: GeminiClient):
        self._client = client

    def analyze(self, transcript: str, context: str) -> AnalysisResult:
        text = self._client.generate(get_analysis_prompt(transcript, context))
        return parse_response(text, AnalysisResult, "analysis")


class GeminiNarrator:
    """Narrative digests and pattern insights."""

    def __init__(self, client: GeminiClient):
        self._client = client

    def daily_digest(self, entries: list[Entry], day: date) -> DailyNarrative:
        text = self._client.generate(get_daily_digest_prompt(entries, day))
        return parse_response(text, DailyNarrative, "digest")

    def weekly_digest(self, entries: list[Entry], start: date, end: date) -> WeeklyNarrative:
        text = self._client.generate(get_weekly_digest_prompt(entries, start, end))
        return parse_response(text, WeeklyNarrative, "weekly digest")

    def pattern_insights(self, report) -> PatternInsights:
        text = self._client.generate(get_pattern_insights_prompt(report))
        return parse_response(text, PatternInsights, "pattern insights")


# =============================================================================
# FACTORY
# =============================================================================

def build_providers(config: LifeLogConfig) -> Providers:
    """Wire real adapters for whatever credentials the config carries."""
    providers = Providers()

    gemini = None
    if config.gemini_api_keys:
        gemini = GeminiClient(config.gemini_api_keys, config.gemini_model)
        providers.analyzer = GeminiAnalyzer(gemini)
        providers.narrator = GeminiNarrator(gemini)

    if config.transcription_configured:
        if config.transcription_engine == "gemini":
            providers.transcriber = GeminiTranscriber(gemini)
        else:
            providers.transcriber = OpenAITranscriber(config.openai_api_key, config.transcription_engine)

    if config.embedding_configured:
        providers.embedder = OpenAIEmbedder(config.openai_api_key, config.embedding_model)

    logger.info(f"Providers: {providers.describe()}")
    return providers
