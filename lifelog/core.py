"""
LifeLog facade: wires the store, providers, observers, pipeline, search
and digests together.

Ingestion creates the entry and returns immediately; the caller schedules
the automatic enrichment run in the background.

Usage:
    from lifelog import LifeLog

    lifelog = LifeLog(config)
    entry = lifelog.ingest(audio_ref="data/audio/abc.m4a", context="work")
    background_tasks.add_task(lifelog.pipeline.run, entry.id)
"""

import logging
import time
from datetime import date
from typing import Any, Iterable, Optional

from .config import LifeLogConfig, load_config
from .digests import DigestBuilder
from .errors import EmptyWindowError, InvalidInputError
from .hooks import ON_ENTRY_CREATED, HookDispatcher, Observer
from .logbuffer import LogBuffer
from .models import Entry, parse_timestamp, utcnow
from .patterns import detect_patterns
from .pipeline import EnrichmentPipeline
from .providers import Providers, build_providers
from .search import SemanticSearch
from .store import EntryStore

logger = logging.getLogger(__name__)

# Fields a client may edit directly on an entry
EDITABLE_FIELDS = ("transcript", "context", "device", "timestamp")


class LifeLog:
    """The enrichment engine and its analytics, ready to serve."""

    def __init__(
        self,
        config: Optional[LifeLogConfig] = None,
        providers: Optional[Providers] = None,
        store: Optional[EntryStore] = None,
        observers: Iterable[Observer] = (),
        log_buffer: Optional[LogBuffer] = None,
    ):
        self.config = config or load_config()
        self.store = store if store is not None else EntryStore(self.config.entries_path)
        self.providers = providers if providers is not None else build_providers(self.config)
        self.dispatcher = HookDispatcher()
        for observer in observers:
            self.dispatcher.register(observer)

        self.pipeline = EnrichmentPipeline(self.store, self.providers, self.dispatcher)
        self.search = SemanticSearch(self.store, self.providers)
        self.digests = DigestBuilder(self.store, self.providers, self.dispatcher)
        self.log_buffer = log_buffer or LogBuffer(self.config.log_buffer_size)
        self._started = time.monotonic()

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def ingest(
        self,
        timestamp: Optional[str] = None,
        device: Optional[str] = None,
        context: Optional[str] = None,
        audio_ref: Optional[str] = None,
        transcript: Optional[str] = None,
    ) -> Entry:
        """Create an entry and run the on_entry_created observers.

        Raises:
            InvalidInputError: no audio and no transcript, or an
                unparseable timestamp.
        """
        transcript = transcript.strip() if transcript and transcript.strip() else None
        if not audio_ref and not transcript:
            raise InvalidInputError("Either audio or a transcript is required")
        if timestamp:
            try:
                parse_timestamp(timestamp)
            except ValueError as e:
                raise InvalidInputError(f"Invalid timestamp: {timestamp}") from e

        entry = Entry(
            id=self.store.next_id(),
            timestamp=timestamp or utcnow().isoformat(),
            device=device or "web",
            context=context or "auto",
            audio_ref=audio_ref,
            transcript=transcript,
        )
        entry = self.store.create(entry)
        logger.info(f"New entry saved: id={entry.id}, audio={'yes' if audio_ref else 'no'}")

        results = self.dispatcher.dispatch(ON_ENTRY_CREATED, entry)
        if results:
            entry = self.store.update(entry.id, lambda e: e.attach_hook_results(ON_ENTRY_CREATED, results))
        return entry

    def get(self, entry_id: int) -> Entry:
        return self.store.get(entry_id)

    def update_entry(self, entry_id: int, changes: dict[str, Any]) -> Entry:
        """Edit client-owned fields. Derived fields are pipeline-only."""
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidInputError(f"Fields not editable: {', '.join(sorted(unknown))}")
        for name, value in changes.items():
            if not isinstance(value, str):
                raise InvalidInputError(f"{name} must be a string")
        if "transcript" in changes:
            if not changes["transcript"].strip():
                raise InvalidInputError("Transcript cannot be empty")
            changes = {**changes, "transcript": changes["transcript"].strip()}
        if "timestamp" in changes:
            try:
                parse_timestamp(changes["timestamp"])
            except ValueError as e:
                raise InvalidInputError(f"Invalid timestamp: {changes['timestamp']!r}") from e
        return self.store.update(entry_id, changes)

    def delete(self, entry_id: int) -> Entry:
        entry = self.store.delete(entry_id)
        logger.info(f"Deleted entry {entry_id}")
        return entry

    def entries_for_date(self, day: date) -> list[Entry]:
        return self.store.list_for_date(day)

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def patterns(self, days: Optional[int] = None, ai: bool = False) -> dict[str, Any]:
        """Pattern report for the trailing window, plus optional AI insights."""
        days = days or self.config.pattern_days
        logger.info(f"Pattern detection requested: {days} days, AI insights: {ai}")
        try:
            report = detect_patterns(self.store.list_all(), days)
        except EmptyWindowError as e:
            return {"patterns": None, "error": str(e)}

        response: dict[str, Any] = {"patterns": report.to_dict()}
        if ai:
            try:
                insights = self.providers.require_narrator().pattern_insights(report)
                response["ai"] = insights.model_dump(by_alias=True)
            except Exception as e:
                logger.error(f"AI pattern insights failed: {e}")
                response["ai"] = None
                response["ai_error"] = str(e)
        return response

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def health(self) -> dict[str, Any]:
        return {
            "status": "ok",
            "service": "lifelog",
            "version": self.config.version,
            "uptime": round(time.monotonic() - self._started, 1),
            "entries": self.store.count(),
            "providers": self.providers.describe(),
        }

    def status(self) -> dict[str, Any]:
        entries = self.store.list_all()
        today = utcnow().date()
        return {
            "total": len(entries),
            "today": sum(1 for e in entries if e.day == today),
            "transcribed": sum(1 for e in entries if e.transcript),
            "analyzed": sum(1 for e in entries if e.summary),
            "embedded": sum(1 for e in entries if e.embedding is not None),
            "pending_transcription": sum(1 for e in entries if e.audio_ref and not e.transcript),
            "pending_analysis": sum(1 for e in entries if e.transcript and not e.summary),
            "last_entry": entries[-1].timestamp if entries else None,
            "providers": self.providers.describe(),
        }
