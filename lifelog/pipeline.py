"""
Enrichment pipeline: Captured → Transcribed → Analyzed → Embedded.

run() is the automatic pass scheduled once per ingestion. It only
advances through stages whose provider is configured, never retries,
and swallows stage failures after logging them; the entry simply stays
at its last good state.

transcribe() / analyze() / embed() are the manual overrides. They
re-execute the requested stage regardless of current state, then the
full configured chain below it, overwriting earlier results. A failure
in the requested stage propagates to the caller; downstream failures
are reported in the returned StageReport.

Every run on an entry holds that entry's lock from the store, so an
automatic run and a manual override never interleave on the same entry.

Usage:
    pipeline = EnrichmentPipeline(store, providers, dispatcher)
    background_tasks.add_task(pipeline.run, entry.id)
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import InvalidInputError, ProviderError
from .hooks import ON_ENTRY_ANALYZED, HookDispatcher
from .models import Entry, utcnow_iso
from .providers import Providers
from .store import EntryStore

logger = logging.getLogger(__name__)

TRANSCRIBE = "transcribe"
ANALYZE = "analyze"
EMBED = "embed"


@dataclass
class StageReport:
    """Outcome of a manual stage request."""
    entry_id: int
    transcript: Optional[str] = None
    analysis: Optional[dict[str, Any]] = None
    embedded: bool = False
    errors: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": True, "entry_id": self.entry_id}
        if self.transcript is not None:
            data["transcript"] = self.transcript
        if self.analysis is not None:
            data["analysis"] = self.analysis
        data["embedded"] = self.embedded
        if self.errors:
            data["errors"] = self.errors
        return data


@dataclass
class BatchReport:
    embedded: int = 0
    failed: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"success": True, "embedded": self.embedded, "failed": self.failed, "total": self.total}


class EnrichmentPipeline:
    """Drives entries through transcription, analysis and embedding."""

    def __init__(self, store: EntryStore, providers: Providers, dispatcher: HookDispatcher):
        self.store = store
        self.providers = providers
        self.dispatcher = dispatcher
        self._auto_runs: set[int] = set()
        self._auto_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Stage execution
    # ------------------------------------------------------------------

    def _transcribe(self, entry_id: int) -> str:
        entry = self.store.get(entry_id)
        if not entry.audio_ref:
            raise InvalidInputError("No audio file")
        transcript = self.providers.require_transcriber().transcribe(entry.audio_ref)
        if not transcript or not transcript.strip():
            raise ProviderError("Empty transcript")

        def apply(e: Entry):
            e.transcript = transcript
            e.transcribed_at = utcnow_iso()

        self.store.update(entry_id, apply)
        logger.info(f"Transcribed entry {entry_id}: \"{transcript[:50]}...\"")
        return transcript

    def _analyze(self, entry_id: int) -> dict[str, Any]:
        entry = self.store.get(entry_id)
        if not entry.transcript:
            raise InvalidInputError("No transcript to analyze")
        result = self.providers.require_analyzer().analyze(entry.transcript, entry.context)

        updated = self.store.update(entry_id, lambda e: e.apply_analysis(result))
        logger.info(f"Analyzed entry {entry_id}: {updated.sentiment.value}, \"{updated.summary[:40]}...\"")

        results = self.dispatcher.dispatch(ON_ENTRY_ANALYZED, updated)
        if results:
            self.store.update(entry_id, lambda e: e.attach_hook_results(ON_ENTRY_ANALYZED, results))

        return result.model_dump(by_alias=True, mode="json")

    def _embed(self, entry_id: int) -> list[float]:
        entry = self.store.get(entry_id)
        if not entry.transcript:
            raise InvalidInputError("No transcript to embed")
        vector = self.providers.require_embedder().embed(entry.embedding_text)
        if not vector:
            raise ProviderError("Empty embedding")
        vector = [float(v) for v in vector]

        def apply(e: Entry):
            e.embedding = vector
            e.embedded_at = utcnow_iso()

        self.store.update(entry_id, apply)
        logger.info(f"Embedded entry {entry_id} ({len(vector)} dims)")
        return vector

    def _execute(self, stage: str, entry_id: int, report: Optional[StageReport] = None):
        if stage == TRANSCRIBE:
            transcript = self._transcribe(entry_id)
            if report:
                report.transcript = transcript
        elif stage == ANALYZE:
            analysis = self._analyze(entry_id)
            if report:
                report.analysis = analysis
        elif stage == EMBED:
            self._embed(entry_id)
            if report:
                report.embedded = True
        else:
            raise ValueError(f"Unknown stage: {stage}")

    def _configured(self, stage: str) -> bool:
        if stage == TRANSCRIBE:
            return self.providers.transcriber is not None
        if stage == ANALYZE:
            return self.providers.analyzer is not None
        return self.providers.embedder is not None

    def _mark_processed(self, entry_id: int):
        self.store.update(entry_id, {"processed": True})

    # ------------------------------------------------------------------
    # Automatic run
    # ------------------------------------------------------------------

    def automatic_chain(self, entry: Entry) -> list[str]:
        """Stages the automatic run would execute for this entry, in order.

        Transcription only starts for entries carrying audio. Stages whose
        output is already stamped are skipped.
        """
        if entry.transcript is None:
            if not entry.audio_ref or not self._configured(TRANSCRIBE):
                return []
            stages = [TRANSCRIBE]
        else:
            stages = []
        if self._configured(ANALYZE) and entry.analyzed_at is None:
            stages.append(ANALYZE)
        if self._configured(EMBED) and entry.embedded_at is None:
            stages.append(EMBED)
        return stages

    def run(self, entry_id: int) -> None:
        """Automatic enrichment pass. Never raises."""
        with self._auto_guard:
            if entry_id in self._auto_runs:
                logger.warning(f"Automatic run already in flight for entry {entry_id}, skipping")
                return
            self._auto_runs.add(entry_id)

        try:
            with self.store.entry_lock(entry_id):
                self._run_locked(entry_id)
        except Exception as e:
            logger.error(f"❌ Pipeline failed for entry {entry_id}: {e}", exc_info=True)
        finally:
            with self._auto_guard:
                self._auto_runs.discard(entry_id)

    def _run_locked(self, entry_id: int):
        if not self.store.exists(entry_id):
            logger.warning(f"Entry {entry_id} deleted before enrichment started")
            return
        entry = self.store.get(entry_id)
        if entry.processed:
            logger.debug(f"Entry {entry_id} already processed")
            return

        stages = self.automatic_chain(entry)
        if not stages:
            logger.info(f"Entry {entry_id} stays {entry.stage.value}: no stage to run")
            return

        logger.info(f"🎙️  Enriching entry {entry_id}: {' → '.join(stages)}")
        for i, stage in enumerate(stages):
            final = i == len(stages) - 1
            try:
                self._execute(stage, entry_id)
            except Exception as e:
                logger.error(f"{stage.capitalize()} failed for {entry_id}: {e}")
                if final:
                    self._mark_processed(entry_id)
                return

        self._mark_processed(entry_id)
        logger.info(f"✅ Entry {entry_id} enriched")

    # ------------------------------------------------------------------
    # Manual overrides
    # ------------------------------------------------------------------

    def _downstream(self, entry_id: int, stages: list[str], report: StageReport):
        for stage in stages:
            if not self._configured(stage):
                continue
            try:
                self._execute(stage, entry_id, report)
            except Exception as e:
                logger.error(f"{stage.capitalize()} failed for {entry_id}: {e}")
                report.errors[stage] = str(e)
                return

    def transcribe(self, entry_id: int) -> StageReport:
        """Re-transcribe, then re-analyze and re-embed."""
        entry = self.store.get(entry_id)
        if not entry.audio_ref:
            raise InvalidInputError("No audio file")
        self.providers.require_transcriber()

        logger.info(f"Manual transcription requested for entry {entry_id}")
        report = StageReport(entry_id)
        with self.store.entry_lock(entry_id):
            self._execute(TRANSCRIBE, entry_id, report)
            self._downstream(entry_id, [ANALYZE, EMBED], report)
            self._mark_processed(entry_id)
        return report

    def analyze(self, entry_id: int) -> StageReport:
        """Re-analyze, then re-embed."""
        entry = self.store.get(entry_id)
        if not entry.transcript:
            raise InvalidInputError("No transcript to analyze")
        self.providers.require_analyzer()

        logger.info(f"Manual analysis requested for entry {entry_id}")
        report = StageReport(entry_id)
        with self.store.entry_lock(entry_id):
            self._execute(ANALYZE, entry_id, report)
            self._downstream(entry_id, [EMBED], report)
            self._mark_processed(entry_id)
        return report

    def embed(self, entry_id: int) -> StageReport:
        """Replace the entry's embedding with a fresh one."""
        entry = self.store.get(entry_id)
        if not entry.transcript:
            raise InvalidInputError("No transcript to embed")
        self.providers.require_embedder()

        logger.info(f"Manual embedding requested for entry {entry_id}")
        report = StageReport(entry_id)
        with self.store.entry_lock(entry_id):
            self._execute(EMBED, entry_id, report)
        return report

    def embed_all(self) -> BatchReport:
        """Embed every transcribed entry that has no embedding yet."""
        self.providers.require_embedder()
        pending = [e.id for e in self.store.list_all() if e.transcript and e.embedding is None]
        logger.info(f"Embedding {len(pending)} entries...")

        report = BatchReport(total=len(pending))
        for entry_id in pending:
            try:
                with self.store.entry_lock(entry_id):
                    self._embed(entry_id)
                report.embedded += 1
            except Exception as e:
                logger.error(f"Embed failed for {entry_id}: {e}")
                report.failed += 1

        logger.info(f"Embedding complete: {report.embedded} success, {report.failed} failed")
        return report
