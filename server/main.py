"""
FastAPI application exposing the LifeLog engine.

Thin wrapper: every route delegates to the LifeLog facade. Ingestion
returns as soon as the entry is stored; enrichment runs as a background
task after the response is sent.
"""

import logging
import shutil
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from fastapi import BackgroundTasks, Body, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.responses import JSONResponse

from lifelog import __version__
from lifelog.config import load_config
from lifelog.core import LifeLog
from lifelog.errors import (
    ConfigurationError,
    EmptyWindowError,
    EntryNotFoundError,
    InvalidInputError,
    LifeLogError,
    ProviderError,
)
from lifelog.logbuffer import LogBuffer
from lifelog.models import Entry, parse_date
from lifelog.search import keyword_search
from plugins import load_observers

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {".mp3", ".m4a", ".wav", ".ogg", ".flac", ".webm", ".aac", ".3gp", ".opus"}

# Error taxonomy → HTTP status
STATUS_CODES = [
    (EntryNotFoundError, 404),
    (InvalidInputError, 400),
    (EmptyWindowError, 400),
    (ConfigurationError, 503),
    (ProviderError, 502),
]


def _status_for(exc: LifeLogError) -> int:
    for error_type, status in STATUS_CODES:
        if isinstance(exc, error_type):
            return status
    return 500


def _day(value: str):
    try:
        return parse_date(value)
    except ValueError as e:
        raise InvalidInputError(f"Invalid date: {value}") from e


def _public(entry: Entry) -> dict[str, Any]:
    return entry.to_dict(include_embedding=False)


def build_lifelog() -> LifeLog:
    """LifeLog wired from the environment, with the configured plugins."""
    config = load_config()
    config.validate()
    config.ensure_directories()
    observers = load_observers(config.plugins, config.data_dir)
    return LifeLog(config, observers=observers, log_buffer=LogBuffer(config.log_buffer_size))


def create_app(lifelog: Optional[LifeLog] = None) -> FastAPI:
    lifelog = lifelog or build_lifelog()
    config = lifelog.config

    root = logging.getLogger()
    if lifelog.log_buffer not in root.handlers:
        root.addHandler(lifelog.log_buffer)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("🚀 LifeLog starting up...")
        logger.info(f"📊 {lifelog.store.count()} entries loaded")
        logger.info(f"🔌 Providers: {lifelog.providers.describe()}")
        logger.info("🎙️  LifeLog ready to capture voice notes!")
        yield
        logger.info("👋 LifeLog shutting down...")

    app = FastAPI(
        title="LifeLog",
        description="Voice-note enrichment, semantic search and digests",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.lifelog = lifelog

    @app.exception_handler(LifeLogError)
    async def lifelog_error_handler(request: Request, exc: LifeLogError):
        status = _status_for(exc)
        if status >= 500:
            logger.error(f"❌ {request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=status, content={"success": False, "error": str(exc)})

    # ========================================================================
    # INGESTION & ENRICHMENT
    # ========================================================================

    @app.post("/api/lifelog/ingest")
    def ingest(
        background_tasks: BackgroundTasks,
        audio: Optional[UploadFile] = File(None),
        timestamp: Optional[str] = Form(None),
        device: Optional[str] = Form(None),
        context: Optional[str] = Form(None),
        transcript: Optional[str] = Form(None),
    ):
        """Store a voice note and schedule its enrichment."""
        logger.info(f"📤 Ingest request: device={device}, context={context}, has_audio={audio is not None}")

        audio_path = None
        if audio is not None:
            suffix = Path(audio.filename or "").suffix.lower()
            if suffix not in SUPPORTED_FORMATS:
                raise InvalidInputError(
                    f"Unsupported format. Supported: {', '.join(sorted(SUPPORTED_FORMATS))}"
                )
            config.audio_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            audio_path = config.audio_dir / f"{stamp}{suffix}"
            with open(audio_path, "wb") as f:
                shutil.copyfileobj(audio.file, f)
            logger.info(f"💾 Audio saved: {audio_path} ({audio_path.stat().st_size / 1024:.1f} KB)")

        try:
            entry = lifelog.ingest(
                timestamp=timestamp,
                device=device,
                context=context,
                audio_ref=str(audio_path) if audio_path else None,
                transcript=transcript,
            )
        except InvalidInputError:
            if audio_path:
                audio_path.unlink(missing_ok=True)
            raise

        background_tasks.add_task(lifelog.pipeline.run, entry.id)
        return {"success": True, "entry_id": entry.id}

    @app.post("/api/lifelog/transcribe/{entry_id}")
    def transcribe(entry_id: int):
        return lifelog.pipeline.transcribe(entry_id).to_dict()

    @app.post("/api/lifelog/analyze/{entry_id}")
    def analyze(entry_id: int):
        return lifelog.pipeline.analyze(entry_id).to_dict()

    @app.post("/api/lifelog/embed/{entry_id}")
    def embed(entry_id: int):
        return lifelog.pipeline.embed(entry_id).to_dict()

    @app.post("/api/lifelog/embed-all")
    def embed_all():
        return lifelog.pipeline.embed_all().to_dict()

    # ========================================================================
    # ENTRIES
    # ========================================================================

    @app.get("/api/lifelog/entries")
    def list_entries(limit: int = 100):
        return [_public(e) for e in lifelog.store.recent(limit)]

    @app.get("/api/lifelog/entries/{day}")
    def entries_for_date(day: str):
        return [_public(e) for e in lifelog.entries_for_date(_day(day))]

    @app.patch("/api/lifelog/entries/{entry_id}")
    def update_entry(entry_id: int, changes: dict[str, Any] = Body(...)):
        entry = lifelog.update_entry(entry_id, changes)
        return {"success": True, "entry": _public(entry)}

    @app.delete("/api/lifelog/entries/{entry_id}")
    def delete_entry(entry_id: int):
        lifelog.delete(entry_id)
        return {"success": True}

    # ========================================================================
    # SEARCH
    # ========================================================================

    @app.get("/api/lifelog/search")
    def search(
        q: Optional[str] = None,
        from_: Optional[str] = Query(None, alias="from"),
        to: Optional[str] = None,
        context: Optional[str] = None,
    ):
        try:
            results = keyword_search(lifelog.store.list_all(), q, from_, to, context)
        except ValueError as e:
            raise InvalidInputError(f"Invalid date range: {e}") from e
        return [_public(e) for e in results]

    @app.get("/api/lifelog/search/semantic")
    def semantic_search(
        q: Optional[str] = None,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ):
        response = lifelog.search.search(
            q or "",
            threshold=config.search_threshold if threshold is None else threshold,
            limit=config.search_limit if limit is None else limit,
        )
        return response.to_dict()

    # ========================================================================
    # DIGESTS & PATTERNS
    # ========================================================================

    @app.get("/api/lifelog/digest/week/{day}")
    def weekly_digest(day: str, ai: bool = False):
        return lifelog.digests.weekly(_day(day), ai=ai)

    @app.get("/api/lifelog/digest/{day}")
    def daily_digest(day: str, ai: bool = False):
        return lifelog.digests.daily(_day(day), ai=ai)

    @app.get("/api/lifelog/patterns")
    def patterns(days: Optional[int] = None, ai: bool = False):
        if days is not None and days <= 0:
            raise InvalidInputError("days must be positive")
        return lifelog.patterns(days, ai=ai)

    # ========================================================================
    # HEALTH, STATUS, LOGS & PLUGINS
    # ========================================================================

    @app.get("/api/logs")
    def logs(limit: int = 50):
        return lifelog.log_buffer.tail(limit)

    @app.get("/api/health")
    def health():
        return lifelog.health()

    @app.get("/api/status")
    def status():
        return lifelog.status()

    @app.get("/api/plugins")
    def plugins():
        return lifelog.dispatcher.describe()

    for observer in lifelog.dispatcher.observers:
        if observer.routes is not None:
            app.include_router(observer.routes, prefix=f"/api/plugins/{observer.name}")
            logger.info(f"[Plugins] Routes mounted at /api/plugins/{observer.name}")

    return app
