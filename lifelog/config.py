"""
Environment-driven configuration for the LifeLog engine.
All paths and keys come from environment variables (optionally a .env file).

A provider counts as "configured" when its credentials are present; the
pipeline silently skips stages whose provider is missing.
"""

import os
import logging
from pathlib import Path
from dataclasses import dataclass, field

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"

TRANSCRIPTION_ENGINES = ("gemini", "whisper-1", "gpt-4o-transcribe", "none")


@dataclass
class LifeLogConfig:
    """Fully environment-driven engine configuration."""

    # Storage
    data_dir: Path = field(default_factory=lambda: Path("./data"))
    entries_filename: str = "entries.json"
    audio_subdir: str = "audio"

    # Providers
    gemini_api_keys: list[str] = field(default_factory=list)
    gemini_model: str = DEFAULT_GEMINI_MODEL
    # Transcription engine: "gemini", "whisper-1", "gpt-4o-transcribe" or "none"
    transcription_engine: str = "whisper-1"
    openai_api_key: str = ""
    embedding_model: str = DEFAULT_EMBEDDING_MODEL

    # Observers, in registration order
    plugins: list[str] = field(default_factory=lambda: ["exercise", "wearable"])

    # Query defaults
    search_threshold: float = 0.3
    search_limit: int = 10
    pattern_days: int = 30

    # Server
    host: str = "0.0.0.0"
    port: int = 8766
    log_buffer_size: int = 200
    version: str = "1.5.0"

    @property
    def entries_path(self) -> Path:
        """Full path to the entry snapshot file."""
        return self.data_dir / self.entries_filename

    @property
    def audio_dir(self) -> Path:
        """Directory holding uploaded audio files."""
        return self.data_dir / self.audio_subdir

    @property
    def transcription_configured(self) -> bool:
        if self.transcription_engine == "gemini":
            return bool(self.gemini_api_keys)
        if self.transcription_engine in ("whisper-1", "gpt-4o-transcribe"):
            return bool(self.openai_api_key)
        return False

    @property
    def analysis_configured(self) -> bool:
        return bool(self.gemini_api_keys)

    @property
    def embedding_configured(self) -> bool:
        return bool(self.openai_api_key)

    def ensure_directories(self):
        """Create all required directories if they don't exist."""
        for d in [self.data_dir, self.audio_dir]:
            d.mkdir(parents=True, exist_ok=True)

    def validate(self):
        """Validate the configuration at startup."""
        if self.transcription_engine not in TRANSCRIPTION_ENGINES:
            raise ValueError(
                f"Unknown TRANSCRIPTION_ENGINE: {self.transcription_engine}. "
                f"Use one of: {', '.join(TRANSCRIPTION_ENGINES)}"
            )
        if not self.transcription_configured:
            logger.warning("Transcription provider not configured — audio entries stay captured")
        if not self.analysis_configured:
            logger.warning("No Gemini API keys configured — analysis and digests narratives disabled")
        if not self.embedding_configured:
            logger.warning("OPENAI_API_KEY not set — embeddings and semantic search disabled")


def _split_list(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def load_config(env_file: str = ".env") -> LifeLogConfig:
    """Load configuration from environment variables.

    Recognized env vars:
        LIFELOG_DATA_DIR     — directory for the entry snapshot and audio files
        GEMINI_API_KEYS      — comma-separated Gemini API keys
                               (or GEMINI_API_KEY for a single key)
        GEMINI_MODEL         — model used for analysis and narratives
        TRANSCRIPTION_ENGINE — gemini | whisper-1 | gpt-4o-transcribe | none
        OPENAI_API_KEY       — whisper transcription and embeddings
        EMBEDDING_MODEL      — OpenAI embedding model
        LIFELOG_PLUGINS      — comma-separated observer names
    """
    load_dotenv(env_file)

    keys = _split_list(os.environ.get("GEMINI_API_KEYS", ""))
    if not keys:
        single = os.environ.get("GEMINI_API_KEY", "").strip()
        if single:
            keys = [single]

    plugins_env = os.environ.get("LIFELOG_PLUGINS")
    plugins = _split_list(plugins_env) if plugins_env is not None else ["exercise", "wearable"]

    config = LifeLogConfig(
        data_dir=Path(os.environ.get("LIFELOG_DATA_DIR", "./data")),
        gemini_api_keys=keys,
        gemini_model=os.environ.get("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        transcription_engine=os.environ.get("TRANSCRIPTION_ENGINE", "whisper-1"),
        openai_api_key=os.environ.get("OPENAI_API_KEY", ""),
        embedding_model=os.environ.get("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
        plugins=plugins,
        search_threshold=float(os.environ.get("SEARCH_THRESHOLD", "0.3")),
        search_limit=int(os.environ.get("SEARCH_LIMIT", "10")),
        pattern_days=int(os.environ.get("PATTERN_DAYS", "30")),
        host=os.environ.get("LIFELOG_HOST", "0.0.0.0"),
        port=int(os.environ.get("LIFELOG_PORT", "8766")),
        log_buffer_size=int(os.environ.get("LOG_BUFFER_SIZE", "200")),
    )

    config.ensure_directories()
    logger.info(
        f"Config loaded | Data: {config.data_dir} | "
        f"Transcription: {config.transcription_engine} | Plugins: {', '.join(config.plugins) or 'none'}"
    )
    return config
