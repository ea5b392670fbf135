"""
LifeLog Engine

Voice-note enrichment pipeline with in-memory analytics.
Captured → Transcribed → Analyzed → Embedded, then semantic search,
pattern detection and daily/weekly digests over the entry store.

FastAPI-free: the server package wraps this core over HTTP.
"""

__version__ = "1.5.0"

from .config import LifeLogConfig, load_config
from .core import LifeLog
from .errors import (
    LifeLogError,
    ConfigurationError,
    ProviderError,
    MalformedResponseError,
    EntryNotFoundError,
    InvalidInputError,
    EmptyWindowError,
    InvalidObserverError,
)
from .hooks import (
    ON_ENTRY_CREATED,
    ON_ENTRY_ANALYZED,
    CONTRIBUTE_TO_DIGEST,
    DateRange,
    HookDispatcher,
    Observer,
)
from .models import Entry, Sentiment, Stage
from .patterns import PatternReport, detect_patterns
from .pipeline import EnrichmentPipeline, StageReport
from .providers import Providers, build_providers
from .search import SemanticSearch, cosine_similarity
from .store import EntryStore
