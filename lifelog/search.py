"""
Semantic and keyword search over the entry store.

Semantic search embeds the query with the same provider used for entries
and ranks embedded entries by cosine similarity. Entries without an
embedding are left out entirely rather than scored as zero.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .errors import InvalidInputError
from .models import Entry, parse_timestamp
from .providers import Providers
from .store import EntryStore

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.3
DEFAULT_LIMIT = 10


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine of the angle between two vectors. Zero vectors score 0.0."""
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


@dataclass
class SearchResponse:
    query: str
    results: list[dict[str, Any]] = field(default_factory=list)
    total_embedded: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = {"results": self.results, "query": self.query, "total_embedded": self.total_embedded}
        if self.total_embedded == 0:
            data["message"] = "No embedded entries yet"
        return data


def rank_entries(
    query_vector: list[float],
    entries: list[Entry],
    threshold: float = DEFAULT_THRESHOLD,
    limit: int = DEFAULT_LIMIT,
) -> list[dict[str, Any]]:
    """Score embedded entries against a query vector.

    Keeps entries at or above threshold, most similar first; ties go to
    the most recent entry. Results carry a similarity score instead of
    the raw embedding.
    """
    scored: list[tuple[float, Entry]] = []
    for entry in entries:
        if entry.embedding is None:
            continue
        if len(entry.embedding) != len(query_vector):
            logger.warning(
                f"Entry {entry.id} embedding has {len(entry.embedding)} dims, "
                f"query has {len(query_vector)}, skipped"
            )
            continue
        similarity = cosine_similarity(query_vector, entry.embedding)
        if similarity >= threshold:
            scored.append((similarity, entry))

    scored.sort(key=lambda pair: (pair[0], pair[1].recorded_at), reverse=True)

    results = []
    for similarity, entry in scored[:max(limit, 0)]:
        record = entry.to_dict(include_embedding=False)
        record["similarity"] = similarity
        results.append(record)
    return results


class SemanticSearch:
    """Embeds free-text queries and ranks the store against them."""

    def __init__(self, store: EntryStore, providers: Providers):
        self.store = store
        self.providers = providers

    def search(self, query: str, threshold: float = DEFAULT_THRESHOLD,
               limit: int = DEFAULT_LIMIT) -> SearchResponse:
        if not query or not query.strip():
            raise InvalidInputError("Query required")
        embedder = self.providers.require_embedder()

        logger.info(f"Semantic search: \"{query}\"")
        embedded = [e for e in self.store.list_all() if e.embedding is not None]
        if not embedded:
            return SearchResponse(query=query)

        query_vector = embedder.embed(query)
        results = rank_entries(query_vector, embedded, threshold, limit)
        logger.info(f"Semantic search found {len(results)} results")
        return SearchResponse(query=query, results=results, total_embedded=len(embedded))


def keyword_search(
    entries: list[Entry],
    q: Optional[str] = None,
    from_: Optional[str] = None,
    to: Optional[str] = None,
    context: Optional[str] = None,
) -> list[Entry]:
    """Case-insensitive substring search over transcript and summary.

    from_/to are ISO timestamps or dates bounding the recorded time.
    """
    start: Optional[datetime] = parse_timestamp(from_) if from_ else None
    end: Optional[datetime] = parse_timestamp(to) if to else None
    needle = q.lower() if q else None

    results = []
    for entry in entries:
        if start and entry.recorded_at < start:
            continue
        if end and entry.recorded_at > end:
            continue
        if context and entry.context != context:
            continue
        if needle and not (
            (entry.transcript and needle in entry.transcript.lower())
            or (entry.summary and needle in entry.summary.lower())
        ):
            continue
        results.append(entry)
    return results
