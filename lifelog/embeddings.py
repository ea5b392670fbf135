"""
OpenAI embedding client for semantic search.

Entries and queries must go through the same model so their vectors
share a dimensionality.
"""

import time
import logging

from openai import OpenAI, APIError, RateLimitError, APIConnectionError

from .errors import ProviderError

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
INITIAL_BACKOFF_SECONDS = 2

# Output size per model
EMBEDDING_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class OpenAIEmbedder:
    """Turns text into a fixed-length float vector."""

    def __init__(self, api_key: str, model: str = "text-embedding-3-small", client: OpenAI | None = None):
        if not api_key and client is None:
            raise ValueError("OpenAI API key is required")
        self._client = client or OpenAI(api_key=api_key)
        self.model = model
        self.dimension = EMBEDDING_DIMENSIONS.get(model, 1536)

    def embed(self, text: str, max_retries: int = MAX_RETRIES) -> list[float]:
        if not text or not text.strip():
            raise ProviderError("Cannot embed empty text")

        last_error = None
        for attempt in range(1, max_retries + 1):
            try:
                response = self._client.embeddings.create(model=self.model, input=text)
                vector = list(response.data[0].embedding)
                if not vector:
                    raise ProviderError("OpenAI returned an empty embedding")
                logger.debug(f"Embedded {len(text)} chars → {len(vector)} dims")
                return vector

            except (RateLimitError, APIConnectionError) as e:
                last_error = e
                wait = INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1))
                logger.warning(f"Embedding transient error (attempt {attempt}/{max_retries}), "
                               f"retrying in {wait}s: {e}")
                time.sleep(wait)

            except APIError as e:
                raise ProviderError(f"OpenAI embedding failed: {e}") from e

        raise ProviderError(f"OpenAI embedding failed after {max_retries} attempts: {last_error}")
