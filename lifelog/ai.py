"""
Gemini client with automatic key rotation and retry logic.
Keys are managed in-memory with round-robin rotation.

Rate limit handling:
- On 429, the key goes into a short cooldown instead of being dropped
- Daily quota errors exhaust the key immediately
- Network errors are retried with exponential backoff
"""

import time
import logging
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from google import genai
from google.genai import types

from .errors import ProviderError

logger = logging.getLogger(__name__)

# Error message markers for classification
_QUOTA_MARKERS = ["429", "quota", "rate limit", "resource exhausted", "too many requests"]
_NETWORK_MARKERS = ["broken pipe", "errno 32", "connection", "reset", "timeout"]
_DAILY_QUOTA_MARKERS = ["per_day", "perday", "daily", "quotaexceeded", "limit: 0"]

RATE_LIMIT_WAIT_SECONDS = 15   # Cooldown after a 429 before reusing the key
MAX_429_BEFORE_EXHAUST = 3     # Consecutive 429s before the key is dropped


def _now() -> datetime:
    return datetime.now(timezone.utc)


class GeminiClient:
    """Gemini API client rotating across several API keys.

    generate() is used for analysis and narratives, transcribe() uploads
    audio for the Gemini transcription engine.
    """

    def __init__(self, api_keys: list[str], model_name: str = "gemini-2.0-flash",
                 temperature: float = 0.4, max_output_tokens: int = 2048):
        if not api_keys:
            raise ValueError("At least one API key is required")
        self._keys = api_keys
        self._model_name = model_name
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._key_index = 0
        self._exhausted: set[int] = set()
        self._key_cooldowns: dict[int, datetime] = {}
        self._key_429_counts: dict[int, int] = {}
        self._clients: dict[int, genai.Client] = {}
        self._state_lock = threading.Lock()

    @property
    def model_name(self) -> str:
        return self._model_name

    def _get_available_key(self) -> int:
        """Pick the next usable key index, waiting out cooldowns if needed.

        Rotation state is shared by every pipeline thread; it is only
        touched under _state_lock, and the cooldown wait happens outside it.
        """
        with self._state_lock:
            now = _now()

            for idx in [i for i, until in self._key_cooldowns.items() if until <= now]:
                self._key_cooldowns.pop(idx, None)
                self._key_429_counts.pop(idx, None)

            available = [
                i for i in range(len(self._keys))
                if i not in self._exhausted and i not in self._key_cooldowns
            ]
            if available:
                idx = available[self._key_index % len(available)]
                self._key_index += 1
                return idx

            cooling = [i for i in range(len(self._keys)) if i not in self._exhausted]
            if not cooling:
                raise ProviderError("All Gemini API keys exhausted. Wait for quota reset or add more keys.")
            soonest = min(cooling, key=lambda i: self._key_cooldowns[i])
            wait_time = (self._key_cooldowns[soonest] - now).total_seconds()

        if wait_time > 0:
            logger.info(f"⏳ All keys rate-limited. Waiting {wait_time:.0f}s for key {soonest + 1}")
            time.sleep(wait_time + 1)

        with self._state_lock:
            self._key_cooldowns.pop(soonest, None)
            self._key_429_counts.pop(soonest, None)
        return soonest

    def _handle_rate_limit(self, key_idx: int, error: Exception):
        """Cool a key down after a 429, or drop it on daily quota / repeated 429s."""
        with self._state_lock:
            if self._is_daily_quota_error(error):
                logger.warning(f"🚫 Key {key_idx + 1} hit DAILY quota limit — marking exhausted")
                self._exhausted.add(key_idx)
                self._key_cooldowns.pop(key_idx, None)
                self._key_429_counts.pop(key_idx, None)
                return

            count = self._key_429_counts.get(key_idx, 0) + 1
            self._key_429_counts[key_idx] = count
            if count >= MAX_429_BEFORE_EXHAUST:
                logger.warning(f"🚫 Key {key_idx + 1} hit {count} consecutive 429s - marking as exhausted")
                self._exhausted.add(key_idx)
                self._key_cooldowns.pop(key_idx, None)
            else:
                until = _now() + timedelta(seconds=RATE_LIMIT_WAIT_SECONDS)
                self._key_cooldowns[key_idx] = until
                logger.warning(f"⏸️ Key {key_idx + 1} rate-limited ({count}/{MAX_429_BEFORE_EXHAUST}), cooldown until {until.strftime('%H:%M:%S')}")

    def _client(self, key_idx: int) -> genai.Client:
        with self._state_lock:
            client = self._clients.get(key_idx)
            if client is None:
                client = self._clients[key_idx] = genai.Client(api_key=self._keys[key_idx])
        return client

    @staticmethod
    def _is_quota_error(e: Exception) -> bool:
        s = str(e).lower()
        return any(m in s for m in _QUOTA_MARKERS)

    @staticmethod
    def _is_daily_quota_error(e: Exception) -> bool:
        s = str(e).lower().replace(" ", "").replace("_", "")
        return any(m in s for m in _DAILY_QUOTA_MARKERS)

    @staticmethod
    def _is_network_error(e: Exception) -> bool:
        s = str(e).lower()
        return any(m in s for m in _NETWORK_MARKERS)

    def _config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=self._temperature,
            max_output_tokens=self._max_output_tokens,
        )

    def _run(self, label: str, call, max_retries: int) -> str:
        """Run one API call with key rotation and retries; return response text."""
        last_error: Optional[Exception] = None

        for attempt in range(max_retries):
            key_idx = self._get_available_key()
            client = self._client(key_idx)
            try:
                logger.info(f"{label} (attempt {attempt + 1}/{max_retries}, key {key_idx + 1}/{len(self._keys)})")
                response = call(client)
                self._validate_response(response)
                with self._state_lock:
                    self._key_429_counts.pop(key_idx, None)
                return response.text
            except ProviderError:
                raise
            except Exception as e:
                last_error = e
                if self._is_quota_error(e):
                    self._handle_rate_limit(key_idx, e)
                    continue
                if self._is_network_error(e):
                    wait = min(5 * (2 ** attempt), 30)
                    logger.warning(f"Network error, retrying in {wait}s: {e}")
                    time.sleep(wait)
                    continue
                raise ProviderError(f"{label} failed: {e}") from e

        raise ProviderError(f"{label} failed after {max_retries} attempts: {last_error}")

    def generate(self, prompt: str, max_retries: int = 5) -> str:
        """Send a text prompt and return the model's text."""
        def call(client):
            return client.models.generate_content(
                model=self._model_name,
                contents=prompt,
                config=self._config(),
            )
        return self._run("Generating content", call, max_retries)

    def transcribe(self, audio_path: Path, prompt: str, max_retries: int = 5) -> str:
        """Upload an audio file and return its transcription."""
        def call(client):
            audio_file = client.files.upload(file=str(audio_path))
            try:
                return client.models.generate_content(
                    model=self._model_name,
                    contents=[prompt, audio_file],
                    config=types.GenerateContentConfig(max_output_tokens=65536),
                )
            finally:
                try:
                    client.files.delete(name=audio_file.name)
                except Exception as e:
                    logger.debug(f"Uploaded file cleanup failed: {e}")
        return self._run(f"Transcribing {Path(audio_path).name}", call, max_retries)

    @staticmethod
    def _validate_response(response):
        """Validate a Gemini API response before accessing .text."""
        if not response:
            raise ProviderError("Empty response from Gemini API")
        if not getattr(response, "candidates", None):
            raise ProviderError("No candidates in Gemini response")

        finish = getattr(response.candidates[0], "finish_reason", None)
        if finish and "STOP" not in str(finish) and "UNSPECIFIED" not in str(finish):
            if "MAX_TOKENS" in str(finish) and response.text:
                logger.warning("Response hit max token limit — returning partial content")
                return
            raise ProviderError(f"Abnormal finish reason: {finish}")

        if not response.text or not response.text.strip():
            raise ProviderError("Empty text in Gemini response")
