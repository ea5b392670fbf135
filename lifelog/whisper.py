"""
OpenAI transcription client — supports whisper-1 and gpt-4o-transcribe.

Only handles audio → text. Analysis still goes through Gemini.
"""

import time
import logging
from pathlib import Path

from openai import OpenAI, APIError, RateLimitError, APIConnectionError

from .errors import ProviderError

logger = logging.getLogger(__name__)

# OpenAI audio API has a 25MB file size limit
MAX_FILE_SIZE_MB = 25
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024

MAX_RETRIES = 5
INITIAL_BACKOFF_SECONDS = 2

SUPPORTED_MODELS = ("whisper-1", "gpt-4o-transcribe")


class OpenAITranscriber:
    """OpenAI audio transcription with exponential backoff on transient errors."""

    def __init__(self, api_key: str, model: str = "whisper-1", client: OpenAI | None = None):
        if not api_key and client is None:
            raise ValueError("OpenAI API key is required")
        if model not in SUPPORTED_MODELS:
            raise ValueError(f"Unsupported OpenAI transcription model: {model}. "
                             f"Use one of: {', '.join(SUPPORTED_MODELS)}.")
        self._client = client or OpenAI(api_key=api_key)
        self._model = model
        logger.info(f"OpenAI transcriber initialized | model={model}")

    def transcribe(self, audio_ref: str, max_retries: int = MAX_RETRIES) -> str:
        """Transcribe the audio file at audio_ref.

        Raises:
            ProviderError: File missing or too large, non-retryable API
                error, or retries exhausted.
        """
        audio_path = Path(audio_ref)
        if not audio_path.exists():
            raise ProviderError(f"Audio file not found: {audio_path}")

        file_size = audio_path.stat().st_size
        if file_size > MAX_FILE_SIZE_BYTES:
            raise ProviderError(
                f"Audio file is {file_size / (1024 * 1024):.1f}MB — exceeds OpenAI's "
                f"{MAX_FILE_SIZE_MB}MB limit ({audio_path.name})"
            )

        logger.info(f"Transcribing with OpenAI {self._model}: {audio_path.name} "
                    f"({file_size / (1024 * 1024):.1f}MB)")

        last_error = None
        for attempt in range(1, max_retries + 1):
            try:
                with open(audio_path, "rb") as audio_file:
                    response = self._client.audio.transcriptions.create(
                        file=audio_file,
                        model=self._model,
                        response_format="text",
                    )

                # response is a plain string when response_format="text"
                transcript = response.strip() if isinstance(response, str) else response.text.strip()
                if not transcript:
                    raise ProviderError("OpenAI returned an empty transcript")

                logger.info(f"Transcription complete | {len(transcript)} chars | model={self._model}")
                return transcript

            except (RateLimitError, APIConnectionError) as e:
                last_error = e
                wait = INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1))
                logger.warning(f"Transient OpenAI error (attempt {attempt}/{max_retries}), "
                               f"retrying in {wait}s: {e}")
                time.sleep(wait)

            except APIError as e:
                last_error = e
                status = getattr(e, "status_code", None)
                if status and 400 <= status < 500:
                    raise ProviderError(f"OpenAI transcription rejected: {e}") from e
                wait = INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1))
                logger.warning(f"API error (attempt {attempt}/{max_retries}), "
                               f"retrying in {wait}s: {e}")
                time.sleep(wait)

        raise ProviderError(
            f"OpenAI transcription failed after {max_retries} attempts. Last error: {last_error}"
        )
