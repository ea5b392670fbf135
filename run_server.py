#!/usr/bin/env python3
"""
LifeLog Server

Receives voice notes from capture devices, enriches them in the
background and serves search, digests and patterns over HTTP.

Pipeline:
    Capture device (phone, watch, web)
        ↓
    POST /api/lifelog/ingest
        ↓
    Transcribe → Analyze → Embed
        ↓
    Search, digests, patterns

Usage:
    python run_server.py

Configuration:
    Set environment variables in .env file.
    See lifelog/config.py for all options.
"""

import logging
import sys

import uvicorn

from lifelog.config import load_config
from lifelog.errors import ConfigurationError
from lifelog.logbuffer import configure_logging
from server.main import create_app


def main():
    # ── Logging ─────────────────────────────────────────────────────
    configure_logging(level=logging.INFO)
    logger = logging.getLogger("lifelog")

    # ── Configuration ──────────────────────────────────────────────
    config = load_config()
    logger.info(f"Data dir:     {config.data_dir}")
    logger.info(f"Transcriber:  {config.transcription_engine}")
    logger.info(f"Gemini model: {config.gemini_model} ({len(config.gemini_api_keys)} key(s))")
    logger.info(f"Embeddings:   {config.embedding_model}")
    logger.info(f"Plugins:      {', '.join(config.plugins) or 'none'}")

    # ── Application ────────────────────────────────────────────────
    try:
        app = create_app()
    except (ConfigurationError, ValueError) as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    # ── Serve ──────────────────────────────────────────────────────
    logger.info(f"🎙️  Listening on http://{config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_level="info")


if __name__ == "__main__":
    main()
