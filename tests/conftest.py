"""
Shared pytest fixtures for LifeLog tests.

Stub providers stand in for Gemini and OpenAI; no test touches the network.
"""

import logging
from pathlib import Path

import pytest

from lifelog.config import LifeLogConfig
from lifelog.core import LifeLog
from lifelog.providers import Providers
from lifelog.store import EntryStore

from .helpers import StubAnalyzer, StubEmbedder, StubNarrator, StubTranscriber


@pytest.fixture
def config(tmp_path: Path) -> LifeLogConfig:
    return LifeLogConfig(data_dir=tmp_path, plugins=[])


@pytest.fixture
def stubs():
    return {
        "transcriber": StubTranscriber(),
        "analyzer": StubAnalyzer(),
        "embedder": StubEmbedder(),
        "narrator": StubNarrator(),
    }


@pytest.fixture
def providers(stubs) -> Providers:
    return Providers(**stubs)


@pytest.fixture
def store(tmp_path: Path) -> EntryStore:
    return EntryStore(tmp_path / "entries.json")


@pytest.fixture
def lifelog(config, providers):
    instance = LifeLog(config, providers=providers)
    yield instance
    logging.getLogger().removeHandler(instance.log_buffer)
