"""
Pytest configuration for the econrag test suite.

Provides:
- a deterministic step clock
- keyword-count embedder and scripted generators (no network)
- wired core components
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest

from econrag.analysis.engine import AnalysisEngine
from econrag.chat.orchestrator import RetrievalOrchestrator
from econrag.chat.sessions import SessionStore
from econrag.config import OrchestratorConfig
from econrag.persistence.base import InMemoryRepository
from econrag.series.store import SeriesStore
from econrag.vectors.index import VectorIndex


class StepClock:
    """Returns a strictly increasing UTC time, one step per call."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        self.now = self.now + self.step
        return self.now


class KeywordEmbedder:
    """Embeds text as keyword counts over a fixed vocabulary (D = 4)."""

    VOCAB = ("unemployment", "inflation", "rates", "housing")

    def __init__(self):
        self.calls = []

    def embed(self, text):
        self.calls.append(text)
        lowered = text.lower()
        return [float(lowered.count(word)) for word in self.VOCAB]


class EchoGenerator:
    """Async generator that echoes what it was given."""

    def __init__(self):
        self.calls = []

    async def generate(self, context, user_input):
        self.calls.append((context, user_input))
        return f"answer: {user_input}"


class FlakyRepository(InMemoryRepository):
    """In-memory repository whose first `failures` saves raise."""

    def __init__(self, collection="flaky", failures=1):
        super().__init__(collection)
        self.failures = failures

    def save(self, record_id, record):
        if self.failures > 0:
            self.failures -= 1
            raise OSError("disk full")
        super().save(record_id, record)


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def store(clock):
    return SeriesStore(clock=clock)


@pytest.fixture
def engine(store, clock):
    return AnalysisEngine(store, clock=clock)


@pytest.fixture
def index(clock):
    return VectorIndex(clock=clock)


@pytest.fixture
def sessions():
    return SessionStore()


@pytest.fixture
def embedder():
    return KeywordEmbedder()


@pytest.fixture
def generator():
    return EchoGenerator()


@pytest.fixture
def fast_config():
    return OrchestratorConfig(
        top_k=5,
        context_budget=4000,
        context_budget_unit="chars",
        history_turns=3,
        embed_timeout_seconds=1.0,
        generation_timeout_seconds=1.0,
        max_retries=1,
    )


@pytest.fixture
def make_orchestrator(index, engine, sessions, fast_config, clock):
    def _make(embedder, generator, config=None):
        return RetrievalOrchestrator(
            embedder, generator, index, engine, sessions,
            config=config or fast_config, clock=clock,
        )
    return _make


def monthly(values, start_year=2020):
    """[(date, value)] on the first of consecutive months."""
    out = []
    for i, value in enumerate(values):
        year = start_year + i // 12
        month = i % 12 + 1
        out.append((f"{year:04d}-{month:02d}-01", value))
    return out
