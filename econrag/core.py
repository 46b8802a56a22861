# FILE: econrag/core.py
"""
Explicit wiring of the core and the synchronous surfaces handed to
request handlers.

    core = build_core(embedder, generator, repositories=Repositories.in_memory())
    core.ingest_series("UNRATE", observations)
    core.index_series("UNRATE")
    turn = core.submit_chat_turn("session-1", "Is unemployment rising?")

Every component is constructed here and passed to its dependents; there
is no container and no module-level singleton.

Sync wrappers (submit_chat_turn, index_series) use asyncio.run and are for
threaded handlers / CLI / tests. Inside a running event loop use the
async variants.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from econrag.analysis.engine import AnalysisEngine
from econrag.analysis.reports import AnalysisReport
from econrag.chat.orchestrator import RetrievalOrchestrator
from econrag.chat.schemas import ChatSession, ChatTurn
from econrag.chat.sessions import SessionStore
from econrag.config import ANOMALY_Z_THRESHOLD, OrchestratorConfig
from econrag.indexing import SeriesIndexer
from econrag.persistence.base import Repositories
from econrag.providers.base import EmbeddingProvider, GenerationProvider
from econrag.series.store import Series, SeriesStore, utcnow
from econrag.vectors.index import VectorEntry, VectorIndex, VectorMatch

logger = logging.getLogger(__name__)


@dataclass
class EconCore:
    series: SeriesStore
    engine: AnalysisEngine
    index: VectorIndex
    sessions: SessionStore
    orchestrator: RetrievalOrchestrator
    indexer: SeriesIndexer

    # ============ SERIES / ANALYSIS ============

    def ingest_series(self, series_id: str, observations: Iterable[Any]) -> Series:
        return self.series.ingest(series_id, observations)

    def run_analysis(self, series_id: str, kind) -> AnalysisReport:
        return self.engine.analyze(series_id, kind)

    # ============ VECTORS ============

    def upsert_vector(self, series_id: str, vector: Sequence[float]) -> VectorEntry:
        return self.index.upsert(series_id, vector)

    def search_vectors(self, query: Sequence[float], k: int) -> List[VectorMatch]:
        return self.index.search(query, k)

    def index_series(self, series_id: str) -> VectorEntry:
        return asyncio.run(self.indexer.index_series(series_id))

    async def aindex_series(self, series_id: str) -> VectorEntry:
        return await self.indexer.index_series(series_id)

    # ============ CHAT ============

    def submit_chat_turn(self, session_id: str, user_input: str) -> ChatTurn:
        return asyncio.run(self.orchestrator.run_turn(session_id, user_input))

    async def asubmit_chat_turn(self, session_id: str, user_input: str) -> ChatTurn:
        return await self.orchestrator.run_turn(session_id, user_input)

    def get_session(self, session_id: str) -> ChatSession:
        return self.sessions.get(session_id)

    # ============ LIFECYCLE ============

    def hydrate(self) -> Dict[str, int]:
        """Warm start from the persistence adapter."""
        counts = {
            "series": self.series.hydrate(),
            "reports": self.engine.hydrate(),
            "vectors": self.index.hydrate(),
            "sessions": self.sessions.hydrate(),
        }
        logger.info("[core] hydrated %s", counts)
        return counts


def build_core(
    embedder: EmbeddingProvider,
    generator: GenerationProvider,
    *,
    repositories: Optional[Repositories] = None,
    config: Optional[OrchestratorConfig] = None,
    anomaly_threshold: float = ANOMALY_Z_THRESHOLD,
    clock: Callable[[], datetime] = utcnow,
) -> EconCore:
    repos = repositories or Repositories.in_memory()
    config = config or OrchestratorConfig()

    series = SeriesStore(repos.series, clock=clock)
    engine = AnalysisEngine(series, repos.reports, anomaly_threshold=anomaly_threshold, clock=clock)
    index = VectorIndex(repos.vectors, clock=clock)
    sessions = SessionStore(repos.sessions)
    orchestrator = RetrievalOrchestrator(
        embedder, generator, index, engine, sessions, config=config, clock=clock
    )
    indexer = SeriesIndexer(
        series, engine, index, embedder,
        timeout=config.embed_timeout_seconds,
        max_retries=config.max_retries,
    )
    return EconCore(
        series=series,
        engine=engine,
        index=index,
        sessions=sessions,
        orchestrator=orchestrator,
        indexer=indexer,
    )
