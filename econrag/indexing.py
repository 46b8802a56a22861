# FILE: econrag/indexing.py
"""
SeriesIndexer: embeds a text description of each series into the VectorIndex.

Embedding source is text. The default description is the series id, its
observation range and latest value, plus the summary report when the
series is long enough to have one. Pass describe= to embed something else.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Optional

from econrag.analysis.engine import AnalysisEngine
from econrag.analysis.reports import ReportKind
from econrag.config import EMBED_TIMEOUT_SECONDS, PROVIDER_MAX_RETRIES
from econrag.errors import EmbeddingUnavailableError, InsufficientDataError
from econrag.providers.base import EmbeddingProvider
from econrag.providers.calls import call_with_retry
from econrag.series.store import SeriesStore
from econrag.vectors.index import VectorEntry, VectorIndex

logger = logging.getLogger(__name__)


class SeriesIndexer:
    def __init__(
        self,
        store: SeriesStore,
        engine: AnalysisEngine,
        index: VectorIndex,
        embedder: EmbeddingProvider,
        *,
        describe: Optional[Callable[[str], str]] = None,
        timeout: float = EMBED_TIMEOUT_SECONDS,
        max_retries: int = PROVIDER_MAX_RETRIES,
    ):
        self._store = store
        self._engine = engine
        self._index = index
        self._embedder = embedder
        self._describe = describe or self.describe
        self._timeout = timeout
        self._max_retries = max_retries

    def describe(self, series_id: str) -> str:
        series = self._store.get(series_id)
        if len(series) == 0:
            return f"Economic time series {series_id} (no observations)."
        try:
            summary = self._engine.analyze(series_id, ReportKind.SUMMARY)
            return f"Economic time series {series_id}.\n{summary.payload['text']}"
        except InsufficientDataError:
            obs = series.observations[-1]
            return (
                f"Economic time series {series_id}: 1 observation on "
                f"{obs.timestamp.date().isoformat()} with value {obs.value:g}."
            )

    async def index_series(self, series_id: str) -> VectorEntry:
        # describe() may compute a summary report; keep it off the event loop
        text = await asyncio.to_thread(self._describe, series_id)
        vector = await call_with_retry(
            self._embedder.embed,
            (text,),
            timeout=self._timeout,
            max_retries=self._max_retries,
            error_cls=EmbeddingUnavailableError,
            label=f"embedding {series_id}",
        )
        return self._index.upsert(series_id, vector)

    async def index_all(self) -> Dict[str, Optional[str]]:
        """Index every stored series. Maps series id -> None on success or the error text."""
        outcomes: Dict[str, Optional[str]] = {}
        for series_id in self._store.list():
            try:
                await self.index_series(series_id)
                outcomes[series_id] = None
            except EmbeddingUnavailableError as exc:
                logger.warning("[indexing] %s not indexed: %s", series_id, exc)
                outcomes[series_id] = str(exc)
        indexed = sum(1 for v in outcomes.values() if v is None)
        logger.info("[indexing] indexed %d/%d series", indexed, len(outcomes))
        return outcomes
