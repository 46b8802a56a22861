# FILE: econrag/chat/orchestrator.py
"""
RetrievalOrchestrator: one retrieval-augmented chat turn.

STATE MACHINE (per turn):
    idle -> embedding -> retrieving -> composing -> generating -> completed
    failed is reachable from any non-terminal state

DEGRADATION:
- EmptyIndex while retrieving: continue with no context
- Series without a usable summary (NotFound / InsufficientData): skipped
- Embedding provider exhausted: turn fails (EmbeddingUnavailable) but is
  still recorded with the fallback response
- Generation provider exhausted: turn fails (GenerationUnavailable) and is
  recorded with the fallback response
- DimensionMismatch while retrieving: recorded, then raised unchanged

CONTEXT:
The configured context budget covers the retrieved-series block only.
Replayed history (the last history_turns turns, each message clipped to
HISTORY_CLIP_CHARS) is added on top of it, so the composed context can
exceed the budget by at most 2 * history_turns * HISTORY_CLIP_CHARS
characters plus labels.

LOCKING:
No VectorIndex / AnalysisEngine lock is held across an await. Summary
computation runs in worker threads so single-flight waits never block
the event loop.

CANCELLATION:
Cancelled before generation is dispatched: nothing is recorded.
Cancelled after dispatch: the turn is recorded as cancelled with the
fallback response, then CancelledError propagates.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from econrag.analysis.engine import AnalysisEngine
from econrag.analysis.reports import ReportKind
from econrag.chat.context_assembler import AssembledContext, ContextAssembler, ContextItem
from econrag.chat.schemas import TERMINAL_STATES, ChatTurn, TurnState
from econrag.chat.sessions import SessionStore
from econrag.config import OrchestratorConfig
from econrag.errors import (
    DimensionMismatchError,
    EmbeddingUnavailableError,
    EmptyIndexError,
    ErrorKind,
    GenerationUnavailableError,
    InsufficientDataError,
    NotFoundError,
)
from econrag.providers.base import EmbeddingProvider, GenerationProvider
from econrag.providers.calls import call_with_retry
from econrag.series.store import utcnow
from econrag.vectors.index import VectorIndex, VectorMatch

logger = logging.getLogger(__name__)

# Each replayed history message is clipped to this many characters
HISTORY_CLIP_CHARS = 500


def validate_embedding(result) -> List[float]:
    if result is None:
        raise ValueError("embedding provider returned None")
    vector = [float(x) for x in result]
    if not vector:
        raise ValueError("embedding provider returned an empty vector")
    return vector


def validate_generation(result) -> str:
    if not isinstance(result, str) or not result.strip():
        raise ValueError("generation provider returned no text")
    return result


class _TurnTrace:
    """States visited by one turn, in order."""

    def __init__(self):
        self.states: List[TurnState] = [TurnState.IDLE]

    @property
    def current(self) -> TurnState:
        return self.states[-1]

    def enter(self, state: TurnState) -> None:
        if self.current in TERMINAL_STATES:
            raise RuntimeError(f"turn already terminal ({self.current.value})")
        logger.debug("[chat] %s -> %s", self.current.value, state.value)
        self.states.append(state)


class RetrievalOrchestrator:
    def __init__(
        self,
        embedder: EmbeddingProvider,
        generator: GenerationProvider,
        index: VectorIndex,
        engine: AnalysisEngine,
        sessions: SessionStore,
        config: Optional[OrchestratorConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._embedder = embedder
        self._generator = generator
        self._index = index
        self._engine = engine
        self._sessions = sessions
        self.config = config or OrchestratorConfig()
        self._assembler = ContextAssembler(self.config.context_budget, self.config.context_budget_unit)
        self._clock = clock

    async def run_turn(self, session_id: str, user_input: str) -> ChatTurn:
        if not session_id:
            raise ValueError("session id must be a non-empty string")
        trace = _TurnTrace()
        cfg = self.config

        # --- Embedding ---
        trace.enter(TurnState.EMBEDDING)
        try:
            query = await call_with_retry(
                self._embedder.embed,
                (user_input,),
                timeout=cfg.embed_timeout_seconds,
                max_retries=cfg.max_retries,
                error_cls=EmbeddingUnavailableError,
                label="embedding",
                validate=validate_embedding,
            )
        except EmbeddingUnavailableError as exc:
            logger.warning("[chat] session %s: %s", session_id, exc)
            return self._record_failure(session_id, user_input, trace, exc.kind)

        # --- Retrieving ---
        trace.enter(TurnState.RETRIEVING)
        try:
            matches = self._index.search(query, cfg.top_k)
        except EmptyIndexError:
            logger.warning("[chat] session %s: vector index empty, answering without context", session_id)
            matches = []
        except DimensionMismatchError as exc:
            self._record_failure(session_id, user_input, trace, exc.kind)
            raise

        # --- Composing ---
        trace.enter(TurnState.COMPOSING)
        items = await self._collect_context(matches)
        assembled = self._assembler.assemble(items)
        if assembled.dropped:
            logger.info(
                "[chat] context budget %d %s: dropped %s",
                cfg.context_budget, cfg.context_budget_unit, ", ".join(assembled.dropped),
            )
        context = self._compose(session_id, assembled)

        # --- Generating ---
        trace.enter(TurnState.GENERATING)
        try:
            response = await call_with_retry(
                self._generator.generate,
                (context, user_input),
                timeout=cfg.generation_timeout_seconds,
                max_retries=cfg.max_retries,
                error_cls=GenerationUnavailableError,
                label="generation",
                validate=validate_generation,
            )
        except GenerationUnavailableError as exc:
            logger.warning("[chat] session %s: %s; using fallback response", session_id, exc)
            return self._record_failure(session_id, user_input, trace, exc.kind, assembled)
        except asyncio.CancelledError:
            trace.enter(TurnState.CANCELLED)
            self._record(session_id, user_input, cfg.fallback_response, trace, None, assembled)
            logger.info("[chat] session %s: turn cancelled during generation", session_id)
            raise

        # --- Completed ---
        trace.enter(TurnState.COMPLETED)
        return self._record(session_id, user_input, response, trace, None, assembled)

    # ============ COMPOSING ============

    async def _collect_context(self, matches: Sequence[VectorMatch]) -> List[ContextItem]:
        results = await asyncio.gather(*(self._summary_item(m) for m in matches))
        return [item for item in results if item is not None]

    async def _summary_item(self, match: VectorMatch) -> Optional[ContextItem]:
        try:
            report = await asyncio.to_thread(self._engine.analyze, match.series_id, ReportKind.SUMMARY)
        except (NotFoundError, InsufficientDataError) as exc:
            logger.warning("[chat] skipping %s in context: %s", match.series_id, exc)
            return None
        return ContextItem(
            series_id=match.series_id,
            similarity=match.similarity,
            report_id=report.report_id,
            text=report.payload["text"],
        )

    def _compose(self, session_id: str, assembled: AssembledContext) -> str:
        sections = []
        history = self._sessions.recent(session_id, self.config.history_turns)
        if history:
            lines = ["## Conversation so far"]
            for turn in history:
                lines.append(f"User: {turn.user_input[:HISTORY_CLIP_CHARS]}")
                lines.append(f"Assistant: {turn.response[:HISTORY_CLIP_CHARS]}")
            sections.append("\n".join(lines))
        if assembled.text:
            sections.append("## Relevant series\n" + assembled.text)
        return "\n\n".join(sections)

    # ============ RECORDING ============

    def _record_failure(
        self,
        session_id: str,
        user_input: str,
        trace: _TurnTrace,
        error_kind: ErrorKind,
        assembled: Optional[AssembledContext] = None,
    ) -> ChatTurn:
        trace.enter(TurnState.FAILED)
        return self._record(
            session_id, user_input, self.config.fallback_response, trace, error_kind, assembled
        )

    def _record(
        self,
        session_id: str,
        user_input: str,
        response: str,
        trace: _TurnTrace,
        error_kind: Optional[ErrorKind],
        assembled: Optional[AssembledContext],
    ) -> ChatTurn:
        turn = ChatTurn(
            session_id=session_id,
            user_input=user_input,
            response=response,
            state=trace.current,
            created_at=self._clock(),
            context_series_ids=tuple(assembled.series_ids) if assembled else (),
            context_report_ids=tuple(assembled.report_ids) if assembled else (),
            error_kind=error_kind,
            states=tuple(trace.states),
        )
        stored = self._sessions.append(turn)
        logger.info(
            "[chat] session %s turn %s %s (context: %s)",
            session_id, stored.turn_id, stored.state.value,
            ", ".join(stored.context_series_ids) or "none",
        )
        return stored
