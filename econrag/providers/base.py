# FILE: econrag/providers/base.py
"""
External collaborator contracts.

Implementations live outside the core. embed() and generate() may be
plain functions or coroutines; the orchestrator runs sync implementations
in a worker thread.
"""

from datetime import date, datetime
from typing import Any, Protocol, Sequence, Tuple, Union, runtime_checkable

TimestampLike = Union[datetime, date, str]


@runtime_checkable
class SeriesDataProvider(Protocol):
    """fetch(series_id) -> ordered (timestamp, value) pairs. May raise on network / rate limit."""

    def fetch(self, series_id: str) -> Sequence[Tuple[TimestampLike, Any]]: ...


@runtime_checkable
class EmbeddingProvider(Protocol):
    """embed(text) -> vector of a fixed dimension D. May fail or time out."""

    def embed(self, text: str) -> Sequence[float]: ...


@runtime_checkable
class GenerationProvider(Protocol):
    """generate(context, user_input) -> response text. May fail or time out."""

    def generate(self, context: str, user_input: str) -> str: ...
