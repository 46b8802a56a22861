# FILE: econrag/errors.py
"""
Typed errors for the econrag core.

Every failure the core surfaces carries an ErrorKind so callers (and
persisted chat turns) can record what went wrong without parsing messages.

Recovery rules:
- EMPTY_INDEX: orchestrator degrades to an empty retrieval context
- GENERATION_UNAVAILABLE: orchestrator substitutes the fallback response
- DIMENSION_MISMATCH / INVALID_SERIES: caller misuse, never caught in the core
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    INVALID_SERIES = "InvalidSeries"
    INSUFFICIENT_DATA = "InsufficientData"
    DIMENSION_MISMATCH = "DimensionMismatch"
    EMPTY_INDEX = "EmptyIndex"
    EMBEDDING_UNAVAILABLE = "EmbeddingUnavailable"
    GENERATION_UNAVAILABLE = "GenerationUnavailable"


class CoreError(Exception):
    """Base class for all typed core errors."""

    kind: ErrorKind

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class NotFoundError(CoreError):
    kind = ErrorKind.NOT_FOUND


class InvalidSeriesError(CoreError):
    kind = ErrorKind.INVALID_SERIES


class InsufficientDataError(CoreError):
    kind = ErrorKind.INSUFFICIENT_DATA


class DimensionMismatchError(CoreError):
    kind = ErrorKind.DIMENSION_MISMATCH


class EmptyIndexError(CoreError):
    kind = ErrorKind.EMPTY_INDEX


class EmbeddingUnavailableError(CoreError):
    kind = ErrorKind.EMBEDDING_UNAVAILABLE


class GenerationUnavailableError(CoreError):
    kind = ErrorKind.GENERATION_UNAVAILABLE


__all__ = [
    "ErrorKind",
    "CoreError",
    "NotFoundError",
    "InvalidSeriesError",
    "InsufficientDataError",
    "DimensionMismatchError",
    "EmptyIndexError",
    "EmbeddingUnavailableError",
    "GenerationUnavailableError",
]
