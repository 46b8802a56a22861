"""
econrag: economic time-series analysis, series similarity retrieval and
retrieval-augmented chat.

Components (leaves first):
- SeriesStore: ingested observations
- AnalysisEngine: trend / volatility / anomaly / summary reports
- VectorIndex: series embeddings, cosine k-NN
- RetrievalOrchestrator: embed -> retrieve -> compose -> generate -> record
"""

from .errors import (
    ErrorKind,
    CoreError,
    NotFoundError,
    InvalidSeriesError,
    InsufficientDataError,
    DimensionMismatchError,
    EmptyIndexError,
    EmbeddingUnavailableError,
    GenerationUnavailableError,
)
from .series import Observation, Series, SeriesStore, refresh_series
from .analysis import AnalysisEngine, AnalysisReport, ReportKind
from .vectors import VectorEntry, VectorIndex, VectorMatch
from .chat import ChatSession, ChatTurn, RetrievalOrchestrator, SessionStore, TurnState
from .indexing import SeriesIndexer
from .persistence import Repositories
from .core import EconCore, build_core

__version__ = "0.1.0"

__all__ = [
    # Errors
    "ErrorKind",
    "CoreError",
    "NotFoundError",
    "InvalidSeriesError",
    "InsufficientDataError",
    "DimensionMismatchError",
    "EmptyIndexError",
    "EmbeddingUnavailableError",
    "GenerationUnavailableError",
    # Components
    "Observation",
    "Series",
    "SeriesStore",
    "refresh_series",
    "AnalysisEngine",
    "AnalysisReport",
    "ReportKind",
    "VectorEntry",
    "VectorIndex",
    "VectorMatch",
    "ChatSession",
    "ChatTurn",
    "RetrievalOrchestrator",
    "SessionStore",
    "TurnState",
    "SeriesIndexer",
    "Repositories",
    # Wiring
    "EconCore",
    "build_core",
]
