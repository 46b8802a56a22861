"""
Series ingestion and storage.
"""

from .schemas import Observation
from .store import Series, SeriesStore, normalize_observations
from .refresh import refresh_series

__all__ = [
    "Observation",
    "Series",
    "SeriesStore",
    "normalize_observations",
    "refresh_series",
]
