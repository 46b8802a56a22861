# FILE: econrag/series/store.py
"""
SeriesStore: holds ingested time series.

Full-refresh semantics: ingest() replaces the stored series for an id
wholesale. Normalization on insert:
1. Drop FRED missing-value markers ("." / "" / None / NaN)
2. Validate each pair through Observation (bad timestamp or value -> InvalidSeries)
3. Sort by timestamp, keep the LAST value given for a repeated timestamp

Same-id ingests serialize on a per-id lock (last writer wins); Series is
immutable, so readers never observe a partial series.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from econrag.errors import InvalidSeriesError, NotFoundError
from econrag.locks import KeyedLocks
from econrag.persistence.base import Repository
from econrag.series.schemas import Observation

logger = logging.getLogger(__name__)

# FRED reports missing observations as "."
MISSING_MARKERS = {".", ""}

_EPSILON = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Series:
    series_id: str
    observations: Tuple[Observation, ...]
    fetched_at: datetime

    @property
    def values(self) -> List[float]:
        return [obs.value for obs in self.observations]

    @property
    def timestamps(self) -> List[datetime]:
        return [obs.timestamp for obs in self.observations]

    def __len__(self) -> int:
        return len(self.observations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "series_id": self.series_id,
            "observations": [
                [obs.timestamp.isoformat(), obs.value] for obs in self.observations
            ],
            "fetched_at": self.fetched_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Series":
        return cls(
            series_id=data["series_id"],
            observations=tuple(
                Observation(timestamp=ts, value=value) for ts, value in data.get("observations", [])
            ),
            fetched_at=datetime.fromisoformat(data["fetched_at"]),
        )


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and value.strip() in MISSING_MARKERS:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def _unpack(raw: Any) -> Tuple[Any, Any]:
    if isinstance(raw, Observation):
        return raw.timestamp, raw.value
    if isinstance(raw, dict):
        ts = raw.get("timestamp", raw.get("date"))
        return ts, raw.get("value")
    try:
        ts, value = raw
    except (TypeError, ValueError) as exc:
        raise InvalidSeriesError(f"observation is not a (timestamp, value) pair: {raw!r}", cause=exc)
    return ts, value


def normalize_observations(raw_observations: Iterable[Any]) -> Tuple[Observation, ...]:
    """Validate, sort and de-duplicate observations (last value wins per timestamp)."""
    by_timestamp: Dict[datetime, Observation] = {}
    dropped = 0
    for raw in raw_observations:
        ts, value = _unpack(raw)
        if _is_missing(value):
            dropped += 1
            continue
        try:
            obs = Observation(timestamp=ts, value=value)
        except ValidationError as exc:
            raise InvalidSeriesError(f"invalid observation ({ts!r}, {value!r})", cause=exc)
        by_timestamp[obs.timestamp] = obs

    if dropped:
        logger.debug("[series] dropped %d missing observations", dropped)

    ordered = tuple(by_timestamp[ts] for ts in sorted(by_timestamp))
    for prev, curr in zip(ordered, ordered[1:]):
        if not prev.timestamp < curr.timestamp:
            raise InvalidSeriesError("timestamps are not strictly increasing after normalization")
    return ordered


class SeriesStore:
    def __init__(
        self,
        repository: Optional[Repository] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._repository = repository
        self._clock = clock
        self._locks = KeyedLocks()
        self._series: Dict[str, Series] = {}

    def ingest(self, series_id: str, observations: Iterable[Any]) -> Series:
        if not series_id or not str(series_id).strip():
            raise InvalidSeriesError("series id must be a non-empty string")
        series_id = str(series_id).strip()

        # Validate before taking the lock; a bad payload never touches stored state
        normalized = normalize_observations(observations)

        with self._locks.hold(series_id):
            fetched_at = self._clock()
            previous = self._series.get(series_id)
            if previous is not None and fetched_at <= previous.fetched_at:
                fetched_at = previous.fetched_at + _EPSILON

            series = Series(series_id=series_id, observations=normalized, fetched_at=fetched_at)
            if self._repository is not None:
                self._repository.save(series_id, series.to_dict())
            self._series[series_id] = series

        logger.info("[series] ingested %s (%d observations)", series_id, len(normalized))
        return series

    def get(self, series_id: str) -> Series:
        series = self._series.get(series_id)
        if series is None:
            raise NotFoundError(f"series {series_id!r} not found")
        return series

    def list(self) -> List[str]:
        return sorted(self._series)

    def __contains__(self, series_id: str) -> bool:
        return series_id in self._series

    def hydrate(self) -> int:
        """Load persisted series; returns the number loaded."""
        if self._repository is None:
            return 0
        count = 0
        for record in self._repository.find_all():
            series = Series.from_dict(record)
            with self._locks.hold(series.series_id):
                current = self._series.get(series.series_id)
                if current is None or current.fetched_at < series.fetched_at:
                    self._series[series.series_id] = series
                    count += 1
        logger.info("[series] hydrated %d series", count)
        return count
