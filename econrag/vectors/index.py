# FILE: econrag/vectors/index.py
"""
VectorIndex: series embeddings with cosine k-nearest-neighbour search.

DIMENSION:
D is fixed by the first successful upsert and never changes for the life
of the index. Any vector (stored or query) of another length fails with
DimensionMismatch and leaves the index untouched.

SIMILARITY:
Dot product of L2-normalized vectors. Unit vectors are computed once at
upsert time on a copy (inputs are never mutated). A zero-magnitude vector
scores 0 against everything.

CONCURRENCY:
Upserts for the same series id serialize on a per-id lock. Entries are
immutable and swapped in under the index lock, so a search works on a
consistent snapshot and never sees a partially written vector.
When a repository is configured an entry is saved before it becomes
visible; a failed save leaves the index (and D) as it was.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from econrag.config import MAX_TOP_K
from econrag.errors import DimensionMismatchError, EmptyIndexError, NotFoundError
from econrag.locks import KeyedLocks
from econrag.persistence.base import Repository
from econrag.series.store import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VectorEntry:
    series_id: str
    vector: Tuple[float, ...]
    upserted_at: datetime
    sequence: int = 0
    unit: np.ndarray = field(default=None, compare=False, repr=False)

    @property
    def dimension(self) -> int:
        return len(self.vector)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "series_id": self.series_id,
            "vector": list(self.vector),
            "upserted_at": self.upserted_at.isoformat(),
            "sequence": self.sequence,
        }


@dataclass(frozen=True)
class VectorMatch:
    series_id: str
    similarity: float
    upserted_at: datetime


# ============ VECTOR HELPERS ============

def _as_array(vector: Sequence[float]) -> np.ndarray:
    try:
        arr = np.array(vector, dtype=float)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"vector must be a sequence of numbers: {exc}") from exc
    if arr.ndim != 1:
        raise ValueError(f"vector must be one-dimensional, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError("vector contains NaN or infinite components")
    return arr


def l2_normalize(arr: np.ndarray) -> np.ndarray:
    """Unit-length copy of arr; a zero vector stays zero."""
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        return np.zeros_like(arr, dtype=float)
    return arr / norm


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0 when either has zero magnitude."""
    if len(vec_a) != len(vec_b):
        raise DimensionMismatchError(f"cannot compare vectors of length {len(vec_a)} and {len(vec_b)}")
    a = l2_normalize(_as_array(vec_a))
    b = l2_normalize(_as_array(vec_b))
    return float(np.clip(np.dot(a, b), -1.0, 1.0))


class VectorIndex:
    def __init__(
        self,
        repository: Optional[Repository] = None,
        clock: Callable[[], datetime] = utcnow,
        max_top_k: int = MAX_TOP_K,
    ):
        self._repository = repository
        self._clock = clock
        self._max_top_k = max_top_k

        self._lock = threading.Lock()
        self._key_locks = KeyedLocks()
        self._entries: Dict[str, VectorEntry] = {}
        self._dimension: Optional[int] = None
        self._sequence = 0
        self._pending = 0

    @property
    def dimension(self) -> Optional[int]:
        """D, or None until the first successful upsert."""
        return self._dimension

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ============ WRITE ============

    def upsert(self, series_id: str, vector: Sequence[float]) -> VectorEntry:
        if not series_id:
            raise ValueError("series id must be a non-empty string")
        arr = _as_array(vector)
        with self._key_locks.hold(series_id):
            entry = self._reserve(series_id, arr, self._clock())
            # Persist before publishing; a failed save leaves the index as it was
            try:
                if self._repository is not None:
                    self._repository.save(series_id, entry.to_dict())
            except Exception:
                self._release()
                raise
            self._commit(entry)
        logger.debug("[vectors] upserted %s (dim=%d)", series_id, entry.dimension)
        return entry

    def _reserve(self, series_id: str, arr: np.ndarray, upserted_at: datetime) -> VectorEntry:
        """Validate against D (fixing it if unset) and build the entry without publishing it."""
        unit = l2_normalize(arr)
        unit.flags.writeable = False
        with self._lock:
            if arr.size == 0:
                raise DimensionMismatchError("vector must have at least one component")
            if self._dimension is not None and arr.size != self._dimension:
                raise DimensionMismatchError(
                    f"vector for {series_id!r} has dimension {arr.size}, index dimension is {self._dimension}"
                )
            if self._dimension is None:
                self._dimension = int(arr.size)
                logger.info("[vectors] index dimension fixed at %d", self._dimension)
            self._pending += 1
            self._sequence += 1
            return VectorEntry(
                series_id=series_id,
                vector=tuple(float(x) for x in arr),
                upserted_at=upserted_at,
                sequence=self._sequence,
                unit=unit,
            )

    def _commit(self, entry: VectorEntry) -> None:
        with self._lock:
            self._pending -= 1
            self._entries[entry.series_id] = entry

    def _release(self) -> None:
        with self._lock:
            self._pending -= 1
            # D only sticks once a vector has actually been stored
            if not self._entries and self._pending == 0 and self._dimension is not None:
                logger.info("[vectors] index dimension %d released", self._dimension)
                self._dimension = None

    # ============ READ ============

    def search(self, query: Sequence[float], k: int) -> List[VectorMatch]:
        """Top-k entries by cosine similarity, ties broken by most recent upsert."""
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        k = min(k, self._max_top_k)
        q = _as_array(query)

        with self._lock:
            dimension = self._dimension
            snapshot = list(self._entries.values())

        if dimension is not None and q.size != dimension:
            raise DimensionMismatchError(
                f"query has dimension {q.size}, index dimension is {dimension}"
            )
        if not snapshot:
            raise EmptyIndexError("vector index is empty")

        unit_q = l2_normalize(q)
        matrix = np.vstack([entry.unit for entry in snapshot])
        similarities = np.clip(matrix @ unit_q, -1.0, 1.0)

        scored = sorted(
            zip(snapshot, (float(s) for s in similarities)),
            key=lambda pair: (pair[1], pair[0].upserted_at, pair[0].sequence),
            reverse=True,
        )
        return [
            VectorMatch(series_id=entry.series_id, similarity=sim, upserted_at=entry.upserted_at)
            for entry, sim in scored[:k]
        ]

    def get(self, series_id: str) -> VectorEntry:
        with self._lock:
            entry = self._entries.get(series_id)
        if entry is None:
            raise NotFoundError(f"no vector for series {series_id!r}")
        return entry

    def list(self) -> List[VectorEntry]:
        with self._lock:
            entries = list(self._entries.values())
        return sorted(entries, key=lambda e: e.series_id)

    def hydrate(self) -> int:
        """
        Reload persisted entries; the first one loaded fixes D.

        An entry already in memory is only replaced by a persisted one
        that was upserted later.
        """
        if self._repository is None:
            return 0
        records = sorted(self._repository.find_all(), key=lambda r: r.get("sequence", 0))
        count = 0
        for record in records:
            series_id = record["series_id"]
            upserted_at = datetime.fromisoformat(record["upserted_at"])
            with self._key_locks.hold(series_id):
                with self._lock:
                    current = self._entries.get(series_id)
                if current is not None and current.upserted_at >= upserted_at:
                    continue
                entry = self._reserve(series_id, _as_array(record["vector"]), upserted_at)
                self._commit(entry)
            count += 1
        logger.info("[vectors] hydrated %d entries", count)
        return count
