# FILE: econrag/persistence/base.py
"""
Repository contract and the in-memory adapter.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class Repository(Protocol):
    """Document store keyed by record id, one instance per collection."""

    def save(self, record_id: str, record: Dict[str, Any]) -> None: ...

    def find_by_id(self, record_id: str) -> Optional[Dict[str, Any]]: ...

    def find_all(self) -> List[Dict[str, Any]]: ...


class InMemoryRepository:
    """Thread-safe dict-backed repository. Documents are deep-copied in and out."""

    def __init__(self, collection: str = "default"):
        self.collection = collection
        self._lock = threading.Lock()
        self._records: Dict[str, Dict[str, Any]] = {}

    def save(self, record_id: str, record: Dict[str, Any]) -> None:
        with self._lock:
            self._records[record_id] = copy.deepcopy(record)

    def find_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._records.get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def find_all(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._records.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


@dataclass
class Repositories:
    """One repository per persisted entity."""
    series: Repository
    reports: Repository
    vectors: Repository
    sessions: Repository

    @classmethod
    def in_memory(cls) -> "Repositories":
        return cls(
            series=InMemoryRepository("series"),
            reports=InMemoryRepository("analysis_reports"),
            vectors=InMemoryRepository("vector_entries"),
            sessions=InMemoryRepository("chat_sessions"),
        )

    @classmethod
    def sqlalchemy(cls, session_factory) -> "Repositories":
        from econrag.persistence.sqlalchemy_repo import SqlAlchemyRepository

        return cls(
            series=SqlAlchemyRepository(session_factory, "series"),
            reports=SqlAlchemyRepository(session_factory, "analysis_reports"),
            vectors=SqlAlchemyRepository(session_factory, "vector_entries"),
            sessions=SqlAlchemyRepository(session_factory, "chat_sessions"),
        )
