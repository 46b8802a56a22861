# FILE: econrag/persistence/sqlalchemy_repo.py
"""
SQLAlchemy-backed repository.

Session-per-call: each operation opens a fresh session from the factory,
commits, and closes it, so a failed write never poisons later calls.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from econrag.persistence.models import DocumentRecord

logger = logging.getLogger(__name__)


class SqlAlchemyRepository:
    def __init__(self, session_factory, collection: str):
        self._session_factory = session_factory
        self.collection = collection

    def save(self, record_id: str, record: Dict[str, Any]) -> None:
        payload = json.dumps(record, sort_keys=True)
        db = self._session_factory()
        try:
            row = db.query(DocumentRecord).filter(
                DocumentRecord.collection == self.collection,
                DocumentRecord.record_id == record_id,
            ).first()
            if row is None:
                row = DocumentRecord(collection=self.collection, record_id=record_id, document=payload)
                db.add(row)
            else:
                row.document = payload
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("[persistence] save failed for %s/%s: %s", self.collection, record_id, exc)
            raise
        finally:
            db.close()

    def find_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        db = self._session_factory()
        try:
            row = db.query(DocumentRecord).filter(
                DocumentRecord.collection == self.collection,
                DocumentRecord.record_id == record_id,
            ).first()
            return json.loads(row.document) if row is not None else None
        finally:
            db.close()

    def find_all(self) -> List[Dict[str, Any]]:
        db = self._session_factory()
        try:
            rows = db.query(DocumentRecord).filter(
                DocumentRecord.collection == self.collection,
            ).order_by(DocumentRecord.id).all()
            return [json.loads(row.document) for row in rows]
        finally:
            db.close()
