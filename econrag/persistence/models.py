"""
SQLAlchemy model for persisted core documents.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, UniqueConstraint

from econrag.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentRecord(Base):
    """
    One JSON document per (collection, record_id).

    collection: "series", "analysis_reports", "vector_entries", "chat_sessions"
    record_id: series id, report id or session id
    document: JSON-encoded record as produced by the entity's to_dict()
    """
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    collection = Column(String(50), nullable=False, index=True)
    record_id = Column(String(255), nullable=False)
    document = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("collection", "record_id", name="uq_documents_collection_record"),
    )
