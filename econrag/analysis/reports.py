"""
Analysis report types.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict
from uuid import uuid4


class ReportKind(str, Enum):
    TREND = "trend"
    VOLATILITY = "volatility"
    ANOMALY = "anomaly"
    SUMMARY = "summary"


# Kinds that fit a regression need at least two observations
REGRESSION_KINDS = frozenset({ReportKind.TREND, ReportKind.SUMMARY})


@dataclass(frozen=True)
class AnalysisReport:
    """
    Immutable analysis result.

    series_fetched_at ties the report to the exact ingest it was computed
    from; a newer ingest supersedes it (the old report stays in history).
    """
    series_id: str
    kind: ReportKind
    payload: Dict[str, Any]
    series_fetched_at: datetime
    created_at: datetime
    report_id: str = field(default_factory=lambda: uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "series_id": self.series_id,
            "kind": self.kind.value,
            "payload": self.payload,
            "series_fetched_at": self.series_fetched_at.isoformat(),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisReport":
        return cls(
            report_id=data["report_id"],
            series_id=data["series_id"],
            kind=ReportKind(data["kind"]),
            payload=data.get("payload", {}),
            series_fetched_at=datetime.fromisoformat(data["series_fetched_at"]),
            created_at=datetime.fromisoformat(data["created_at"]),
        )
