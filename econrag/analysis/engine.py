# FILE: econrag/analysis/engine.py
"""
AnalysisEngine: statistical reports over stored series.

Kinds:
- trend: OLS slope / intercept / R^2 against observation index
         plus polynomial fits of order 1..10 (capped at n - 1), a
         logarithmic fit against ln(index + 1) and the percent-change
         regression when defined
- volatility: mean and population standard deviation
- anomaly: z-score per observation, flagged when |z| > threshold
- summary: human-readable composition of the three above

CACHING:
Reports are memoized per (series_id, kind, series.fetched_at). A repeat
call before the series is re-ingested returns the identical current
report object. A newer ingest recomputes; the previous report moves to
history and is never mutated.

SINGLE-FLIGHT:
At most one computation runs per key. The first caller registers a
concurrent.futures.Future in the in-flight map (guarded by one lock) and
computes; concurrent callers for the same key block on that future.
A failed computation is delivered to every waiter and is not cached.
"""

from __future__ import annotations

import bisect
import logging
import threading
from concurrent.futures import Future
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from econrag.analysis import stats
from econrag.analysis.reports import REGRESSION_KINDS, AnalysisReport, ReportKind
from econrag.config import ANOMALY_Z_THRESHOLD, POLYNOMIAL_MAX_ORDER
from econrag.errors import InsufficientDataError, NotFoundError
from econrag.persistence.base import Repository
from econrag.series.store import Series, SeriesStore, utcnow

logger = logging.getLogger(__name__)

_ReportKey = Tuple[str, ReportKind]
_FlightKey = Tuple[str, ReportKind, datetime]


def _history_order(report: AnalysisReport) -> Tuple[datetime, datetime]:
    return report.series_fetched_at, report.created_at


def _fmt(value: Optional[float], digits: int = 4) -> str:
    if value is None:
        return "n/a"
    return f"{value:.{digits}g}"


class AnalysisEngine:
    def __init__(
        self,
        store: SeriesStore,
        repository: Optional[Repository] = None,
        *,
        anomaly_threshold: float = ANOMALY_Z_THRESHOLD,
        polynomial_max_order: int = POLYNOMIAL_MAX_ORDER,
        clock: Callable[[], datetime] = utcnow,
        on_compute: Optional[Callable[[str, ReportKind], None]] = None,
    ):
        if anomaly_threshold < 0:
            raise ValueError(f"anomaly_threshold must be >= 0, got {anomaly_threshold}")
        if polynomial_max_order < 1:
            raise ValueError(f"polynomial_max_order must be >= 1, got {polynomial_max_order}")
        self._store = store
        self._repository = repository
        self._clock = clock
        self._on_compute = on_compute
        self.anomaly_threshold = anomaly_threshold
        self.polynomial_max_order = polynomial_max_order

        self._lock = threading.Lock()
        self._current: Dict[_ReportKey, AnalysisReport] = {}
        self._history: Dict[_ReportKey, List[AnalysisReport]] = {}
        self._inflight: Dict[_FlightKey, Future] = {}

    # ============ PUBLIC ============

    def analyze(self, series_id: str, kind) -> AnalysisReport:
        """Current report for (series_id, kind), computing it if stale or missing."""
        kind = ReportKind(kind)
        series = self._store.get(series_id)
        return self._analyze_series(series, kind)

    def current(self, series_id: str, kind) -> AnalysisReport:
        kind = ReportKind(kind)
        with self._lock:
            report = self._current.get((series_id, kind))
        if report is None:
            raise NotFoundError(f"no {kind.value} report for series {series_id!r}")
        return report

    def history(self, series_id: str, kind) -> List[AnalysisReport]:
        """All reports ever produced for the key, oldest first."""
        kind = ReportKind(kind)
        with self._lock:
            return list(self._history.get((series_id, kind), []))

    def hydrate(self) -> int:
        """Rebuild history and current reports from the repository."""
        if self._repository is None:
            return 0
        reports = [AnalysisReport.from_dict(r) for r in self._repository.find_all()]
        reports.sort(key=lambda r: (r.series_fetched_at, r.created_at))
        with self._lock:
            for report in reports:
                key = (report.series_id, report.kind)
                self._history.setdefault(key, []).append(report)
                self._current[key] = report
        logger.info("[analysis] hydrated %d reports", len(reports))
        return len(reports)

    # ============ CACHE / SINGLE-FLIGHT ============

    def _analyze_series(self, series: Series, kind: ReportKind) -> AnalysisReport:
        key: _ReportKey = (series.series_id, kind)
        flight_key: _FlightKey = (series.series_id, kind, series.fetched_at)

        with self._lock:
            current = self._current.get(key)
            if current is not None and current.series_fetched_at >= series.fetched_at:
                return current
            future = self._inflight.get(flight_key)
            owner = future is None
            if owner:
                future = Future()
                self._inflight[flight_key] = future

        if not owner:
            logger.debug("[analysis] waiting on in-flight %s/%s", series.series_id, kind.value)
            return future.result()

        try:
            report = self._compute(series, kind)
            # Persist before publishing so a failed save leaves nothing cached
            if self._repository is not None:
                self._repository.save(report.report_id, report.to_dict())
            with self._lock:
                existing = self._current.get(key)
                if existing is None or existing.series_fetched_at <= report.series_fetched_at:
                    self._current[key] = report
                bisect.insort(self._history.setdefault(key, []), report, key=_history_order)
        except BaseException as exc:
            with self._lock:
                self._inflight.pop(flight_key, None)
            future.set_exception(exc)
            raise

        with self._lock:
            self._inflight.pop(flight_key, None)
        future.set_result(report)
        return report

    # ============ COMPUTATION ============

    def _compute(self, series: Series, kind: ReportKind) -> AnalysisReport:
        n = len(series)
        if kind in REGRESSION_KINDS and n < 2:
            raise InsufficientDataError(
                f"{kind.value} for {series.series_id!r} needs at least 2 observations, got {n}"
            )
        if n == 0:
            raise InsufficientDataError(f"series {series.series_id!r} has no observations")

        if self._on_compute is not None:
            self._on_compute(series.series_id, kind)
        logger.debug("[analysis] computing %s for %s (%d obs)", kind.value, series.series_id, n)

        if kind == ReportKind.TREND:
            payload = self._trend_payload(series)
        elif kind == ReportKind.VOLATILITY:
            payload = self._volatility_payload(series)
        elif kind == ReportKind.ANOMALY:
            payload = self._anomaly_payload(series)
        else:
            payload = self._summary_payload(series)

        return AnalysisReport(
            series_id=series.series_id,
            kind=kind,
            payload=payload,
            series_fetched_at=series.fetched_at,
            created_at=self._clock(),
        )

    def _trend_payload(self, series: Series) -> dict:
        values = series.values
        fit = stats.linear_trend(values)
        pct_fit = stats.percent_change_trend(values)
        log_fit = stats.log_trend(values)
        polys = stats.polynomial_fits(values, self.polynomial_max_order)
        return {
            "slope": fit.slope,
            "intercept": fit.intercept,
            "r_squared": fit.r_squared,
            "n": len(values),
            "pct_change_slope": pct_fit.slope if pct_fit else None,
            "pct_change_intercept": pct_fit.intercept if pct_fit else None,
            "log_slope": log_fit.slope,
            "log_intercept": log_fit.intercept,
            "log_r_squared": log_fit.r_squared,
            "polynomial_fits": [
                {"order": p.order, "coefficients": p.coefficients, "r_squared": p.r_squared}
                for p in polys
            ],
        }

    def _volatility_payload(self, series: Series) -> dict:
        mean, std = stats.volatility(series.values)
        return {"mean": mean, "std": std, "n": len(series)}

    def _anomaly_payload(self, series: Series) -> dict:
        values = series.values
        mean, std = stats.volatility(values)
        scores = stats.z_scores(values, mean, std)
        flags = stats.anomaly_flags(scores, self.anomaly_threshold)
        return {
            "mean": mean,
            "std": std,
            "threshold": self.anomaly_threshold,
            "z_scores": scores,
            "flags": flags,
            "anomaly_indices": [i for i, flagged in enumerate(flags) if flagged],
        }

    def _summary_payload(self, series: Series) -> dict:
        # Same snapshot for all three so the summary is internally consistent
        trend = self._analyze_series(series, ReportKind.TREND)
        vol = self._analyze_series(series, ReportKind.VOLATILITY)
        anomaly = self._analyze_series(series, ReportKind.ANOMALY)
        return {
            "text": compose_summary(series, trend.payload, vol.payload, anomaly.payload),
            "trend_report_id": trend.report_id,
            "volatility_report_id": vol.report_id,
            "anomaly_report_id": anomaly.report_id,
        }


def compose_summary(series: Series, trend: dict, vol: dict, anomaly: dict) -> str:
    """Plain-language summary used as retrieval context."""
    first, last = series.observations[0], series.observations[-1]
    slope = trend["slope"]
    direction = "rising" if slope > 0 else "falling" if slope < 0 else "flat"

    lines = [
        f"{series.series_id}: {len(series)} observations from "
        f"{first.timestamp.date().isoformat()} to {last.timestamp.date().isoformat()}; "
        f"latest value {_fmt(last.value)}.",
        f"Trend: {direction}, slope {_fmt(slope)} per observation, "
        f"intercept {_fmt(trend['intercept'])}, R^2 {trend['r_squared']:.3f}.",
    ]
    if trend.get("pct_change_slope") is not None:
        lines.append(
            f"Percent-change trend: slope {_fmt(trend['pct_change_slope'])} points per observation."
        )
    polys = trend.get("polynomial_fits") or []
    if len(polys) > 1:
        best = max(polys, key=lambda p: p["r_squared"])
        lines.append(
            f"Polynomial fits: best order {best['order']} with R^2 {best['r_squared']:.3f} "
            f"(log fit R^2 {trend['log_r_squared']:.3f})."
        )
    lines.append(f"Level: mean {_fmt(vol['mean'])}, standard deviation {_fmt(vol['std'])}.")

    indices = anomaly["anomaly_indices"]
    if indices:
        shown = ", ".join(
            f"{series.observations[i].timestamp.date().isoformat()} ({_fmt(series.observations[i].value)})"
            for i in indices[-3:]
        )
        lines.append(
            f"Anomalies: {len(indices)} observation(s) with |z| > {anomaly['threshold']:g}; "
            f"most recent: {shown}."
        )
    else:
        lines.append(f"Anomalies: none with |z| > {anomaly['threshold']:g}.")
    return "\n".join(lines)
