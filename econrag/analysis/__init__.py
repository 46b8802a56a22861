"""
Time-series analysis: numerical kernels and the cached AnalysisEngine.
"""

from .reports import AnalysisReport, ReportKind
from .engine import AnalysisEngine, compose_summary

__all__ = [
    "AnalysisReport",
    "ReportKind",
    "AnalysisEngine",
    "compose_summary",
]
