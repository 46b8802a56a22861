"""
Caller-side refresh: fetch from a series data provider with backoff, then ingest.

Network / rate-limit failures from the provider are retried with
exponential backoff. InvalidSeries from the store is caller misuse and
is raised immediately.
"""

import logging
import time
from typing import Callable

from econrag.providers.base import SeriesDataProvider
from econrag.series.store import Series, SeriesStore

logger = logging.getLogger(__name__)

REFRESH_MAX_ATTEMPTS = 3
REFRESH_INITIAL_BACKOFF = 0.5  # seconds
REFRESH_MAX_BACKOFF = 8.0  # seconds


def refresh_series(
    store: SeriesStore,
    provider: SeriesDataProvider,
    series_id: str,
    *,
    max_attempts: int = REFRESH_MAX_ATTEMPTS,
    initial_backoff: float = REFRESH_INITIAL_BACKOFF,
    max_backoff: float = REFRESH_MAX_BACKOFF,
    sleep: Callable[[float], None] = time.sleep,
) -> Series:
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    backoff = initial_backoff
    for attempt in range(1, max_attempts + 1):
        try:
            observations = provider.fetch(series_id)
            break
        except Exception as exc:
            if attempt == max_attempts:
                logger.warning(
                    "[series] fetch %s failed after %d attempts: %s", series_id, attempt, exc
                )
                raise
            logger.warning(
                "[series] fetch %s failed (attempt %d/%d), retrying in %.2fs: %s",
                series_id, attempt, max_attempts, backoff, exc,
            )
            sleep(backoff)
            backoff = min(backoff * 2, max_backoff)

    return store.ingest(series_id, observations)
