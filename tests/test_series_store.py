"""
Tests for econrag/series/store.py
SeriesStore - normalization, full-refresh ingest, per-id serialization.
"""

import threading
from datetime import date, datetime, timezone

import pytest

from conftest import StepClock, monthly
from econrag.errors import ErrorKind, InvalidSeriesError, NotFoundError
from econrag.persistence.base import InMemoryRepository
from econrag.series.store import Series, SeriesStore, normalize_observations


class TestNormalization:
    """Sorting, de-duplication and missing-value handling."""

    def test_sorts_by_timestamp(self):
        obs = normalize_observations([("2020-03-01", 3), ("2020-01-01", 1), ("2020-02-01", 2)])
        assert [o.value for o in obs] == [1.0, 2.0, 3.0]

    def test_duplicate_timestamp_keeps_last_value(self):
        obs = normalize_observations([("2020-01-01", 1), ("2020-02-01", 2), ("2020-01-01", 9)])
        assert [o.value for o in obs] == [9.0, 2.0]

    def test_fred_missing_markers_dropped(self):
        obs = normalize_observations([
            ("2020-01-01", "."),
            ("2020-02-01", ""),
            ("2020-03-01", None),
            ("2020-04-01", float("nan")),
            ("2020-05-01", "4.5"),
        ])
        assert len(obs) == 1
        assert obs[0].value == 4.5

    def test_accepts_dates_datetimes_and_dicts(self):
        obs = normalize_observations([
            (date(2020, 1, 1), 1),
            (datetime(2020, 2, 1, 12, 0), 2),
            {"date": "2020-03-01", "value": "3"},
        ])
        assert len(obs) == 3
        assert all(o.timestamp.tzinfo is not None for o in obs)

    def test_naive_and_utc_timestamps_collapse(self):
        obs = normalize_observations([
            (datetime(2020, 1, 1), 1),
            (datetime(2020, 1, 1, tzinfo=timezone.utc), 2),
        ])
        assert len(obs) == 1
        assert obs[0].value == 2.0

    def test_non_numeric_value_is_invalid(self):
        with pytest.raises(InvalidSeriesError) as exc_info:
            normalize_observations([("2020-01-01", "abc")])
        assert exc_info.value.kind == ErrorKind.INVALID_SERIES

    def test_bad_timestamp_is_invalid(self):
        with pytest.raises(InvalidSeriesError):
            normalize_observations([("not-a-date", 1.0)])

    def test_infinite_value_is_invalid(self):
        with pytest.raises(InvalidSeriesError):
            normalize_observations([("2020-01-01", float("inf"))])

    def test_non_pair_is_invalid(self):
        with pytest.raises(InvalidSeriesError):
            normalize_observations([("2020-01-01", 1.0, "extra")])


class TestIngest:
    """ingest / get / list."""

    def test_ingest_then_get(self, store):
        series = store.ingest("UNRATE", monthly([3.5, 3.6, 3.7]))
        assert store.get("UNRATE") is series
        assert series.values == [3.5, 3.6, 3.7]

    def test_get_missing_raises_not_found(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            store.get("NOPE")
        assert exc_info.value.kind == ErrorKind.NOT_FOUND

    def test_reingest_replaces_wholesale(self, store):
        store.ingest("UNRATE", monthly([1, 2, 3, 4]))
        store.ingest("UNRATE", monthly([9, 8]))
        assert store.get("UNRATE").values == [9.0, 8.0]

    def test_list_returns_all_ids(self, store):
        store.ingest("GDP", monthly([1, 2]))
        store.ingest("CPIAUCSL", monthly([1, 2]))
        assert store.list() == ["CPIAUCSL", "GDP"]

    def test_empty_id_rejected(self, store):
        with pytest.raises(InvalidSeriesError):
            store.ingest("  ", monthly([1]))

    def test_invalid_payload_leaves_previous_series(self, store):
        original = store.ingest("UNRATE", monthly([1, 2]))
        with pytest.raises(InvalidSeriesError):
            store.ingest("UNRATE", [("2020-01-01", "bad")])
        assert store.get("UNRATE") is original

    def test_fetched_at_strictly_advances(self):
        fixed = datetime(2024, 1, 1, tzinfo=timezone.utc)
        store = SeriesStore(clock=lambda: fixed)
        first = store.ingest("UNRATE", monthly([1, 2]))
        second = store.ingest("UNRATE", monthly([1, 2]))
        assert second.fetched_at > first.fetched_at

    def test_empty_observations_allowed(self, store):
        series = store.ingest("EMPTY", [])
        assert len(series) == 0


class TestPersistence:
    """Write-through and hydrate."""

    def test_ingest_writes_through(self):
        repo = InMemoryRepository("series")
        store = SeriesStore(repo, clock=StepClock())
        store.ingest("UNRATE", monthly([1, 2]))
        record = repo.find_by_id("UNRATE")
        assert record["series_id"] == "UNRATE"
        assert len(record["observations"]) == 2

    def test_hydrate_restores_series(self):
        repo = InMemoryRepository("series")
        SeriesStore(repo, clock=StepClock()).ingest("UNRATE", monthly([1, 2, 3]))

        restored = SeriesStore(repo)
        assert restored.hydrate() == 1
        assert restored.get("UNRATE").values == [1.0, 2.0, 3.0]

    def test_round_trip_dict(self, store):
        series = store.ingest("UNRATE", monthly([1.5, 2.5]))
        assert Series.from_dict(series.to_dict()) == series


class TestConcurrentIngest:
    """Same-id ingests serialize; result equals exactly one input."""

    def test_same_id_last_writer_wins_without_mixing(self, store):
        a = monthly([1.0] * 200)
        b = monthly([2.0] * 150, start_year=2030)
        barrier = threading.Barrier(2)

        def worker(payload):
            barrier.wait()
            for _ in range(20):
                store.ingest("RACE", payload)

        threads = [threading.Thread(target=worker, args=(p,)) for p in (a, b)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        values = store.get("RACE").values
        assert values == [1.0] * 200 or values == [2.0] * 150

    def test_different_ids_independent(self, store):
        threads = [
            threading.Thread(target=store.ingest, args=(f"S{i}", monthly([i, i + 1])))
            for i in range(10)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(store.list()) == 10
