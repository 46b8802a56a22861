"""
Tests for econrag/core.py
build_core wiring and the synchronous surfaces.
"""

import pytest

from conftest import EchoGenerator, KeywordEmbedder, StepClock, monthly
from econrag import build_core
from econrag.analysis.reports import ReportKind
from econrag.chat.schemas import TurnState
from econrag.config import OrchestratorConfig
from econrag.db import init_db, make_engine, make_session_factory
from econrag.errors import NotFoundError
from econrag.persistence.base import Repositories


class SeriesAwareEmbedder(KeywordEmbedder):
    """Treats series ids as their topic keyword so descriptions embed meaningfully."""

    def embed(self, text):
        lowered = text.lower().replace("unrate", "unemployment").replace("cpiaucsl", "inflation")
        return super().embed(lowered)


@pytest.fixture
def repos():
    return Repositories.in_memory()


@pytest.fixture
def core(repos):
    return build_core(
        SeriesAwareEmbedder(),
        EchoGenerator(),
        repositories=repos,
        config=OrchestratorConfig(embed_timeout_seconds=1.0, generation_timeout_seconds=1.0),
        clock=StepClock(),
    )


class TestSyncSurfaces:

    def test_ingest_and_analyze(self, core):
        core.ingest_series("UNRATE", monthly([1.0, 2.0, 3.0]))
        report = core.run_analysis("UNRATE", "trend")
        assert report.kind == ReportKind.TREND
        assert report.payload["slope"] == pytest.approx(1.0)

    def test_upsert_and_search(self, core):
        core.upsert_vector("A", [1.0, 0.0])
        core.upsert_vector("B", [0.0, 1.0])
        assert core.search_vectors([0.0, 1.0], 1)[0].series_id == "B"

    def test_end_to_end_chat(self, core):
        core.ingest_series("UNRATE", monthly([3.5, 3.7, 3.9]))
        core.ingest_series("CPIAUCSL", monthly([300.0, 301.0, 302.0]))
        core.index_series("UNRATE")
        core.index_series("CPIAUCSL")

        turn = core.submit_chat_turn("s1", "What is unemployment doing?")
        assert turn.state == TurnState.COMPLETED
        assert turn.context_series_ids[0] == "UNRATE"
        assert core.get_session("s1").turns[-1] == turn

    def test_unknown_session(self, core):
        with pytest.raises(NotFoundError):
            core.get_session("nope")

    def test_components_share_state(self, core):
        core.ingest_series("UNRATE", monthly([1.0, 2.0]))
        assert core.engine.analyze("UNRATE", "volatility").series_id == "UNRATE"
        assert core.series.list() == ["UNRATE"]


class TestHydrate:

    def test_warm_start_from_repositories(self, core, repos):
        core.ingest_series("UNRATE", monthly([3.5, 3.7, 3.9]))
        core.run_analysis("UNRATE", "summary")
        core.index_series("UNRATE")
        core.submit_chat_turn("s1", "unemployment?")

        fresh = build_core(SeriesAwareEmbedder(), EchoGenerator(), repositories=repos)
        counts = fresh.hydrate()

        assert counts == {"series": 1, "reports": 4, "vectors": 1, "sessions": 1}
        assert fresh.search_vectors([1.0, 0.0, 0.0, 0.0], 1)[0].series_id == "UNRATE"
        assert len(fresh.get_session("s1").turns) == 1

    def test_warm_start_from_database(self):
        engine = make_engine("sqlite:///:memory:")
        init_db(engine)
        repos = Repositories.sqlalchemy(make_session_factory(engine))

        core = build_core(SeriesAwareEmbedder(), EchoGenerator(), repositories=repos, clock=StepClock())
        core.ingest_series("UNRATE", monthly([3.5, 3.7, 3.9]))
        core.index_series("UNRATE")

        fresh = build_core(SeriesAwareEmbedder(), EchoGenerator(), repositories=repos)
        counts = fresh.hydrate()
        assert counts["series"] == 1
        assert counts["vectors"] == 1
        assert fresh.index.dimension == 4
