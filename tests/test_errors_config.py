"""
Tests for econrag/errors.py, econrag/config.py and econrag/locks.py
"""

import pytest

from econrag.config import OrchestratorConfig
from econrag.errors import CoreError, ErrorKind, GenerationUnavailableError, NotFoundError
from econrag.locks import KeyedLocks


class TestErrors:

    def test_kind_and_message(self):
        err = NotFoundError("series 'X' not found")
        assert err.kind == ErrorKind.NOT_FOUND
        assert str(err) == "NotFound: series 'X' not found"
        assert isinstance(err, CoreError)

    def test_cause_kept(self):
        cause = TimeoutError()
        err = GenerationUnavailableError("gave up", cause=cause)
        assert err.cause is cause

    def test_kind_values_are_strings(self):
        assert ErrorKind("EmptyIndex") is ErrorKind.EMPTY_INDEX


class TestOrchestratorConfig:

    def test_defaults(self):
        cfg = OrchestratorConfig()
        assert cfg.top_k >= 1
        assert cfg.context_budget_unit in ("chars", "tokens")
        assert cfg.fallback_response

    @pytest.mark.parametrize(
        "kwargs",
        [{"top_k": 0}, {"context_budget_unit": "bytes"}, {"max_retries": -1}],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            OrchestratorConfig(**kwargs)


class TestKeyedLocks:

    def test_one_lock_per_key(self):
        locks = KeyedLocks()
        with locks.hold("a"):
            with locks.hold("b"):
                pass
        with locks.hold("a"):
            pass
        assert len(locks) == 2
