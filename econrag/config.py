# FILE: econrag/config.py
"""
econrag configuration.

All tunables in one place for easy adjustment. Values come from the
environment (ECONRAG_* variables); a local .env file is loaded first.

Consumers receive these through constructor parameters (see
OrchestratorConfig and econrag.core.build_core); nothing reads them
at call time.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


# ============================================================================
# PERSISTENCE
# ============================================================================

# Override with ECONRAG_DATABASE_URL if needed
DATABASE_URL: str = os.getenv("ECONRAG_DATABASE_URL", "sqlite:///./data/econrag.db")

# ============================================================================
# ANALYSIS
# ============================================================================

# |z| strictly above this flags an observation
ANOMALY_Z_THRESHOLD: float = _env_float("ECONRAG_ANOMALY_Z_THRESHOLD", 2.0)

# Highest polynomial order fitted in trend reports (capped at n - 1 per series)
POLYNOMIAL_MAX_ORDER: int = _env_int("ECONRAG_POLYNOMIAL_MAX_ORDER", 10)

# ============================================================================
# RETRIEVAL
# ============================================================================

RETRIEVAL_TOP_K: int = _env_int("ECONRAG_RETRIEVAL_TOP_K", 5)
MAX_TOP_K: int = 50

# Budget for the retrieved-series block of the context. Replayed history
# is clipped separately and is not counted against it.
# Unit is "chars" or "tokens" (tokens estimated as words * 1.3)
CONTEXT_BUDGET: int = _env_int("ECONRAG_CONTEXT_BUDGET", 4000)
CONTEXT_BUDGET_UNIT: str = os.getenv("ECONRAG_CONTEXT_BUDGET_UNIT", "chars")

# Prior turns of the session replayed to the generator
HISTORY_TURNS: int = _env_int("ECONRAG_HISTORY_TURNS", 3)

# ============================================================================
# PROVIDERS
# ============================================================================

EMBED_TIMEOUT_SECONDS: float = _env_float("ECONRAG_EMBED_TIMEOUT", 10.0)
GENERATION_TIMEOUT_SECONDS: float = _env_float("ECONRAG_GENERATION_TIMEOUT", 60.0)

# Extra attempts after the first failed provider call
PROVIDER_MAX_RETRIES: int = _env_int("ECONRAG_PROVIDER_MAX_RETRIES", 1)

GENERATION_MODEL: str = os.getenv("ECONRAG_GENERATION_MODEL", "gpt-4.1-mini")

SYSTEM_INSTRUCTION: str = (
    "You are an economic data analyst. Answer the user's question using the "
    "series analyses provided as context. Cite series by the identifier shown "
    "in square brackets, e.g. [UNRATE]. If the context does not cover the "
    "question, say so plainly."
)

FALLBACK_RESPONSE: str = "unable to generate a response at this time"


@dataclass
class OrchestratorConfig:
    """Per-turn tunables for RetrievalOrchestrator."""
    top_k: int = RETRIEVAL_TOP_K
    context_budget: int = CONTEXT_BUDGET
    context_budget_unit: str = CONTEXT_BUDGET_UNIT
    history_turns: int = HISTORY_TURNS
    embed_timeout_seconds: float = EMBED_TIMEOUT_SECONDS
    generation_timeout_seconds: float = GENERATION_TIMEOUT_SECONDS
    max_retries: int = PROVIDER_MAX_RETRIES
    fallback_response: str = FALLBACK_RESPONSE

    def __post_init__(self):
        if self.top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {self.top_k}")
        if self.context_budget_unit not in ("chars", "tokens"):
            raise ValueError(
                f"context_budget_unit must be 'chars' or 'tokens', got {self.context_budget_unit!r}"
            )
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
