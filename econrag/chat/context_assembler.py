"""
Context assembler.

Assembles retrieved series summaries into generator context within a
budget. Lowest-similarity items are dropped first; a single item that is
still over budget is clipped.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from econrag.config import CONTEXT_BUDGET, CONTEXT_BUDGET_UNIT

# Rough token estimate per whitespace-separated word
TOKENS_PER_WORD = 1.3


@dataclass(frozen=True)
class ContextItem:
    series_id: str
    similarity: float
    report_id: str
    text: str


@dataclass
class AssembledContext:
    """Assembled context for the generator."""
    text: str
    items: List[ContextItem]
    size: int
    truncated: bool
    dropped: List[str] = field(default_factory=list)

    @property
    def series_ids(self) -> List[str]:
        return [item.series_id for item in self.items]

    @property
    def report_ids(self) -> List[str]:
        return [item.report_id for item in self.items]


class ContextAssembler:
    """Assemble context items under a character or token budget."""

    def __init__(self, budget: int = CONTEXT_BUDGET, unit: str = CONTEXT_BUDGET_UNIT):
        if budget < 0:
            raise ValueError(f"budget must be >= 0, got {budget}")
        if unit not in ("chars", "tokens"):
            raise ValueError(f"unit must be 'chars' or 'tokens', got {unit!r}")
        self.budget = budget
        self.unit = unit

    def assemble(self, items: Sequence[ContextItem]) -> AssembledContext:
        ordered = sorted(items, key=lambda item: item.similarity, reverse=True)
        if not ordered:
            return AssembledContext(text="", items=[], size=0, truncated=False)

        blocks = [self._format_item(item) for item in ordered]
        kept = len(blocks)
        while kept > 1 and self.measure(self._join(blocks[:kept])) > self.budget:
            kept -= 1

        truncated = kept < len(blocks)
        dropped = [item.series_id for item in ordered[kept:]]
        included = list(ordered[:kept])
        text = self._join(blocks[:kept])

        if self.measure(text) > self.budget:
            # Only the top item is left and it is still too large
            text = self._clip(text, self.budget)
            truncated = True
            if not text.strip():
                dropped = [item.series_id for item in ordered]
                included = []
                text = ""

        return AssembledContext(
            text=text,
            items=included,
            size=self.measure(text),
            truncated=truncated,
            dropped=dropped,
        )

    def measure(self, text: str) -> int:
        if self.unit == "tokens":
            return int(len(text.split()) * TOKENS_PER_WORD)
        return len(text)

    def _clip(self, text: str, budget: int) -> str:
        if self.unit == "tokens":
            keep = int(budget / TOKENS_PER_WORD)
            return " ".join(text.split()[:keep])
        return text[:budget]

    def _format_item(self, item: ContextItem) -> str:
        return f"[{item.series_id}] (similarity {item.similarity:.3f})\n{item.text.strip()}\n"

    def _join(self, blocks: Sequence[str]) -> str:
        return "\n".join(blocks)
