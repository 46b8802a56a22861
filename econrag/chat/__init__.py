"""
Retrieval-augmented chat: sessions, context assembly and the per-turn orchestrator.
"""

from .schemas import ChatSession, ChatTurn, TurnState
from .sessions import SessionStore
from .context_assembler import AssembledContext, ContextAssembler, ContextItem
from .orchestrator import RetrievalOrchestrator

__all__ = [
    "ChatSession",
    "ChatTurn",
    "TurnState",
    "SessionStore",
    "AssembledContext",
    "ContextAssembler",
    "ContextItem",
    "RetrievalOrchestrator",
]
