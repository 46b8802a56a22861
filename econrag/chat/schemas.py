# FILE: econrag/chat/schemas.py
"""
Chat turn and session records.

Dataclass-based with to_dict()/from_dict() for the persistence adapter.
Turns are immutable; a session only ever grows by appending.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from econrag.errors import ErrorKind


class TurnState(str, Enum):
    IDLE = "idle"
    EMBEDDING = "embedding"
    RETRIEVING = "retrieving"
    COMPOSING = "composing"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({TurnState.COMPLETED, TurnState.FAILED, TurnState.CANCELLED})


@dataclass(frozen=True)
class ChatTurn:
    session_id: str
    user_input: str
    response: str
    state: TurnState
    created_at: datetime
    context_series_ids: Tuple[str, ...] = ()
    context_report_ids: Tuple[str, ...] = ()
    error_kind: Optional[ErrorKind] = None
    states: Tuple[TurnState, ...] = ()
    turn_id: str = field(default_factory=lambda: uuid4().hex)

    @property
    def failed(self) -> bool:
        return self.state == TurnState.FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "turn_id": self.turn_id,
            "session_id": self.session_id,
            "user_input": self.user_input,
            "response": self.response,
            "state": self.state.value,
            "created_at": self.created_at.isoformat(),
            "context_series_ids": list(self.context_series_ids),
            "context_report_ids": list(self.context_report_ids),
            "error_kind": self.error_kind.value if self.error_kind else None,
            "states": [s.value for s in self.states],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatTurn":
        error_kind = data.get("error_kind")
        return cls(
            turn_id=data["turn_id"],
            session_id=data["session_id"],
            user_input=data["user_input"],
            response=data["response"],
            state=TurnState(data["state"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            context_series_ids=tuple(data.get("context_series_ids", [])),
            context_report_ids=tuple(data.get("context_report_ids", [])),
            error_kind=ErrorKind(error_kind) if error_kind else None,
            states=tuple(TurnState(s) for s in data.get("states", [])),
        )


@dataclass(frozen=True)
class ChatSession:
    session_id: str
    turns: Tuple[ChatTurn, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "turns": [t.to_dict() for t in self.turns],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatSession":
        return cls(
            session_id=data["session_id"],
            turns=tuple(ChatTurn.from_dict(t) for t in data.get("turns", [])),
        )
