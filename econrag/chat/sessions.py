"""
SessionStore: append-only chat sessions.

A session is owned by its id. Appends for one session serialize on a
per-session lock and get a created_at strictly after the previous turn's.
"""

import dataclasses
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from econrag.chat.schemas import ChatSession, ChatTurn
from econrag.errors import NotFoundError
from econrag.locks import KeyedLocks
from econrag.persistence.base import Repository

logger = logging.getLogger(__name__)

_EPSILON = timedelta(microseconds=1)


class SessionStore:
    def __init__(self, repository: Optional[Repository] = None):
        self._repository = repository
        self._locks = KeyedLocks()
        self._sessions: Dict[str, ChatSession] = {}

    def append(self, turn: ChatTurn) -> ChatTurn:
        """Append a turn to its session (created on first use). Returns the stored turn."""
        with self._locks.hold(turn.session_id):
            session = self._sessions.get(turn.session_id) or ChatSession(session_id=turn.session_id)
            if session.turns and turn.created_at <= session.turns[-1].created_at:
                turn = dataclasses.replace(turn, created_at=session.turns[-1].created_at + _EPSILON)
            updated = ChatSession(session_id=session.session_id, turns=session.turns + (turn,))
            if self._repository is not None:
                self._repository.save(updated.session_id, updated.to_dict())
            self._sessions[updated.session_id] = updated
        logger.debug("[chat] session %s now has %d turns", turn.session_id, len(updated.turns))
        return turn

    def get(self, session_id: str) -> ChatSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"chat session {session_id!r} not found")
        return session

    def recent(self, session_id: str, limit: int) -> List[ChatTurn]:
        """Last `limit` turns, oldest first; empty for an unknown session."""
        if limit <= 0:
            return []
        session = self._sessions.get(session_id)
        if session is None:
            return []
        return list(session.turns[-limit:])

    def list(self) -> List[str]:
        return sorted(self._sessions)

    def hydrate(self) -> int:
        if self._repository is None:
            return 0
        count = 0
        for record in self._repository.find_all():
            session = ChatSession.from_dict(record)
            with self._locks.hold(session.session_id):
                self._sessions[session.session_id] = session
            count += 1
        logger.info("[chat] hydrated %d sessions", count)
        return count
