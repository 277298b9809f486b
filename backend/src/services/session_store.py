"""Conversation history storage for research sessions."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Protocol

from ..models.research import ConversationTurn

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Owns session history, including any concurrency control it needs."""

    async def get(self, session_id: str) -> List[ConversationTurn]:
        ...

    async def put(self, session_id: str, turns: List[ConversationTurn]) -> None:
        ...

    async def delete(self, session_id: str) -> bool:
        ...


class InMemorySessionStore:
    """Process-local session store.

    Reads return copies so a running request never sees another request's
    writes mid-flight. Writes are serialised by an ``asyncio.Lock`` and keep
    only the most recent ``max_turns`` turns. Two concurrent requests on the
    same session still race at the read-modify-write level: the later
    ``put`` wins.
    """

    def __init__(self, max_turns: int = 20):
        self._sessions: Dict[str, List[ConversationTurn]] = {}
        self._max_turns = max_turns
        self._lock = asyncio.Lock()

    async def get(self, session_id: str) -> List[ConversationTurn]:
        async with self._lock:
            return list(self._sessions.get(session_id, []))

    async def put(self, session_id: str, turns: List[ConversationTurn]) -> None:
        async with self._lock:
            self._sessions[session_id] = list(turns[-self._max_turns:])

    async def delete(self, session_id: str) -> bool:
        async with self._lock:
            existed = self._sessions.pop(session_id, None) is not None
        if existed:
            logger.info(f"Cleared research session {session_id}")
        return existed


# Singleton instance
_session_store: Optional[InMemorySessionStore] = None


def get_session_store(max_turns: int = 20) -> InMemorySessionStore:
    """Get or create the process-wide session store."""
    global _session_store
    if _session_store is None:
        _session_store = InMemorySessionStore(max_turns=max_turns)
    return _session_store


__all__ = ["SessionStore", "InMemorySessionStore", "get_session_store"]
