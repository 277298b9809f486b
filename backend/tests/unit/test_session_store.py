"""Tests for the in-memory session store."""

import pytest

from backend.src.models.research import ConversationTurn
from backend.src.services.session_store import InMemorySessionStore, SessionStore


def _turns(n: int):
    return [
        ConversationTurn(role="user" if i % 2 == 0 else "assistant", content=f"m{i}")
        for i in range(n)
    ]


class TestInMemorySessionStore:
    """get / put / delete"""

    @pytest.mark.asyncio
    async def test_unknown_session_is_empty(self):
        """A session that was never written has no history."""
        assert await InMemorySessionStore().get("nope") == []

    @pytest.mark.asyncio
    async def test_put_then_get(self):
        """Stored turns come back in order."""
        store = InMemorySessionStore()
        await store.put("s1", _turns(2))
        assert [t.content for t in await store.get("s1")] == ["m0", "m1"]

    @pytest.mark.asyncio
    async def test_history_trimmed_to_most_recent(self):
        """Only the last max_turns turns are kept."""
        store = InMemorySessionStore(max_turns=4)
        await store.put("s1", _turns(10))
        assert [t.content for t in await store.get("s1")] == ["m6", "m7", "m8", "m9"]

    @pytest.mark.asyncio
    async def test_get_returns_a_copy(self):
        """Mutating a read does not change the stored history."""
        store = InMemorySessionStore()
        await store.put("s1", _turns(2))
        history = await store.get("s1")
        history.append(ConversationTurn(role="user", content="sneaky"))
        assert len(await store.get("s1")) == 2

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self):
        """Each session id has its own history."""
        store = InMemorySessionStore()
        await store.put("a", _turns(2))
        assert await store.get("b") == []

    @pytest.mark.asyncio
    async def test_delete(self):
        """delete() reports whether anything was removed."""
        store = InMemorySessionStore()
        await store.put("s1", _turns(2))
        assert await store.delete("s1") is True
        assert await store.get("s1") == []
        assert await store.delete("s1") is False

    def test_satisfies_protocol(self):
        """The in-memory store is a SessionStore."""
        store: SessionStore = InMemorySessionStore()
        assert hasattr(store, "get") and hasattr(store, "put") and hasattr(store, "delete")
