"""In-memory knowledge store.

Stands in for the notes database behind the ``KnowledgeStore`` interface.
Used for local runs (optionally seeded from JSON) and in tests.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..models.knowledge import ItemDetails, KnowledgeItem, KnowledgeSearchResult

logger = logging.getLogger(__name__)

SNIPPET_CHARS = 200
DEFAULT_LIMIT = 20


class InMemoryKnowledgeStore:
    """Dictionary-backed store with simple term matching.

    A query matches an item when every whitespace-separated term appears
    (case-insensitively) in the item's title or field values.
    """

    def __init__(self, items: Optional[Iterable[KnowledgeItem]] = None, limit: int = DEFAULT_LIMIT):
        self._items: Dict[str, KnowledgeItem] = {}
        self._limit = limit
        for item in items or []:
            self.add(item)

    @classmethod
    def from_json(cls, path: Path) -> "InMemoryKnowledgeStore":
        """Load items from a JSON array of ``KnowledgeItem`` objects."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        items = [KnowledgeItem.model_validate(entry) for entry in data]
        logger.info(f"Loaded {len(items)} knowledge items from {path}")
        return cls(items)

    def add(self, item: KnowledgeItem) -> None:
        self._items[item.id] = item

    def __len__(self) -> int:
        return len(self._items)

    async def search(
        self, query: str, categories: Optional[List[str]] = None
    ) -> List[KnowledgeSearchResult]:
        terms = [t for t in query.lower().split() if t]
        if not terms:
            return []

        wanted = {c.lower() for c in categories} if categories else None
        results: List[KnowledgeSearchResult] = []

        for item in self._items.values():
            if wanted is not None and item.category.lower() not in wanted:
                continue
            body = " ".join(item.fields.values())
            haystack = f"{item.title} {body}".lower()
            if not all(term in haystack for term in terms):
                continue
            results.append(
                KnowledgeSearchResult(
                    id=item.id,
                    title=item.title,
                    category=item.category,
                    snippet=(body or item.title)[:SNIPPET_CHARS],
                    status=item.status,
                    priority=item.priority,
                )
            )
            if len(results) >= self._limit:
                break

        return results

    async def get(self, item_id: str) -> Optional[ItemDetails]:
        item = self._items.get(item_id)
        if item is None:
            return None
        return ItemDetails(
            id=item.id,
            title=item.title,
            category=item.category,
            status=item.status,
            priority=item.priority,
            fields=dict(item.fields),
        )


# Singleton instance
_knowledge_store: Optional[InMemoryKnowledgeStore] = None


def get_knowledge_store(seed_path: Optional[Path] = None) -> InMemoryKnowledgeStore:
    """Get or create the process-wide store, seeding it on first use."""
    global _knowledge_store
    if _knowledge_store is None:
        if seed_path is not None and seed_path.exists():
            _knowledge_store = InMemoryKnowledgeStore.from_json(seed_path)
        else:
            if seed_path is not None:
                logger.warning(f"Knowledge seed file not found: {seed_path}")
            _knowledge_store = InMemoryKnowledgeStore()
    return _knowledge_store


__all__ = ["InMemoryKnowledgeStore", "get_knowledge_store"]
