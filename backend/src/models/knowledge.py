"""Pydantic models for the knowledge store boundary."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

KNOWLEDGE_CATEGORIES: List[str] = ["People", "Projects", "Ideas", "Admin"]


class KnowledgeItem(BaseModel):
    """A stored note as held by the in-memory store."""

    id: str
    title: str
    category: str
    status: Optional[str] = None
    priority: Optional[str] = None
    fields: Dict[str, str] = Field(
        default_factory=dict,
        description="Free-text properties, e.g. Company, Notes, Next Action",
    )


class KnowledgeSearchResult(BaseModel):
    """A single hit from a knowledge search."""

    id: str
    title: str
    category: str
    snippet: str = ""
    status: Optional[str] = None
    priority: Optional[str] = None


class ItemDetails(BaseModel):
    """Full view of one item, returned by item lookup."""

    id: str
    title: str
    category: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    fields: Dict[str, str] = Field(default_factory=dict)


__all__ = [
    "KNOWLEDGE_CATEGORIES",
    "KnowledgeItem",
    "KnowledgeSearchResult",
    "ItemDetails",
]
