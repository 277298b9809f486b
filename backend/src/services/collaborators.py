"""Interfaces of the external systems the research tools call.

Concrete adapters (notes database, Google Calendar, Gmail, Google Tasks)
live outside the agent and are injected into the tool dispatcher. Any of
them may be omitted; the matching tools then report that the integration
is not connected.
"""

from __future__ import annotations

from typing import List, Literal, Optional, Protocol, runtime_checkable

from ..models.knowledge import ItemDetails, KnowledgeSearchResult
from ..models.workspace import (
    CalendarEvent,
    EmailDetail,
    EmailSummary,
    NewCalendarEvent,
    TaskItem,
)
from .tavily_service import SearchFocus, WebSearchResponse

CalendarPeriod = Literal["today", "tomorrow", "this_week"]


@runtime_checkable
class KnowledgeStore(Protocol):
    async def search(
        self, query: str, categories: Optional[List[str]] = None
    ) -> List[KnowledgeSearchResult]:
        ...

    async def get(self, item_id: str) -> Optional[ItemDetails]:
        ...


@runtime_checkable
class WebSearchProvider(Protocol):
    async def search(
        self, query: str, focus: SearchFocus = "general", max_results: int = 5
    ) -> WebSearchResponse:
        ...

    def is_configured(self) -> bool:
        ...


@runtime_checkable
class CalendarProvider(Protocol):
    async def list_events(self, period: CalendarPeriod) -> List[CalendarEvent]:
        ...

    async def create_event(self, event: NewCalendarEvent) -> CalendarEvent:
        ...

    async def delete_event(self, event_id: str, calendar_id: str = "primary") -> None:
        ...


@runtime_checkable
class EmailProvider(Protocol):
    async def search(self, query: str, max_results: int = 5) -> List[EmailSummary]:
        ...

    async def get(self, email_id: str) -> Optional[EmailDetail]:
        ...


@runtime_checkable
class TaskProvider(Protocol):
    async def list_tasks(
        self, list_name: Optional[str] = None, include_completed: bool = False
    ) -> List[TaskItem]:
        ...


__all__ = [
    "CalendarPeriod",
    "KnowledgeStore",
    "WebSearchProvider",
    "CalendarProvider",
    "EmailProvider",
    "TaskProvider",
]
