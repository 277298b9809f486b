"""Research tools exposed to the model.

``ResearchTools`` holds the external collaborators and implements one
handler per tool. ``build_default_dispatcher`` registers them all. Any
collaborator may be None; its tools then explain that the integration is
not available instead of failing.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Callable, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ...models.knowledge import KNOWLEDGE_CATEGORIES
from ...models.research import KnowledgeCitation, ToolOutcome, WebCitation
from ...models.workspace import CalendarEvent, NewCalendarEvent
from ..collaborators import (
    CalendarProvider,
    EmailProvider,
    KnowledgeStore,
    TaskProvider,
    WebSearchProvider,
)
from .citations import Evidence
from .tool_dispatcher import ToolContext, ToolDispatcher, ToolSpec

logger = logging.getLogger(__name__)

FINALIZE_TOOL_NAME = "finalize_research"

MAX_KNOWLEDGE_RESULTS = 8
LISTING_SNIPPET_CHARS = 100
DETAIL_SNIPPET_CHARS = 200
EMAIL_BODY_CHARS = 2000

ITEM_DETAIL_FIELDS = [
    "Company", "Role", "Context", "Notes", "Next Action", "Raw Insight",
    "One-liner", "Area", "Category", "Due Date", "Next Follow-up",
]


# =============================================================================
# Argument models
# =============================================================================


class _ToolArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SearchInternalKnowledgeArgs(_ToolArgs):
    query: str = Field(..., min_length=1, description="Search term, topic, or keyword to look for")
    categories: Optional[List[Literal["People", "Projects", "Ideas", "Admin"]]] = Field(
        default=None,
        description="Limit search to specific categories. Omit to search all.",
    )


class SearchWebArgs(_ToolArgs):
    query: str = Field(..., min_length=1, description="Web search query")
    focus: Literal["general", "news", "technical", "research"] = Field(
        default="general",
        description="Type of search - affects query optimization",
    )


class GetItemDetailsArgs(_ToolArgs):
    item_id: str = Field(..., min_length=1, description="The item ID from a search result")


class FinalizeResearchArgs(_ToolArgs):
    summary: str = Field(..., description="Brief summary of what you found")
    ready_to_answer: bool = Field(
        ..., description="True if you have enough info, false if you need more research"
    )
    missing_info: Optional[str] = Field(
        default=None,
        description="What additional info is needed (if ready_to_answer is false)",
    )


class ReadCalendarArgs(_ToolArgs):
    period: Literal["today", "tomorrow", "this_week"] = Field(
        ..., description="Time period to fetch events for"
    )


class CreateCalendarEventArgs(_ToolArgs):
    summary: str = Field(..., min_length=1, description="Event title/name")
    start: datetime = Field(
        ..., description='Start datetime in ISO format (e.g. "2026-02-11T14:00:00")'
    )
    end: datetime = Field(
        ..., description='End datetime in ISO format (e.g. "2026-02-11T15:00:00")'
    )
    description: Optional[str] = Field(default=None, description="Event description (optional)")
    location: Optional[str] = Field(default=None, description="Event location (optional)")

    @model_validator(mode="after")
    def _end_after_start(self) -> "CreateCalendarEventArgs":
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class DeleteCalendarEventArgs(_ToolArgs):
    event_id: str = Field(..., min_length=1, description="The calendar event ID to delete")
    calendar_id: str = Field(
        default="primary",
        description="The calendar ID the event belongs to (optional, defaults to primary)",
    )


class SearchEmailsArgs(_ToolArgs):
    query: str = Field(
        ..., min_length=1,
        description='Mail search query (e.g., "from:sarah", "subject:proposal")',
    )
    max_results: int = Field(default=5, ge=1, le=20, description="Max emails to return (default 5)")


class GetEmailArgs(_ToolArgs):
    email_id: str = Field(..., min_length=1, description="The message ID from search_emails")


class ReadTasksArgs(_ToolArgs):
    list_name: Optional[str] = Field(
        default=None, description="Only read this task list. Omit for all lists."
    )
    include_completed: bool = Field(default=False, description="Include completed tasks")


# =============================================================================
# Formatting helpers
# =============================================================================


def _clip(text: Optional[str], limit: int) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


def _render_cited(
    header: str,
    entries: Sequence[Tuple[Evidence, Callable[[str], str]]],
    ctx: ToolContext,
) -> Tuple[str, List[Evidence]]:
    """Render evidence entries under a header, citing only what fits.

    An entry is registered in the ledger only when its line fits inside the
    result budget, so every marker the model sees maps to a citation and no
    citation is minted for text the model never saw.
    """
    lines = [header]
    used = len(header)
    cited: List[Evidence] = []

    for evidence, render in entries:
        preview = render("[00]")
        if used + len(preview) + 2 > ctx.max_chars and cited:
            lines.append(f"({len(entries) - len(cited)} more not shown)")
            break
        citation = ctx.ledger.register(evidence)
        line = render(f"[{citation.number}]")
        lines.append(line)
        used += len(line) + 2
        if citation not in cited:
            cited.append(citation)

    return "\n\n".join(lines), cited


def _format_time(value: datetime) -> str:
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def _format_duration(start: datetime, end: datetime) -> str:
    minutes = int((end - start).total_seconds() // 60)
    if minutes <= 0:
        return ""
    if minutes < 60:
        return f"{minutes}m"
    if minutes % 60 == 0:
        return f"{minutes // 60}h"
    return f"{minutes // 60}h {minutes % 60}m"


_MEETING_HOSTS = [
    (re.compile(r"teams\.microsoft\.com", re.I), "Teams Meeting"),
    (re.compile(r"zoom\.us", re.I), "Zoom Meeting"),
    (re.compile(r"meet\.google\.com", re.I), "Google Meet"),
]


def format_meeting_location(event: CalendarEvent) -> str:
    """Readable location: meeting provider for video links, else the raw location."""
    if event.conference_uri:
        return _meeting_label(event.conference_uri) or "Online Meeting"
    if not event.location:
        return ""
    label = _meeting_label(event.location)
    if label:
        return label
    if re.match(r"^https?://", event.location, re.I):
        return "Online Meeting"
    return event.location


def _meeting_label(text: str) -> Optional[str]:
    for pattern, label in _MEETING_HOSTS:
        if pattern.search(text):
            return label
    return None


def format_calendar_event(event: CalendarEvent) -> str:
    if event.start and event.end:
        when = f"{_format_time(event.start)} – {_format_time(event.end)}"
        duration = _format_duration(event.start, event.end)
    else:
        when = "All day"
        if event.all_day_date:
            when += f" {event.all_day_date:%a, %b} {event.all_day_date.day}"
        duration = ""

    line = f"- **{when}** · {event.summary}"
    if duration:
        line += f" ({duration})"
    location = format_meeting_location(event)
    if location:
        line += f" · {location}"
    if event.calendar_name and event.calendar_id != "primary":
        line += f" · _{event.calendar_name}_"
    ref = f"id:{event.id}"
    if event.calendar_id != "primary":
        ref += f"|cal:{event.calendar_id}"
    return f"{line} [{ref}]"


# =============================================================================
# Tool handlers
# =============================================================================


class ResearchTools:
    """Tool handlers bound to their collaborators."""

    def __init__(
        self,
        knowledge_store: Optional[KnowledgeStore] = None,
        web_search: Optional[WebSearchProvider] = None,
        calendar: Optional[CalendarProvider] = None,
        email: Optional[EmailProvider] = None,
        tasks: Optional[TaskProvider] = None,
    ) -> None:
        self.knowledge_store = knowledge_store
        self.web_search = web_search
        self.calendar = calendar
        self.email = email
        self.tasks = tasks

    async def search_internal_knowledge(
        self, args: SearchInternalKnowledgeArgs, ctx: ToolContext
    ) -> ToolOutcome:
        if self.knowledge_store is None:
            return ToolOutcome(text="The Second Brain is not available. Try search_web instead.")

        results = await self.knowledge_store.search(args.query, args.categories)
        if not results:
            return ToolOutcome(text=f'No results found for "{args.query}" in Second Brain.')

        results = results[:MAX_KNOWLEDGE_RESULTS]
        entries = []
        for r in results:
            evidence = KnowledgeCitation(
                item_id=r.id,
                title=r.title,
                snippet=_clip(r.snippet, DETAIL_SNIPPET_CHARS),
                group_label=r.category,
            )
            status = f" - {r.status}" if r.status else ""
            snippet = _clip(r.snippet, LISTING_SNIPPET_CHARS)

            def render(marker: str, r=r, status=status, snippet=snippet) -> str:
                return f"{marker} {r.title} ({r.category}){status} [id:{r.id}]\n   {snippet}"

            entries.append((evidence, render))

        text, cited = _render_cited(
            f"Found {len(results)} results in Second Brain:", entries, ctx
        )
        return ToolOutcome(text=text, citations=cited)

    async def search_web(self, args: SearchWebArgs, ctx: ToolContext) -> ToolOutcome:
        if self.web_search is None or not self.web_search.is_configured():
            return ToolOutcome(
                text="Web search is not configured. Only Second Brain search is available."
            )

        response = await self.web_search.search(args.query, focus=args.focus, max_results=5)
        if not response.success:
            return ToolOutcome(text=response.error or f'Web search failed for "{args.query}".')
        if not response.results:
            return ToolOutcome(text=f'No web results found for "{args.query}".')

        entries = []
        for r in response.results:
            evidence = WebCitation(
                url=r.url,
                title=r.title or r.url,
                snippet=_clip(r.snippet, DETAIL_SNIPPET_CHARS),
            )
            snippet = _clip(r.snippet, LISTING_SNIPPET_CHARS)

            def render(marker: str, r=r, snippet=snippet) -> str:
                return f"{marker} {r.title}\n   {r.url}\n   {snippet}"

            entries.append((evidence, render))

        text, cited = _render_cited(
            f"Found {len(response.results)} web results:", entries, ctx
        )
        return ToolOutcome(text=text, citations=cited)

    async def get_item_details(self, args: GetItemDetailsArgs, ctx: ToolContext) -> ToolOutcome:
        if self.knowledge_store is None:
            return ToolOutcome(text="The Second Brain is not available.")

        item = await self.knowledge_store.get(args.item_id)
        if item is None:
            return ToolOutcome(text=f"Could not find item with ID: {args.item_id}")

        details = [f"Title: {item.title}"]
        if item.status:
            details.append(f"Status: {item.status}")
        if item.priority:
            details.append(f"Priority: {item.priority}")
        ordered = [f for f in ITEM_DETAIL_FIELDS if f in item.fields]
        ordered += [f for f in item.fields if f not in ITEM_DETAIL_FIELDS]
        for field_name in ordered:
            value = item.fields[field_name]
            if value:
                details.append(f"{field_name}: {value}")

        citation = ctx.ledger.register(
            KnowledgeCitation(
                item_id=item.id,
                title=item.title,
                snippet=_clip("; ".join(details), DETAIL_SNIPPET_CHARS),
                group_label=item.category,
            )
        )
        text = f"[{citation.number}] " + "\n".join(details)
        return ToolOutcome(text=text, citations=[citation])

    async def finalize_research(self, args: FinalizeResearchArgs, ctx: ToolContext) -> ToolOutcome:
        text = f"Research summary: {args.summary}. Ready to answer: {args.ready_to_answer}"
        if args.missing_info and not args.ready_to_answer:
            text += f". Still missing: {args.missing_info}"
        return ToolOutcome(text=text, complete=args.ready_to_answer)

    async def read_calendar(self, args: ReadCalendarArgs, ctx: ToolContext) -> ToolOutcome:
        if self.calendar is None:
            return ToolOutcome(text="Calendar is not connected. Connect it from Settings.")

        events = await self.calendar.list_events(args.period)
        label = args.period.replace("_", " ")
        if not events:
            return ToolOutcome(text=f"No events on your calendar {label}.")

        listing = "\n".join(format_calendar_event(e) for e in events)
        return ToolOutcome(text=f"Calendar events {label} ({len(events)}):\n\n{listing}")

    async def create_calendar_event(
        self, args: CreateCalendarEventArgs, ctx: ToolContext
    ) -> ToolOutcome:
        if self.calendar is None:
            return ToolOutcome(text="Calendar is not connected. Connect it from Settings.")

        event = await self.calendar.create_event(
            NewCalendarEvent(
                summary=args.summary,
                start=args.start,
                end=args.end,
                description=args.description,
                location=args.location,
            )
        )
        logger.info(f"[TOOL] Created calendar event {event.id}: {event.summary}")
        start = event.start.isoformat() if event.start else args.start.isoformat()
        end = event.end.isoformat() if event.end else args.end.isoformat()
        text = f'Created event: "{event.summary}" from {start} to {end}'
        if event.html_link:
            text += f" ({event.html_link})"
        return ToolOutcome(text=text)

    async def delete_calendar_event(
        self, args: DeleteCalendarEventArgs, ctx: ToolContext
    ) -> ToolOutcome:
        if self.calendar is None:
            return ToolOutcome(text="Calendar is not connected. Connect it from Settings.")

        await self.calendar.delete_event(args.event_id, args.calendar_id)
        logger.info(f"[TOOL] Deleted calendar event {args.event_id} from {args.calendar_id}")
        return ToolOutcome(text=f"Successfully deleted calendar event (ID: {args.event_id}).")

    async def search_emails(self, args: SearchEmailsArgs, ctx: ToolContext) -> ToolOutcome:
        if self.email is None:
            return ToolOutcome(text="Email is not connected. Connect it from Settings.")

        emails = await self.email.search(args.query, args.max_results)
        if not emails:
            return ToolOutcome(text=f'No emails found for "{args.query}".')

        listing = "\n\n".join(
            f'- [{e.id}] "{e.subject}" from {e.sender} ({e.date})\n  {_clip(e.snippet, LISTING_SNIPPET_CHARS)}'
            for e in emails
        )
        return ToolOutcome(text=f"Found {len(emails)} emails:\n\n{listing}")

    async def get_email(self, args: GetEmailArgs, ctx: ToolContext) -> ToolOutcome:
        if self.email is None:
            return ToolOutcome(text="Email is not connected.")

        email = await self.email.get(args.email_id)
        if email is None:
            return ToolOutcome(text="Email not found.")

        body = _clip(email.body, EMAIL_BODY_CHARS) or "(no body)"
        return ToolOutcome(
            text=f"Subject: {email.subject}\nFrom: {email.sender}\nDate: {email.date}\n\n{body}"
        )

    async def read_tasks(self, args: ReadTasksArgs, ctx: ToolContext) -> ToolOutcome:
        if self.tasks is None:
            return ToolOutcome(text="Task lists are not connected. Connect them from Settings.")

        tasks = await self.tasks.list_tasks(args.list_name, args.include_completed)
        if not tasks:
            scope = f' in "{args.list_name}"' if args.list_name else ""
            return ToolOutcome(text=f"No open tasks{scope}.")

        lines = []
        for t in tasks:
            box = "[x]" if t.completed else "[ ]"
            due = f" (due {t.due.isoformat()})" if t.due else ""
            lines.append(f"- {box} {t.title}{due} · {t.list_name}")
        return ToolOutcome(text=f"Tasks ({len(tasks)}):\n" + "\n".join(lines))

    def specs(self) -> List[ToolSpec]:
        """Tool declarations in the order they are shown to the model."""
        return [
            ToolSpec(
                name="search_internal_knowledge",
                description=(
                    "Search the user's Second Brain for People, Projects, Ideas, and Admin items "
                    f"matching a topic. Categories: {', '.join(KNOWLEDGE_CATEGORIES)}.\n"
                    "Do NOT use for calendar, schedule, meetings, or email queries - use "
                    "read_calendar or search_emails instead."
                ),
                args_model=SearchInternalKnowledgeArgs,
                handler=self.search_internal_knowledge,
            ),
            ToolSpec(
                name="search_web",
                description=(
                    "Search the web for external information.\n"
                    "Use this when:\n"
                    "- Second Brain lacks relevant info\n"
                    "- Question requires current/external knowledge\n"
                    "- Need to verify or expand on brain results"
                ),
                args_model=SearchWebArgs,
                handler=self.search_web,
                timeout=60.0,
            ),
            ToolSpec(
                name="get_item_details",
                description=(
                    "Get full details of a specific Second Brain item by ID. "
                    "Use when you need more context about a search result."
                ),
                args_model=GetItemDetailsArgs,
                handler=self.get_item_details,
            ),
            ToolSpec(
                name=FINALIZE_TOOL_NAME,
                description=(
                    "Call this when you have gathered enough information to answer the question.\n"
                    "ALWAYS call this before providing your final answer."
                ),
                args_model=FinalizeResearchArgs,
                handler=self.finalize_research,
            ),
            ToolSpec(
                name="read_calendar",
                description=(
                    "Read calendar events. Use when user asks about schedule, meetings, "
                    "availability, or \"what's on my calendar\"."
                ),
                args_model=ReadCalendarArgs,
                handler=self.read_calendar,
            ),
            ToolSpec(
                name="create_calendar_event",
                description=(
                    "Create a new calendar event. Always check availability with "
                    "read_calendar first."
                ),
                args_model=CreateCalendarEventArgs,
                handler=self.create_calendar_event,
            ),
            ToolSpec(
                name="delete_calendar_event",
                description=(
                    "Delete a calendar event by its ID. Use read_calendar first to find the "
                    "event ID. If the event includes a cal: prefix (e.g. [id:abc|cal:xyz]), "
                    "pass both the event_id and calendar_id."
                ),
                args_model=DeleteCalendarEventArgs,
                handler=self.delete_calendar_event,
            ),
            ToolSpec(
                name="search_emails",
                description=(
                    "Search the user's mailbox. Use when user asks about emails, messages, "
                    "or communication."
                ),
                args_model=SearchEmailsArgs,
                handler=self.search_emails,
            ),
            ToolSpec(
                name="get_email",
                description="Get full content of a specific email by ID. Use after search_emails.",
                args_model=GetEmailArgs,
                handler=self.get_email,
            ),
            ToolSpec(
                name="read_tasks",
                description="Read the user's task lists. Use for to-dos and open tasks.",
                args_model=ReadTasksArgs,
                handler=self.read_tasks,
            ),
        ]


def build_default_dispatcher(
    knowledge_store: Optional[KnowledgeStore] = None,
    web_search: Optional[WebSearchProvider] = None,
    calendar: Optional[CalendarProvider] = None,
    email: Optional[EmailProvider] = None,
    tasks: Optional[TaskProvider] = None,
    max_result_chars: Optional[int] = None,
    default_timeout: Optional[float] = None,
) -> ToolDispatcher:
    """Dispatcher with every research tool registered."""
    toolset = ResearchTools(
        knowledge_store=knowledge_store,
        web_search=web_search,
        calendar=calendar,
        email=email,
        tasks=tasks,
    )
    dispatcher = ToolDispatcher(max_result_chars=max_result_chars, default_timeout=default_timeout)
    for spec in toolset.specs():
        dispatcher.register(spec)
    return dispatcher


__all__ = [
    "FINALIZE_TOOL_NAME",
    "ResearchTools",
    "build_default_dispatcher",
    "format_calendar_event",
    "format_meeting_location",
    "SearchInternalKnowledgeArgs",
    "SearchWebArgs",
    "GetItemDetailsArgs",
    "FinalizeResearchArgs",
    "ReadCalendarArgs",
    "CreateCalendarEventArgs",
    "DeleteCalendarEventArgs",
    "SearchEmailsArgs",
    "GetEmailArgs",
    "ReadTasksArgs",
]
