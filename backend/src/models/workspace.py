"""Records exchanged with calendar, email and task providers."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class CalendarEvent(BaseModel):
    """A calendar entry. ``start``/``end`` are None for all-day events."""

    id: str
    summary: str
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    all_day_date: Optional[date] = None
    location: Optional[str] = None
    conference_uri: Optional[str] = Field(
        default=None, description="Video entry point, when the event has one"
    )
    calendar_id: str = "primary"
    calendar_name: Optional[str] = None
    html_link: Optional[str] = None


class NewCalendarEvent(BaseModel):
    """Payload for creating an event."""

    summary: str
    start: datetime
    end: datetime
    description: Optional[str] = None
    location: Optional[str] = None


class EmailSummary(BaseModel):
    id: str
    subject: str
    sender: str
    date: str
    snippet: str = ""


class EmailDetail(BaseModel):
    id: str
    subject: str
    sender: str
    date: str
    body: Optional[str] = None


class TaskItem(BaseModel):
    id: str
    title: str
    list_name: str = "My Tasks"
    due: Optional[date] = None
    completed: bool = False
    notes: Optional[str] = None


__all__ = [
    "CalendarEvent",
    "NewCalendarEvent",
    "EmailSummary",
    "EmailDetail",
    "TaskItem",
]
