"""Pydantic models for data validation and serialization."""

from .knowledge import ItemDetails, KnowledgeItem, KnowledgeSearchResult
from .research import (
    Citation,
    ConversationTurn,
    ExpertDomain,
    KnowledgeCitation,
    QueryIntent,
    ResearchAPIResponse,
    ResearchRequest,
    ResearchResponse,
    ResearchStatus,
    ResearchStep,
    StepKind,
    ToolInvocation,
    ToolOutcome,
    WebCitation,
)
from .workspace import CalendarEvent, EmailDetail, EmailSummary, NewCalendarEvent, TaskItem
