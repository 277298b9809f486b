"""Models for the research agent."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, computed_field


class QueryIntent(str, Enum):
    """How a user message should be handled."""

    CASUAL = "casual"  # greetings, thanks, acknowledgements
    FOLLOW_UP = "follow_up"  # continues the previous exchange
    RESEARCH = "research"  # needs tools and citations


class ExpertDomain(str, Enum):
    """Persona ids. Declaration order breaks keyword-score ties."""

    TECH = "tech"
    BUSINESS = "business"
    INVESTMENT = "investment"
    PERSONAL = "personal"
    RESEARCH = "research"


class StepKind(str, Enum):
    """Kind of entry in the research trace."""

    TOOL_CALL = "tool_call"
    OBSERVATION = "observation"


class ResearchStatus(str, Enum):
    """Outcome of a research request."""

    SUCCESS = "success"
    ERROR = "error"


# Citations


class KnowledgeCitation(BaseModel):
    """Evidence taken from the user's own knowledge store."""

    source_type: Literal["internal-knowledge"] = "internal-knowledge"
    number: int = Field(default=0, ge=0, description="0 until the ledger assigns one")
    item_id: Optional[str] = None
    title: str
    snippet: Optional[str] = None
    group_label: Optional[str] = Field(
        default=None, description="Knowledge category, e.g. People or Projects"
    )

    @computed_field
    @property
    def external_key(self) -> str:
        return self.item_id or self.title


class WebCitation(BaseModel):
    """Evidence taken from a web search result."""

    source_type: Literal["web"] = "web"
    number: int = Field(default=0, ge=0, description="0 until the ledger assigns one")
    url: Optional[str] = None
    title: str
    snippet: Optional[str] = None
    group_label: Optional[str] = None

    @computed_field
    @property
    def external_key(self) -> str:
        return self.url or self.title


Citation = Annotated[
    Union[KnowledgeCitation, WebCitation],
    Field(discriminator="source_type"),
]


# Loop internals


class ConversationTurn(BaseModel):
    """A prior message supplied by the caller's session store."""

    role: Literal["user", "assistant"]
    content: str


@dataclass
class ResearchStep:
    """One entry of the transparency trace. Never drives control flow."""

    kind: StepKind
    text: str
    tool_name: Optional[str] = None
    tool_args: Optional[Dict[str, Any]] = None
    sources: List[Union[KnowledgeCitation, WebCitation]] = field(default_factory=list)


@dataclass
class ToolInvocation:
    """A tool call requested by the model."""

    name: str
    arguments: Dict[str, Any]
    call_id: str
    parse_error: Optional[str] = None  # set when the raw arguments were not valid JSON


@dataclass
class ToolOutcome:
    """Result of dispatching a tool.

    ``citations`` are the ledger-numbered sources surfaced by this call.
    ``complete`` is only set by the finalize signal when the model reports it
    is ready to answer. ``executed`` is set by the dispatcher once the handler
    ran with validated arguments.
    """

    text: str
    citations: List[Union[KnowledgeCitation, WebCitation]] = field(default_factory=list)
    complete: bool = False
    executed: bool = False


@dataclass
class ResearchResponse:
    """Final output of one orchestrator invocation."""

    status: ResearchStatus
    answer: str
    domain: ExpertDomain
    citations: List[Union[KnowledgeCitation, WebCitation]] = field(default_factory=list)
    steps: List[ResearchStep] = field(default_factory=list)
    tools_used: List[str] = field(default_factory=list)
    iterations: int = 0
    error: Optional[str] = None

    @classmethod
    def failure(
        cls,
        message: str,
        domain: ExpertDomain = ExpertDomain.RESEARCH,
        steps: Optional[List[ResearchStep]] = None,
        iterations: int = 0,
    ) -> "ResearchResponse":
        """Well-formed error response with an empty answer and no citations."""
        return cls(
            status=ResearchStatus.ERROR,
            answer="",
            domain=domain,
            steps=steps or [],
            iterations=iterations,
            error=message,
        )


# Pydantic Models for API


class ResearchRequest(BaseModel):
    """Request body for the research endpoint."""

    message: Optional[str] = Field(default=None, max_length=4000)
    session_id: Optional[str] = Field(default=None, max_length=200)


class ResearchStepPayload(BaseModel):
    """Trace entry as exposed over HTTP."""

    type: StepKind
    content: str
    tool: Optional[str] = None


class ResearchAPIResponse(BaseModel):
    """Response body for the research endpoint."""

    status: ResearchStatus
    answer: str = ""
    citations: List[Citation] = Field(default_factory=list)
    research_steps: List[ResearchStepPayload] = Field(default_factory=list)
    expert_domain: str = ""
    tools_used: List[str] = Field(default_factory=list)
    iterations: int = 0
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: ResearchResponse) -> "ResearchAPIResponse":
        return cls(
            status=result.status,
            answer=result.answer,
            citations=list(result.citations),
            research_steps=[
                ResearchStepPayload(type=step.kind, content=step.text, tool=step.tool_name)
                for step in result.steps
            ],
            expert_domain=result.domain.value,
            tools_used=list(result.tools_used),
            iterations=result.iterations,
            error=result.error,
        )

    @classmethod
    def error_response(cls, message: str) -> "ResearchAPIResponse":
        return cls(status=ResearchStatus.ERROR, error=message)


__all__ = [
    "QueryIntent",
    "ExpertDomain",
    "StepKind",
    "ResearchStatus",
    "KnowledgeCitation",
    "WebCitation",
    "Citation",
    "ConversationTurn",
    "ResearchStep",
    "ToolInvocation",
    "ToolOutcome",
    "ResearchResponse",
    "ResearchRequest",
    "ResearchStepPayload",
    "ResearchAPIResponse",
]
