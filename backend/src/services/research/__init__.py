"""Research agent services.

This package provides the research loop and its parts:
- ResearchOrchestrator: intent branching and the tool-calling loop
- DomainRouter: keyword then model persona selection
- CitationLedger: stable numbering of evidence for one request
- ToolDispatcher: registry of the tools the model may call
"""

from .citations import CitationLedger, extract_citation_numbers, find_missing_citations
from .domain_router import (
    DomainResolver,
    DomainRouter,
    KeywordDomainResolver,
    ModelDomainResolver,
    create_domain_router,
)
from .orchestrator import ResearchOrchestrator, create_research_orchestrator
from .tool_dispatcher import ToolContext, ToolDispatcher, ToolSpec
from .tools import FINALIZE_TOOL_NAME, ResearchTools, build_default_dispatcher

__all__ = [
    # Orchestrator
    "ResearchOrchestrator",
    "create_research_orchestrator",
    # Routing
    "DomainResolver",
    "DomainRouter",
    "KeywordDomainResolver",
    "ModelDomainResolver",
    "create_domain_router",
    # Citations
    "CitationLedger",
    "extract_citation_numbers",
    "find_missing_citations",
    # Tools
    "ToolContext",
    "ToolDispatcher",
    "ToolSpec",
    "ResearchTools",
    "FINALIZE_TOOL_NAME",
    "build_default_dispatcher",
]
