"""Tavily Search Service for the research agent."""

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple
import logging
import os

from tavily import AsyncTavilyClient

logger = logging.getLogger(__name__)

SearchFocus = Literal["general", "news", "technical", "research"]

SNIPPET_CHARS = 300

# focus -> (Tavily topic, search depth, query suffix)
FOCUS_SETTINGS: Dict[str, Tuple[str, str, str]] = {
    "general": ("general", "basic", ""),
    "news": ("news", "basic", ""),
    "technical": ("general", "advanced", "documentation tutorial guide"),
    "research": ("general", "advanced", "research study analysis"),
}


@dataclass
class WebSearchResult:
    """Single search result from Tavily."""
    title: str
    url: str
    snippet: str
    score: float = 0.0


@dataclass
class WebSearchResponse:
    """Outcome of a web search. ``success`` is False on any provider failure."""
    query: str
    success: bool
    results: List[WebSearchResult] = field(default_factory=list)
    error: Optional[str] = None


class TavilySearchService:
    """Service for Tavily web search."""

    def __init__(self, api_key: Optional[str] = None):
        """Initialize with API key from param or environment."""
        self.api_key = api_key
        self._client: Optional[AsyncTavilyClient] = None

    @property
    def client(self) -> AsyncTavilyClient:
        """Lazy-load the async client."""
        if self._client is None:
            if not self.api_key:
                self.api_key = os.getenv("TAVILY_API_KEY")
            if not self.api_key:
                raise ValueError("TAVILY_API_KEY not configured")
            self._client = AsyncTavilyClient(api_key=self.api_key)
        return self._client

    async def search(
        self,
        query: str,
        focus: SearchFocus = "general",
        max_results: int = 5,
    ) -> WebSearchResponse:
        """Execute a single search query.

        Provider errors are reported through ``success``/``error`` rather than
        raised, so callers can hand the message straight to the model.
        """
        if not self.is_configured():
            logger.warning("TAVILY_API_KEY not configured, web search disabled")
            return WebSearchResponse(
                query=query,
                success=False,
                error="Web search not configured (missing TAVILY_API_KEY)",
            )

        topic, depth, suffix = FOCUS_SETTINGS.get(focus, FOCUS_SETTINGS["general"])
        adjusted_query = f"{query} {suffix}".strip()

        try:
            response = await self.client.search(
                query=adjusted_query,
                max_results=max_results,
                topic=topic,
                search_depth=depth,
                include_answer=False,
                include_raw_content=False,
            )
        except Exception as e:
            logger.error(f"Tavily search failed for '{adjusted_query}': {e}")
            return WebSearchResponse(
                query=adjusted_query,
                success=False,
                error=f"Web search failed: {e}",
            )

        results = [
            WebSearchResult(
                title=r.get("title", "") or r.get("url", ""),
                url=r.get("url", ""),
                snippet=(r.get("content", "") or "")[:SNIPPET_CHARS],
                score=r.get("score", 0.0),
            )
            for r in response.get("results", [])
        ]

        return WebSearchResponse(query=adjusted_query, success=True, results=results)

    def is_configured(self) -> bool:
        """Check if Tavily is properly configured."""
        return bool(self.api_key or os.getenv("TAVILY_API_KEY"))


# Singleton instance
_tavily_service: Optional[TavilySearchService] = None


def get_tavily_service(api_key: Optional[str] = None) -> TavilySearchService:
    """Get or create the Tavily service singleton."""
    global _tavily_service
    if _tavily_service is None or api_key:
        _tavily_service = TavilySearchService(api_key=api_key)
    return _tavily_service
