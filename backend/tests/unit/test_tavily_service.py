"""Tests for Tavily service."""
import pytest
from unittest.mock import AsyncMock, patch

from backend.src.services.tavily_service import (
    TavilySearchService,
    WebSearchResponse,
    get_tavily_service,
)


class TestTavilySearchService:
    """Tests for TavilySearchService."""

    def test_is_configured_without_key(self):
        """Should return False when no API key."""
        service = TavilySearchService()
        with patch.dict("os.environ", {}, clear=True):
            assert not service.is_configured()

    def test_is_configured_with_key(self):
        """Should return True when API key provided."""
        service = TavilySearchService(api_key="test-key")
        assert service.is_configured()

    def test_is_configured_with_env_key(self):
        """Should return True when API key in environment."""
        service = TavilySearchService()
        with patch.dict("os.environ", {"TAVILY_API_KEY": "env-test-key"}):
            assert service.is_configured()

    def test_client_raises_without_key(self):
        """Should raise ValueError when accessing client without API key."""
        service = TavilySearchService()
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValueError, match="TAVILY_API_KEY not configured"):
                _ = service.client

    @pytest.mark.asyncio
    async def test_search_returns_structured_response(self):
        """Should map Tavily results onto WebSearchResponse."""
        service = TavilySearchService(api_key="test-key")

        mock_response = {
            "query": "test query",
            "results": [
                {
                    "url": "http://example.com",
                    "title": "Example Title",
                    "content": "Example content",
                    "score": 0.95,
                    "raw_content": None,
                }
            ],
        }

        mock_client = AsyncMock()
        mock_client.search = AsyncMock(return_value=mock_response)
        service._client = mock_client

        response = await service.search("test query")

        assert isinstance(response, WebSearchResponse)
        assert response.success
        assert response.error is None
        assert len(response.results) == 1
        assert response.results[0].url == "http://example.com"
        assert response.results[0].title == "Example Title"
        assert response.results[0].snippet == "Example content"
        assert response.results[0].score == 0.95

    @pytest.mark.asyncio
    async def test_search_truncates_snippets_and_fills_titles(self):
        """Snippets are capped and missing titles fall back to the URL."""
        service = TavilySearchService(api_key="test-key")
        mock_client = AsyncMock()
        mock_client.search = AsyncMock(return_value={
            "results": [{"url": "http://a.com", "title": "", "content": "y" * 1000}]
        })
        service._client = mock_client

        response = await service.search("q")

        assert response.results[0].title == "http://a.com"
        assert len(response.results[0].snippet) == 300

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "focus, topic, depth, query",
        [
            ("general", "general", "basic", "cms"),
            ("news", "news", "basic", "cms"),
            ("technical", "general", "advanced", "cms documentation tutorial guide"),
            ("research", "general", "advanced", "cms research study analysis"),
        ],
    )
    async def test_focus_shapes_request(self, focus, topic, depth, query):
        """Focus selects the Tavily topic, depth and query suffix."""
        service = TavilySearchService(api_key="test-key")
        mock_client = AsyncMock()
        mock_client.search = AsyncMock(return_value={"results": []})
        service._client = mock_client

        await service.search("cms", focus=focus, max_results=3)

        kwargs = mock_client.search.await_args.kwargs
        assert kwargs["query"] == query
        assert kwargs["topic"] == topic
        assert kwargs["search_depth"] == depth
        assert kwargs["max_results"] == 3

    @pytest.mark.asyncio
    async def test_search_error_reported_not_raised(self):
        """Provider exceptions become an unsuccessful response."""
        service = TavilySearchService(api_key="test-key")
        mock_client = AsyncMock()
        mock_client.search = AsyncMock(side_effect=RuntimeError("quota exceeded"))
        service._client = mock_client

        response = await service.search("q")

        assert not response.success
        assert response.results == []
        assert response.error == "Web search failed: quota exceeded"

    @pytest.mark.asyncio
    async def test_search_without_key(self):
        """An unconfigured service answers without calling Tavily."""
        service = TavilySearchService()
        with patch.dict("os.environ", {}, clear=True):
            response = await service.search("q")
        assert not response.success
        assert "TAVILY_API_KEY" in response.error


class TestGetTavilyService:
    """Singleton accessor."""

    def test_returns_same_instance(self):
        """Repeated calls without a key share one instance."""
        first = get_tavily_service("key-1")
        assert get_tavily_service() is first

    def test_new_key_replaces_instance(self):
        """Passing a key builds a fresh service."""
        first = get_tavily_service("key-1")
        second = get_tavily_service("key-2")
        assert second is not first
        assert second.api_key == "key-2"
