"""Tests for expert domain routing."""

import pytest
from unittest.mock import AsyncMock

from backend.src.models.research import ExpertDomain
from backend.src.services.llm_client import LLMClientError
from backend.src.services.research.domain_router import (
    DEFAULT_DOMAIN,
    DomainResolver,
    DomainRouter,
    KeywordDomainResolver,
    ModelDomainResolver,
    create_domain_router,
)

E2E_QUERY = "How does our Q2 roadmap compare to what's trending in headless CMS tools?"


def _llm(reply: str = "tech") -> AsyncMock:
    client = AsyncMock()
    client.complete = AsyncMock(return_value={"content": reply, "tool_calls": None})
    return client


class TestKeywordDomainResolver:
    """Keyword scoring stage."""

    @pytest.mark.parametrize(
        "query, expected",
        [
            ("Help me debug my Python API deployment", ExpertDomain.TECH),
            ("Should I rebalance my ETF portfolio?", ExpertDomain.INVESTMENT),
            ("Prep notes for the client pitch with Acme", ExpertDomain.BUSINESS),
            ("Build a better sleep habit", ExpertDomain.PERSONAL),
            ("Pros and cons of intermittent fasting literature", ExpertDomain.RESEARCH),
        ],
    )
    def test_detects_domain(self, query, expected):
        """The best-scoring domain wins."""
        assert KeywordDomainResolver().detect(query) == expected

    def test_matching_is_case_insensitive(self):
        """Keywords match regardless of case."""
        assert KeywordDomainResolver().detect("GITHUB WORKFLOW") == ExpertDomain.TECH

    def test_tie_goes_to_first_declared_domain(self):
        """Equal scores resolve by declaration order (tech before business)."""
        resolver = KeywordDomainResolver()
        scores = resolver.score("project code")
        assert scores[ExpertDomain.TECH] == scores[ExpertDomain.BUSINESS] == 1
        assert resolver.detect("project code") == ExpertDomain.TECH

    def test_declines_when_nothing_matches(self):
        """Zero score declines so the next stage can decide."""
        assert KeywordDomainResolver().detect(E2E_QUERY) is None

    def test_custom_keyword_table(self):
        """A custom table replaces the built-in keywords."""
        resolver = KeywordDomainResolver({ExpertDomain.PERSONAL: ["garden"]})
        assert resolver.detect("garden layout ideas") == ExpertDomain.PERSONAL
        assert resolver.detect("python code") is None

    @pytest.mark.asyncio
    async def test_resolve_matches_detect(self):
        """resolve() is the async face of detect()."""
        resolver = KeywordDomainResolver()
        assert await resolver.resolve("bitcoin dividend") == ExpertDomain.INVESTMENT


class TestModelDomainResolver:
    """Model fallback stage."""

    @pytest.mark.asyncio
    async def test_single_low_temperature_call(self):
        """Exactly one call, temperature 0 and a tiny token budget."""
        llm = _llm("business")
        resolver = ModelDomainResolver(llm, model="gpt-4o-mini")

        assert await resolver.resolve(E2E_QUERY) == ExpertDomain.BUSINESS
        llm.complete.assert_awaited_once()
        kwargs = llm.complete.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0
        assert kwargs["max_tokens"] == 20
        assert "tools" not in kwargs
        assert E2E_QUERY in kwargs["messages"][0]["content"]

    @pytest.mark.parametrize(
        "reply, expected",
        [
            ("tech", ExpertDomain.TECH),
            ("  Investment.\n", ExpertDomain.INVESTMENT),
            ('"personal"', ExpertDomain.PERSONAL),
            ("**research**", ExpertDomain.RESEARCH),
            ("gardening", DEFAULT_DOMAIN),
            ("", DEFAULT_DOMAIN),
        ],
    )
    def test_parse(self, reply, expected):
        """Replies are cleaned; anything unrecognised maps to the default."""
        assert ModelDomainResolver(_llm(), model="m").parse(reply) == expected

    @pytest.mark.asyncio
    async def test_model_error_returns_default(self):
        """A failed call never fails routing."""
        llm = AsyncMock()
        llm.complete = AsyncMock(side_effect=LLMClientError("Rate limited"))
        resolver = ModelDomainResolver(llm, model="m")
        assert await resolver.resolve("anything") == ExpertDomain.RESEARCH


class TestDomainRouter:
    """Resolver chain."""

    @pytest.mark.asyncio
    async def test_keyword_hit_skips_model(self):
        """Stage 2 is not called when stage 1 concludes."""
        llm = _llm("business")
        router = create_domain_router(llm, model="m")
        assert await router.select_persona("Fix this Python bug") == ExpertDomain.TECH
        llm.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_falls_back_to_model(self):
        """No keyword match means one model call decides."""
        llm = _llm("tech")
        router = create_domain_router(llm, model="m")
        assert await router.select_persona(E2E_QUERY) == ExpertDomain.TECH
        llm.complete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_default_when_every_resolver_declines(self):
        """An all-declining chain yields the default domain."""

        class Declines(DomainResolver):
            async def resolve(self, query):
                return None

        router = DomainRouter([Declines(), Declines()], default=ExpertDomain.PERSONAL)
        assert await router.select_persona("x") == ExpertDomain.PERSONAL

    @pytest.mark.asyncio
    async def test_resolvers_run_in_order(self):
        """The first conclusive resolver wins."""

        class Fixed(DomainResolver):
            def __init__(self, domain):
                self.domain = domain

            async def resolve(self, query):
                return self.domain

        router = DomainRouter([Fixed(None), Fixed(ExpertDomain.BUSINESS), Fixed(ExpertDomain.TECH)])
        assert await router.select_persona("x") == ExpertDomain.BUSINESS
