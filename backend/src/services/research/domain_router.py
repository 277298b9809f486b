"""Domain routing for research questions.

Resolvers are tried in order until one returns a domain:
1. KeywordDomainResolver - synchronous keyword scoring, no model call
2. ModelDomainResolver - one low-temperature classification call

The keyword stage exists to skip the model round-trip whenever vocabulary
alone settles the domain.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from ...models.research import ExpertDomain
from ..llm_client import LLMClientError, LLMClientProtocol
from .personas import DOMAIN_KEYWORDS, build_domain_classification_prompt

logger = logging.getLogger(__name__)

DEFAULT_DOMAIN = ExpertDomain.RESEARCH


class DomainResolver(ABC):
    """One stage of the routing chain."""

    name: str = "resolver"

    @abstractmethod
    async def resolve(self, query: str) -> Optional[ExpertDomain]:
        """Return a domain, or None to let the next resolver decide."""


class KeywordDomainResolver(DomainResolver):
    """Scores the query against per-domain keyword lists.

    One point per keyword found as a case-insensitive substring. The highest
    score wins; ties go to the domain declared first in ``ExpertDomain``.
    Declines when nothing matches.
    """

    name = "keywords"

    def __init__(self, keywords: Optional[Dict[ExpertDomain, List[str]]] = None):
        self.keywords = keywords or DOMAIN_KEYWORDS

    def score(self, query: str) -> Dict[ExpertDomain, int]:
        query_lower = f" {query.lower()} "
        return {
            domain: sum(1 for kw in self.keywords.get(domain, []) if kw in query_lower)
            for domain in ExpertDomain
        }

    def detect(self, query: str) -> Optional[ExpertDomain]:
        scores = self.score(query)
        best_domain: Optional[ExpertDomain] = None
        best_score = 0
        for domain in ExpertDomain:
            if scores[domain] > best_score:
                best_domain = domain
                best_score = scores[domain]
        return best_domain

    async def resolve(self, query: str) -> Optional[ExpertDomain]:
        return self.detect(query)


class ModelDomainResolver(DomainResolver):
    """Asks the model to name a domain.

    Always concludes: an unrecognised reply or a failed call yields the
    default domain, since routing is advisory and must not fail a request.
    """

    name = "model"

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        model: str,
        default: ExpertDomain = DEFAULT_DOMAIN,
    ):
        self.llm_client = llm_client
        self.model = model
        self.default = default

    async def resolve(self, query: str) -> Optional[ExpertDomain]:
        try:
            response = await self.llm_client.complete(
                messages=[{"role": "user", "content": build_domain_classification_prompt(query)}],
                model=self.model,
                temperature=0,
                max_tokens=20,
            )
        except LLMClientError as e:
            logger.warning(f"[ROUTER] Domain classification call failed: {e.message}")
            return self.default

        return self.parse(response.get("content") or "")

    def parse(self, reply: str) -> ExpertDomain:
        cleaned = reply.strip().strip(".\"'`*").lower()
        try:
            return ExpertDomain(cleaned)
        except ValueError:
            logger.info(f"[ROUTER] Unrecognised domain reply {reply!r}, using {self.default.value}")
            return self.default


class DomainRouter:
    """Runs resolvers in order and returns the first conclusive domain."""

    def __init__(
        self,
        resolvers: Sequence[DomainResolver],
        default: ExpertDomain = DEFAULT_DOMAIN,
    ):
        self.resolvers = list(resolvers)
        self.default = default

    async def select_persona(self, query: str) -> ExpertDomain:
        for resolver in self.resolvers:
            domain = await resolver.resolve(query)
            if domain is not None:
                logger.info(f"[ROUTER] Domain '{domain.value}' chosen by {resolver.name}")
                return domain
        return self.default


def create_domain_router(llm_client: LLMClientProtocol, model: str) -> DomainRouter:
    """Keyword stage first, model fallback second."""
    return DomainRouter([
        KeywordDomainResolver(),
        ModelDomainResolver(llm_client, model),
    ])


__all__ = [
    "DEFAULT_DOMAIN",
    "DomainResolver",
    "KeywordDomainResolver",
    "ModelDomainResolver",
    "DomainRouter",
    "create_domain_router",
]
