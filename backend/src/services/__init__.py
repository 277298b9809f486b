"""Service layer for business logic and external integrations."""

from .config import AppConfig, get_config, reload_config
from .intent_classifier import classify_query_intent
from .knowledge_store import InMemoryKnowledgeStore, get_knowledge_store
from .llm_client import ChatCompletionClient, LLMClientError
from .session_store import InMemorySessionStore, SessionStore, get_session_store
from .tavily_service import TavilySearchService, get_tavily_service

__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "classify_query_intent",
    "InMemoryKnowledgeStore",
    "get_knowledge_store",
    "ChatCompletionClient",
    "LLMClientError",
    "InMemorySessionStore",
    "SessionStore",
    "get_session_store",
    "TavilySearchService",
    "get_tavily_service",
]
