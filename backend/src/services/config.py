"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    openai_api_key: Optional[str] = Field(
        default=None,
        description="API key for the chat-completions endpoint (OPENAI_API_KEY)",
    )
    llm_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of an OpenAI-compatible API (OPENAI_BASE_URL)",
    )
    research_model: str = Field(
        default="gpt-4o",
        description="Model used for the tool-bearing research loop (RESEARCH_AGENT_MODEL)",
    )
    light_model: str = Field(
        default="gpt-4o-mini",
        description=(
            "Model used for casual replies, follow-ups and domain "
            "classification (RESEARCH_LIGHT_MODEL)"
        ),
    )
    tavily_api_key: Optional[str] = Field(
        default=None,
        description="Tavily key for web search; web search is disabled without it",
    )
    max_iterations: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum tool-bearing model calls per research request",
    )
    tool_result_chars: int = Field(
        default=900,
        ge=200,
        le=4000,
        description="Tool result text is cut to this length before it reaches the model",
    )
    follow_up_window: int = Field(
        default=6,
        ge=1,
        le=50,
        description="Number of prior turns sent with a follow-up question",
    )
    session_history_limit: int = Field(
        default=20,
        ge=2,
        le=200,
        description="Turns kept per session by the in-memory session store",
    )
    research_timeout_seconds: float = Field(
        default=180.0,
        gt=0,
        description=(
            "Wall-clock limit on the research loop. When reached, the agent "
            "answers from the evidence gathered so far"
        ),
    )
    tool_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-tool execution limit",
    )
    knowledge_seed_path: Optional[Path] = Field(
        default=None,
        description="JSON file loaded into the in-memory knowledge store at startup",
    )

    @field_validator("openai_api_key", "tavily_api_key", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = str(value).strip()
        return cleaned or None

    @field_validator("knowledge_seed_path", mode="before")
    @classmethod
    def _normalize_seed_path(cls, value: str | Path | None) -> Optional[Path]:
        if value is None or value == "":
            return None
        path = value if isinstance(value, Path) else Path(value)
        return path.expanduser().resolve()

    @property
    def web_search_enabled(self) -> bool:
        return bool(self.tavily_api_key)


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


def _read_int(key: str, default: int) -> int:
    raw = _read_env(key, str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _read_float(key: str, default: float) -> float:
    raw = _read_env(key, str(default))
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    return AppConfig(
        openai_api_key=_read_env("OPENAI_API_KEY"),
        llm_base_url=_read_env("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        research_model=_read_env("RESEARCH_AGENT_MODEL", "gpt-4o"),
        light_model=_read_env("RESEARCH_LIGHT_MODEL", "gpt-4o-mini"),
        tavily_api_key=_read_env("TAVILY_API_KEY"),
        max_iterations=_read_int("RESEARCH_MAX_ITERATIONS", 5),
        tool_result_chars=_read_int("RESEARCH_TOOL_RESULT_CHARS", 900),
        follow_up_window=_read_int("RESEARCH_FOLLOW_UP_WINDOW", 6),
        session_history_limit=_read_int("RESEARCH_SESSION_HISTORY_LIMIT", 20),
        research_timeout_seconds=_read_float("RESEARCH_TIMEOUT_SECONDS", 180.0),
        tool_timeout_seconds=_read_float("RESEARCH_TOOL_TIMEOUT_SECONDS", 30.0),
        knowledge_seed_path=_read_env("KNOWLEDGE_SEED_PATH"),
    )


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = ["AppConfig", "get_config", "reload_config"]
