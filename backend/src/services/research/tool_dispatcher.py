"""Tool Dispatcher - routes model tool calls to registered handlers.

Every tool is a ``ToolSpec``: a name, a description, a pydantic model for
its arguments (from which the JSON schema shown to the model is derived)
and an async handler. Dispatch never raises. Unknown names, unparseable or
invalid arguments, handler exceptions and timeouts all come back as a
``ToolOutcome`` whose text tells the model what went wrong.

Handlers register their evidence in the session's ``CitationLedger``
themselves and return the numbered citations they surfaced.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from ...models.research import ToolInvocation, ToolOutcome
from .citations import CitationLedger

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n... [truncated]"


@dataclass
class ToolContext:
    """Per-call context handed to handlers."""

    ledger: CitationLedger
    max_chars: int


ToolHandler = Callable[[Any, ToolContext], Awaitable[ToolOutcome]]


@dataclass
class ToolSpec:
    """A tool the model may call."""

    name: str
    description: str
    args_model: Type[BaseModel]
    handler: ToolHandler
    timeout: Optional[float] = None  # falls back to the dispatcher default

    def to_schema(self) -> Dict[str, Any]:
        """OpenAI function-calling schema for this tool."""
        parameters = _strip_titles(self.args_model.model_json_schema())
        parameters.setdefault("properties", {})
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }


class ToolDispatcher:
    """Registry of research tools.

    Attributes:
        DEFAULT_TIMEOUT: Default per-tool timeout in seconds
        DEFAULT_MAX_RESULT_CHARS: Default cap on result text fed to the model
    """

    DEFAULT_TIMEOUT: float = 30.0
    DEFAULT_MAX_RESULT_CHARS: int = 900

    def __init__(
        self,
        max_result_chars: Optional[int] = None,
        default_timeout: Optional[float] = None,
    ) -> None:
        self.max_result_chars = max_result_chars or self.DEFAULT_MAX_RESULT_CHARS
        self._default_timeout = default_timeout or self.DEFAULT_TIMEOUT
        self._tools: Dict[str, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = spec

    def has(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> List[str]:
        return list(self._tools)

    def schemas(self) -> List[Dict[str, Any]]:
        return [spec.to_schema() for spec in self._tools.values()]

    def get_timeout(self, name: str) -> float:
        spec = self._tools.get(name)
        if spec is not None and spec.timeout is not None:
            return spec.timeout
        return self._default_timeout

    async def dispatch(self, invocation: ToolInvocation, ledger: CitationLedger) -> ToolOutcome:
        """Execute one tool call. Never raises (except on cancellation)."""
        name = invocation.name
        spec = self._tools.get(name)

        if spec is None:
            logger.warning(f"[TOOL] Unknown tool requested: {name}")
            return ToolOutcome(
                text=f"Unknown tool: {name}. Available tools: {', '.join(self.names())}."
            )

        if invocation.parse_error:
            logger.warning(f"[TOOL] Unparseable arguments for {name}: {invocation.parse_error}")
            return ToolOutcome(
                text=(
                    f"Could not read the arguments for {name}: {invocation.parse_error}. "
                    "Send the arguments as a JSON object."
                )
            )

        try:
            args = spec.args_model.model_validate(invocation.arguments)
        except ValidationError as e:
            problems = _describe_validation_error(e)
            logger.warning(f"[TOOL] Invalid arguments for {name}: {problems}")
            return ToolOutcome(text=f"Invalid arguments for {name}: {problems}")

        timeout = self.get_timeout(name)
        logger.info(
            f"[TOOL] Executing {name}",
            extra={
                "tool": name,
                "call_id": invocation.call_id,
                "args_keys": list(invocation.arguments.keys()),
                "timeout": timeout,
            },
        )

        try:
            async with asyncio.timeout(timeout):
                outcome = await spec.handler(
                    args, ToolContext(ledger=ledger, max_chars=self.max_result_chars)
                )
        except asyncio.TimeoutError:
            logger.warning(f"[TOOL] {name} timed out after {timeout}s")
            return ToolOutcome(
                text=(
                    f"{name} timed out after {timeout:g} seconds. "
                    "Try a narrower request or a different tool."
                ),
                executed=True,
            )
        except Exception as e:
            logger.warning(f"[TOOL] {name} failed: {e}", exc_info=True)
            return ToolOutcome(
                text=f"{name} failed: {e}. Try a different tool or rephrase the request.",
                executed=True,
            )

        outcome.executed = True
        return self._truncate(outcome)

    def _truncate(self, outcome: ToolOutcome) -> ToolOutcome:
        limit = self.max_result_chars
        if len(outcome.text) <= limit:
            return outcome
        keep = max(0, limit - len(TRUNCATION_MARKER))
        outcome.text = outcome.text[:keep] + TRUNCATION_MARKER
        return outcome


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{location}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


def _strip_titles(schema: Any) -> Any:
    """Drop pydantic's auto-generated ``title`` strings from a JSON schema."""
    if isinstance(schema, dict):
        return {
            key: _strip_titles(value)
            for key, value in schema.items()
            if not (key == "title" and isinstance(value, str))
        }
    if isinstance(schema, list):
        return [_strip_titles(item) for item in schema]
    return schema


__all__ = ["ToolContext", "ToolHandler", "ToolSpec", "ToolDispatcher", "TRUNCATION_MARKER"]
