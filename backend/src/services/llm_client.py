"""Chat-completions client for the research agent.

Thin httpx wrapper over an OpenAI-compatible ``/chat/completions`` endpoint
with tool calling. Every transport, HTTP or parsing failure is raised as
``LLMClientError`` so callers have a single terminal error to handle.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Union

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"

ToolChoice = Union[str, Dict[str, Any]]


class LLMClientError(Exception):
    """Raised when a model call fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class LLMClientProtocol(Protocol):
    """What the orchestrator and domain router need from a model client."""

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[ToolChoice] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        ...


class ChatCompletionClient:
    """HTTP client for OpenAI-compatible chat completions.

    Example:
        >>> client = ChatCompletionClient(api_key="sk-...")
        >>> result = await client.complete(
        ...     messages=[{"role": "user", "content": "Hello"}],
        ...     model="gpt-4o-mini",
        ... )
        >>> print(result["content"])
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Bearer token for the endpoint.
            base_url: API base URL, without the ``/chat/completions`` suffix.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[ToolChoice] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Make a non-streaming completion request.

        Returns:
            Response dict with:
            - content: Response text ("" when the model only called tools)
            - tool_calls: List of OpenAI-format tool calls, or None
            - finish_reason: Why generation stopped
            - usage: Token usage stats

        Raises:
            LLMClientError: On timeout, HTTP error status or malformed body.
        """
        request_body = self._build_request(
            messages,
            model,
            tools=tools,
            tool_choice=tool_choice,
            max_tokens=max_tokens,
            temperature=temperature,
        )

        logger.info(f"[LLMClient] Request to {model}")
        logger.debug(
            f"[LLMClient] Messages: {len(messages)}, tools: {len(tools or [])}, "
            f"tool_choice: {tool_choice}"
        )

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self._base_url}/chat/completions",
                    headers=self._get_headers(),
                    json=request_body,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            body = e.response.text[:500] if e.response.text else "No details"
            logger.error(f"[LLMClient] API error: {status_code} - {body}")
            if status_code == 429:
                message = "Rate limited - please wait a moment and try again"
            elif status_code in (401, 403):
                message = "Model API rejected the credentials"
            elif status_code == 503:
                message = "Model service temporarily unavailable - please try again"
            else:
                message = f"Model API error: {status_code}"
            raise LLMClientError(message, {"status_code": status_code, "body": body}) from e
        except httpx.TimeoutException as e:
            logger.error("[LLMClient] API timeout")
            raise LLMClientError("Model request timed out - please try again") from e
        except httpx.HTTPError as e:
            logger.error(f"[LLMClient] Transport error: {e}")
            raise LLMClientError(f"Model request failed: {e}") from e
        except ValueError as e:
            logger.error(f"[LLMClient] Invalid JSON response: {e}")
            raise LLMClientError("Model API returned an invalid response") from e

        result = self._parse_response(data)
        usage = result.get("usage") or {}
        logger.debug(
            "[LLMClient] Completion finished",
            extra={
                "model": model,
                "prompt_tokens": usage.get("prompt_tokens"),
                "completion_tokens": usage.get("completion_tokens"),
                "tool_calls": len(result["tool_calls"] or []),
            },
        )
        return result

    def _build_request(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[ToolChoice] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Build the API request body."""
        request: Dict[str, Any] = {
            "model": model,
            "messages": messages,
        }

        if tools:
            request["tools"] = tools
            request["tool_choice"] = tool_choice or "auto"

        if max_tokens:
            request["max_tokens"] = max_tokens

        if temperature is not None:
            request["temperature"] = temperature

        return request

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _parse_response(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Parse non-streaming API response."""
        if not isinstance(data, dict):
            raise LLMClientError("Model API returned an invalid response")

        choices = data.get("choices") or []
        if not choices:
            raise LLMClientError(
                "Model API returned no choices",
                {"error": data.get("error")},
            )

        choice = choices[0]
        message = choice.get("message") or {}

        return {
            "content": message.get("content") or "",
            "tool_calls": message.get("tool_calls") or None,
            "finish_reason": choice.get("finish_reason", "stop"),
            "usage": data.get("usage", {}),
        }


__all__ = [
    "ChatCompletionClient",
    "LLMClientError",
    "LLMClientProtocol",
    "DEFAULT_BASE_URL",
]
