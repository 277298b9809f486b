"""Research Orchestrator for the Second Brain research agent.

Runs one user message through the agent:
1. Classify intent (casual, follow-up or research)
2. Casual and follow-up messages get a single tool-less reply
3. Research messages pick an expert persona, then run a bounded
   tool-calling loop that gathers cited evidence
4. The loop ends on a ready ``finalize_research`` signal, a plain answer,
   iteration exhaustion or the wall-clock timeout; the last three without
   an answer fall through to one tool-less synthesis call

Model failures are the only terminal errors. They come back as an error
``ResearchResponse``, never as an exception.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ...models.research import (
    ConversationTurn,
    ExpertDomain,
    QueryIntent,
    ResearchResponse,
    ResearchStatus,
    ResearchStep,
    StepKind,
    ToolInvocation,
    ToolOutcome,
)
from ..config import AppConfig, get_config
from ..intent_classifier import classify_query_intent
from ..knowledge_store import get_knowledge_store
from ..llm_client import ChatCompletionClient, LLMClientError, LLMClientProtocol
from ..tavily_service import get_tavily_service
from .citations import CitationLedger, find_missing_citations
from .domain_router import DomainRouter, create_domain_router
from .personas import (
    CASUAL_SYSTEM_PROMPT,
    FINAL_ANSWER_INSTRUCTION,
    FOLLOW_UP_SYSTEM_PROMPT,
    GROUNDING_NUDGE,
    build_research_system_prompt,
)
from .tool_dispatcher import ToolDispatcher
from .tools import FINALIZE_TOOL_NAME, build_default_dispatcher

logger = logging.getLogger(__name__)

CONVERSATIONAL_DOMAIN = ExpertDomain.PERSONAL

CASUAL_FALLBACK = "Hey! How can I help you today?"
FOLLOW_UP_FALLBACK = "Could you clarify what you'd like me to expand on?"
EMPTY_ANSWER_FALLBACK = "Unable to generate response."

OBSERVATION_STEP_CHARS = 500


class _ResearchRun:
    """Mutable state owned by a single research invocation."""

    def __init__(self, domain: ExpertDomain, messages: List[Dict[str, Any]]):
        self.domain = domain
        self.messages = messages
        self.ledger = CitationLedger()
        self.steps: List[ResearchStep] = []
        self.tools_used: List[str] = []
        self.iterations = 0
        self.tools_dispatched = 0
        self.complete = False

    def record_tool(self, name: str) -> None:
        if name not in self.tools_used:
            self.tools_used.append(name)

    def result(self, answer: str) -> ResearchResponse:
        return ResearchResponse(
            status=ResearchStatus.SUCCESS,
            answer=answer,
            domain=self.domain,
            citations=self.ledger.export(),
            steps=self.steps,
            tools_used=list(self.tools_used),
            iterations=self.iterations,
        )

    def failure(self, message: str) -> ResearchResponse:
        return ResearchResponse.failure(
            message,
            domain=self.domain,
            steps=self.steps,
            iterations=self.iterations,
        )


class ResearchOrchestrator:
    """Answers one user message, researching it when needed.

    The orchestrator holds no per-request state; every ``run`` gets its own
    citation ledger, step trace and transcript, so one instance can serve
    concurrent requests.

    Example:
        ```python
        orchestrator = create_research_orchestrator()
        result = await orchestrator.run("What did Sarah say about the pilot?", history=[])
        print(result.answer)
        ```
    """

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        dispatcher: ToolDispatcher,
        router: DomainRouter,
        research_model: str = "gpt-4o",
        light_model: str = "gpt-4o-mini",
        max_iterations: int = 5,
        follow_up_window: int = 6,
        research_timeout: Optional[float] = 180.0,
    ) -> None:
        self.llm_client = llm_client
        self.dispatcher = dispatcher
        self.router = router
        self.research_model = research_model
        self.light_model = light_model
        self.max_iterations = max_iterations
        self.follow_up_window = follow_up_window
        self.research_timeout = research_timeout

    async def run(
        self,
        message: str,
        history: Optional[Sequence[ConversationTurn]] = None,
    ) -> ResearchResponse:
        """Handle one user message given the prior turns of its session."""
        history = list(history or [])
        intent = classify_query_intent(message, has_prior_history=bool(history))
        logger.info(
            f"[RESEARCH] Intent '{intent.value}' for message",
            extra={"intent": intent.value, "history_turns": len(history)},
        )

        if intent == QueryIntent.CASUAL:
            return await self._conversational_reply(
                message,
                history,
                system_prompt=CASUAL_SYSTEM_PROMPT,
                max_tokens=300,
                fallback=CASUAL_FALLBACK,
            )
        if intent == QueryIntent.FOLLOW_UP:
            return await self._conversational_reply(
                message,
                history[-self.follow_up_window:],
                system_prompt=FOLLOW_UP_SYSTEM_PROMPT,
                max_tokens=800,
                fallback=FOLLOW_UP_FALLBACK,
            )
        return await self._research(message, history)

    # =========================================================================
    # Conversational branches
    # =========================================================================

    async def _conversational_reply(
        self,
        message: str,
        history: List[ConversationTurn],
        system_prompt: str,
        max_tokens: int,
        fallback: str,
    ) -> ResearchResponse:
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(_history_messages(history))
        messages.append({"role": "user", "content": message})

        try:
            response = await self.llm_client.complete(
                messages=messages,
                model=self.light_model,
                temperature=0.7,
                max_tokens=max_tokens,
            )
        except LLMClientError as e:
            logger.error(f"[RESEARCH] Conversational reply failed: {e.message}", exc_info=True)
            return ResearchResponse.failure(e.message, domain=CONVERSATIONAL_DOMAIN)

        return ResearchResponse(
            status=ResearchStatus.SUCCESS,
            answer=(response.get("content") or "").strip() or fallback,
            domain=CONVERSATIONAL_DOMAIN,
        )

    # =========================================================================
    # Research branch
    # =========================================================================

    async def _research(self, message: str, history: List[ConversationTurn]) -> ResearchResponse:
        domain = await self.router.select_persona(message)
        today = datetime.now().strftime("%B %d, %Y")
        messages: List[Dict[str, Any]] = [
            {
                "role": "system",
                "content": build_research_system_prompt(domain, today, self.max_iterations),
            }
        ]
        messages.extend(_history_messages(history))
        messages.append({"role": "user", "content": message})

        run = _ResearchRun(domain, messages)
        logger.info(
            f"[RESEARCH] Starting research as '{domain.value}'",
            extra={"domain": domain.value, "max_iterations": self.max_iterations},
        )

        try:
            try:
                async with asyncio.timeout(self.research_timeout):
                    answer = await self._research_loop(run)
            except asyncio.TimeoutError:
                logger.warning(
                    f"[RESEARCH] Research timed out after {self.research_timeout}s "
                    f"({run.iterations} iterations), answering with gathered evidence"
                )
                answer = None

            if answer is None:
                answer = await self._synthesize(run)
        except LLMClientError as e:
            logger.error(f"[RESEARCH] Model call failed: {e.message}", exc_info=True)
            return run.failure(e.message)

        missing = find_missing_citations(answer, run.ledger)
        if missing:
            logger.warning(
                f"[RESEARCH] Answer cites unknown sources: {missing}",
                extra={"missing_citations": missing, "citations": run.ledger.count()},
            )

        logger.info(
            "[RESEARCH] Research complete",
            extra={
                "domain": domain.value,
                "iterations": run.iterations,
                "tools_used": run.tools_used,
                "citations": run.ledger.count(),
            },
        )
        return run.result(answer)

    async def _research_loop(self, run: _ResearchRun) -> Optional[str]:
        """Tool-bearing iterations. Returns the answer, or None to synthesize one."""
        tools = self.dispatcher.schemas()

        while run.iterations < self.max_iterations and not run.complete:
            run.iterations += 1
            # Tool use stays forced until something has actually been looked up
            tool_choice = "required" if run.tools_dispatched == 0 else "auto"

            response = await self.llm_client.complete(
                messages=run.messages,
                model=self.research_model,
                tools=tools,
                tool_choice=tool_choice,
                temperature=0.3,
                max_tokens=1500,
            )
            content = response.get("content") or ""
            tool_calls = response.get("tool_calls") or []

            if not tool_calls:
                if run.tools_dispatched > 0 and content.strip():
                    logger.info(f"[RESEARCH] Answer produced on iteration {run.iterations}")
                    return content.strip()
                if run.tools_dispatched == 0:
                    logger.warning(
                        f"[RESEARCH] Iteration {run.iterations} answered without a tool, nudging"
                    )
                    if content:
                        run.messages.append({"role": "assistant", "content": content})
                    run.messages.append({"role": "user", "content": GROUNDING_NUDGE})
                    continue
                return None

            await self._run_tool_calls(run, content, tool_calls)

        if run.complete:
            logger.info(f"[RESEARCH] Research finalized on iteration {run.iterations}")
        else:
            logger.info(f"[RESEARCH] Iteration limit reached ({self.max_iterations})")
        return None

    async def _run_tool_calls(
        self,
        run: _ResearchRun,
        content: str,
        tool_calls: List[Dict[str, Any]],
    ) -> None:
        """Dispatch one iteration's tool calls concurrently, then record them in issue order."""
        invocations = [_parse_tool_call(call, index) for index, call in enumerate(tool_calls)]
        logger.info(
            f"[RESEARCH] Iteration {run.iterations}: {len(invocations)} tool call(s)",
            extra={"tools": [inv.name for inv in invocations]},
        )

        outcomes: List[ToolOutcome] = await asyncio.gather(
            *(self.dispatcher.dispatch(inv, run.ledger) for inv in invocations)
        )

        run.messages.append({
            "role": "assistant",
            "content": content or None,
            "tool_calls": [
                {
                    "id": inv.call_id,
                    "type": "function",
                    "function": {
                        "name": inv.name,
                        "arguments": _raw_arguments(call),
                    },
                }
                for inv, call in zip(invocations, tool_calls)
            ],
        })

        for invocation, outcome in zip(invocations, outcomes):
            if self.dispatcher.has(invocation.name):
                run.record_tool(invocation.name)
            # Only a lookup that actually ran lifts forced tool use
            if outcome.executed and invocation.name != FINALIZE_TOOL_NAME:
                run.tools_dispatched += 1

            run.steps.append(
                ResearchStep(
                    kind=StepKind.TOOL_CALL,
                    text=f"Using {invocation.name}: {json.dumps(invocation.arguments)}",
                    tool_name=invocation.name,
                    tool_args=invocation.arguments,
                )
            )
            run.steps.append(
                ResearchStep(
                    kind=StepKind.OBSERVATION,
                    text=outcome.text[:OBSERVATION_STEP_CHARS],
                    tool_name=invocation.name,
                    sources=list(outcome.citations),
                )
            )
            run.messages.append({
                "role": "tool",
                "tool_call_id": invocation.call_id,
                "content": outcome.text,
            })

            if invocation.name == FINALIZE_TOOL_NAME and outcome.complete:
                run.complete = True

    async def _synthesize(self, run: _ResearchRun) -> str:
        """One tool-less call that turns the transcript into the final answer."""
        run.messages.append({"role": "user", "content": FINAL_ANSWER_INSTRUCTION})
        response = await self.llm_client.complete(
            messages=run.messages,
            model=self.research_model,
            temperature=0.5,
            max_tokens=2000,
        )
        return (response.get("content") or "").strip() or EMPTY_ANSWER_FALLBACK


def _history_messages(history: Sequence[ConversationTurn]) -> List[Dict[str, str]]:
    return [{"role": turn.role, "content": turn.content} for turn in history]


def _raw_arguments(tool_call: Dict[str, Any]) -> str:
    raw = (tool_call.get("function") or {}).get("arguments")
    if isinstance(raw, str):
        return raw
    return json.dumps(raw or {})


def _parse_tool_call(tool_call: Dict[str, Any], index: int) -> ToolInvocation:
    """Convert an OpenAI-format tool call into a ToolInvocation.

    Bad argument JSON is carried as ``parse_error`` so the dispatcher can
    report it to the model instead of aborting the loop.
    """
    function = tool_call.get("function") or {}
    name = function.get("name") or ""
    call_id = tool_call.get("id") or f"call_{index}"
    raw = function.get("arguments")

    if raw is None or raw == "":
        return ToolInvocation(name=name, arguments={}, call_id=call_id)
    if isinstance(raw, dict):
        return ToolInvocation(name=name, arguments=raw, call_id=call_id)

    try:
        arguments = json.loads(raw)
    except (TypeError, ValueError) as e:
        return ToolInvocation(name=name, arguments={}, call_id=call_id, parse_error=str(e))
    if not isinstance(arguments, dict):
        return ToolInvocation(
            name=name,
            arguments={},
            call_id=call_id,
            parse_error="arguments must be a JSON object",
        )
    return ToolInvocation(name=name, arguments=arguments, call_id=call_id)


def create_research_orchestrator(
    config: Optional[AppConfig] = None,
    llm_client: Optional[LLMClientProtocol] = None,
    dispatcher: Optional[ToolDispatcher] = None,
) -> ResearchOrchestrator:
    """Build an orchestrator wired to the configured services.

    Raises:
        ValueError: If no model client is given and OPENAI_API_KEY is not set.
    """
    config = config or get_config()

    if llm_client is None:
        if not config.openai_api_key:
            raise ValueError("OPENAI_API_KEY not configured")
        llm_client = ChatCompletionClient(
            api_key=config.openai_api_key,
            base_url=config.llm_base_url,
        )

    if dispatcher is None:
        web_search = get_tavily_service(config.tavily_api_key) if config.web_search_enabled else None
        dispatcher = build_default_dispatcher(
            knowledge_store=get_knowledge_store(config.knowledge_seed_path),
            web_search=web_search,
            max_result_chars=config.tool_result_chars,
            default_timeout=config.tool_timeout_seconds,
        )

    return ResearchOrchestrator(
        llm_client=llm_client,
        dispatcher=dispatcher,
        router=create_domain_router(llm_client, config.light_model),
        research_model=config.research_model,
        light_model=config.light_model,
        max_iterations=config.max_iterations,
        follow_up_window=config.follow_up_window,
        research_timeout=config.research_timeout_seconds,
    )


__all__ = [
    "ResearchOrchestrator",
    "create_research_orchestrator",
    "CONVERSATIONAL_DOMAIN",
    "EMPTY_ANSWER_FALLBACK",
]
