"""Tests for the tool registry and dispatch error handling."""

import asyncio

import pytest
from pydantic import BaseModel, Field

from backend.src.models.research import KnowledgeCitation, ToolInvocation, ToolOutcome
from backend.src.services.research.citations import CitationLedger
from backend.src.services.research.tool_dispatcher import (
    TRUNCATION_MARKER,
    ToolContext,
    ToolDispatcher,
    ToolSpec,
)


class EchoArgs(BaseModel):
    text: str = Field(..., min_length=1, description="Text to echo")
    times: int = Field(default=1, ge=1, le=3)


async def _echo(args: EchoArgs, ctx: ToolContext) -> ToolOutcome:
    return ToolOutcome(text=" ".join([args.text] * args.times))


async def _cite(args: EchoArgs, ctx: ToolContext) -> ToolOutcome:
    citation = ctx.ledger.register(KnowledgeCitation(item_id=args.text, title=args.text))
    return ToolOutcome(text=f"[{citation.number}] {args.text}", citations=[citation])


async def _boom(args: EchoArgs, ctx: ToolContext) -> ToolOutcome:
    raise RuntimeError("provider exploded")


async def _slow(args: EchoArgs, ctx: ToolContext) -> ToolOutcome:
    await asyncio.sleep(5)
    return ToolOutcome(text="too late")


def _dispatcher(**kwargs) -> ToolDispatcher:
    dispatcher = ToolDispatcher(**kwargs)
    dispatcher.register(ToolSpec("echo", "Echo text back", EchoArgs, _echo))
    dispatcher.register(ToolSpec("cite", "Cite text", EchoArgs, _cite))
    dispatcher.register(ToolSpec("boom", "Always fails", EchoArgs, _boom))
    dispatcher.register(ToolSpec("slow", "Never finishes in time", EchoArgs, _slow, timeout=0.05))
    return dispatcher


def _call(name: str, **arguments) -> ToolInvocation:
    return ToolInvocation(name=name, arguments=arguments, call_id=f"call_{name}")


class TestRegistry:
    """Registration and schema export."""

    def test_names_in_registration_order(self):
        """names() lists tools in the order they were registered."""
        assert _dispatcher().names() == ["echo", "cite", "boom", "slow"]

    def test_duplicate_registration_rejected(self):
        """A name can only be registered once."""
        dispatcher = _dispatcher()
        with pytest.raises(ValueError, match="already registered"):
            dispatcher.register(ToolSpec("echo", "again", EchoArgs, _echo))

    def test_schema_derived_from_args_model(self):
        """The model-facing schema comes from the pydantic model."""
        schema = _dispatcher().schemas()[0]
        assert schema["type"] == "function"
        function = schema["function"]
        assert function["name"] == "echo"
        assert function["description"] == "Echo text back"
        params = function["parameters"]
        assert params["type"] == "object"
        assert params["required"] == ["text"]
        assert params["properties"]["text"]["description"] == "Text to echo"
        assert "title" not in params
        assert "title" not in params["properties"]["text"]

    def test_timeouts(self):
        """Per-tool timeouts override the dispatcher default."""
        dispatcher = _dispatcher(default_timeout=12)
        assert dispatcher.get_timeout("slow") == 0.05
        assert dispatcher.get_timeout("echo") == 12
        assert dispatcher.get_timeout("missing") == 12


class TestDispatch:
    """Successful dispatch."""

    @pytest.mark.asyncio
    async def test_validated_arguments_reach_handler(self):
        """Arguments are validated and defaults applied."""
        outcome = await _dispatcher().dispatch(_call("echo", text="hi", times=2), CitationLedger())
        assert outcome.text == "hi hi"
        assert outcome.citations == []
        assert outcome.complete is False
        assert outcome.executed is True

    @pytest.mark.asyncio
    async def test_handler_registers_citations(self):
        """Handlers number their evidence in the shared ledger."""
        dispatcher = _dispatcher()
        ledger = CitationLedger()
        first = await dispatcher.dispatch(_call("cite", text="a"), ledger)
        second = await dispatcher.dispatch(_call("cite", text="b"), ledger)
        again = await dispatcher.dispatch(_call("cite", text="a"), ledger)

        assert [c.number for c in first.citations + second.citations + again.citations] == [1, 2, 1]
        assert ledger.count() == 2

    @pytest.mark.asyncio
    async def test_long_results_truncated(self):
        """Result text never exceeds the configured budget."""
        dispatcher = _dispatcher(max_result_chars=200)
        outcome = await dispatcher.dispatch(_call("echo", text="x" * 150, times=3), CitationLedger())
        assert len(outcome.text) == 200
        assert outcome.text.endswith(TRUNCATION_MARKER)

    @pytest.mark.asyncio
    async def test_short_results_untouched(self):
        """Text inside the budget is returned as is."""
        outcome = await _dispatcher(max_result_chars=200).dispatch(
            _call("echo", text="short"), CitationLedger()
        )
        assert outcome.text == "short"


class TestDispatchFailures:
    """Every failure becomes an outcome the model can read."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        """Hallucinated tool names get a harmless outcome listing real tools."""
        outcome = await _dispatcher().dispatch(_call("search_everything", q="x"), CitationLedger())
        assert outcome.text.startswith("Unknown tool: search_everything.")
        assert "echo" in outcome.text
        assert outcome.citations == []
        assert outcome.executed is False

    @pytest.mark.asyncio
    async def test_unparseable_arguments(self):
        """Raw JSON that failed to parse is reported, not raised."""
        invocation = ToolInvocation(
            name="echo", arguments={}, call_id="c1", parse_error="Expecting value"
        )
        outcome = await _dispatcher().dispatch(invocation, CitationLedger())
        assert "Could not read the arguments for echo" in outcome.text
        assert "Expecting value" in outcome.text

    @pytest.mark.asyncio
    async def test_invalid_arguments(self):
        """Schema violations name the offending field."""
        outcome = await _dispatcher().dispatch(_call("echo", text="hi", times=9), CitationLedger())
        assert outcome.text.startswith("Invalid arguments for echo:")
        assert "times" in outcome.text
        assert outcome.executed is False

    @pytest.mark.asyncio
    async def test_missing_required_argument(self):
        """A missing required field is a validation failure."""
        outcome = await _dispatcher().dispatch(_call("echo"), CitationLedger())
        assert "text" in outcome.text
        assert outcome.text.startswith("Invalid arguments for echo:")

    @pytest.mark.asyncio
    async def test_handler_exception(self):
        """Collaborator exceptions stay inside the dispatcher."""
        outcome = await _dispatcher().dispatch(_call("boom", text="x"), CitationLedger())
        assert outcome.text.startswith("boom failed: provider exploded")
        assert outcome.executed is True

    @pytest.mark.asyncio
    async def test_handler_timeout(self):
        """Slow tools are cut off with a descriptive outcome."""
        outcome = await _dispatcher().dispatch(_call("slow", text="x"), CitationLedger())
        assert outcome.text.startswith("slow timed out after 0.05 seconds")
