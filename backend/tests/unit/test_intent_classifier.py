"""Unit tests for intent_classifier.py.

Tests cover:
- Casual messages regardless of history
- Follow-up phrasing, only when history exists
- The short-message rule and its bias towards follow-up
- Research as the default
- Edge cases (empty, whitespace, non-string input)
"""

import pytest

from backend.src.models.research import QueryIntent
from backend.src.services.intent_classifier import (
    SHORT_MESSAGE_MAX_TOKENS,
    classify_query_intent,
)


# =============================================================================
# Test: Determinism Cases
# =============================================================================


class TestReferenceCases:
    """Fixed cases the classifier must always get right."""

    def test_greeting_without_history_is_casual(self):
        """'hey' with no history is casual."""
        assert classify_query_intent("hey", False) == QueryIntent.CASUAL

    def test_what_about_with_history_is_follow_up(self):
        """'what about Sarah?' continues a conversation when history exists."""
        assert classify_query_intent("what about Sarah?", True) == QueryIntent.FOLLOW_UP

    def test_what_about_without_history_is_research(self):
        """Without history there is nothing to follow up on."""
        assert classify_query_intent("what about Sarah?", False) == QueryIntent.RESEARCH

    def test_comparison_question_is_research_even_with_history(self):
        """A full question is research even inside a conversation."""
        assert (
            classify_query_intent("Compare React and Vue for a new project", True)
            == QueryIntent.RESEARCH
        )

    def test_same_input_same_output(self):
        """Classification is a pure function of its inputs."""
        results = {classify_query_intent("tell me more", True) for _ in range(5)}
        assert results == {QueryIntent.FOLLOW_UP}


# =============================================================================
# Test: CASUAL
# =============================================================================


class TestCasualClassification:
    """Small talk is casual with or without history."""

    @pytest.mark.parametrize(
        "message",
        [
            "hi",
            "Hello!",
            "hey there",
            "Good morning",
            "how are you doing?",
            "what's up",
            "thanks",
            "Thank you so much!",
            "ok",
            "cool",
            "yep",
            "bye",
            "got it",
        ],
    )
    @pytest.mark.parametrize("has_history", [False, True])
    def test_casual_messages(self, message: str, has_history: bool):
        """Greetings, thanks, acknowledgements and farewells are casual."""
        assert classify_query_intent(message, has_history) == QueryIntent.CASUAL

    def test_casual_wins_over_short_message_rule(self):
        """A short greeting with a question mark stays casual."""
        assert classify_query_intent("how are you?", True) == QueryIntent.CASUAL

    def test_thanks_inside_a_request_is_not_casual(self):
        """Thanks followed by a new request is not small talk."""
        message = "thanks, now find my notes on the Acme partnership"
        assert classify_query_intent(message, False) == QueryIntent.RESEARCH


# =============================================================================
# Test: FOLLOW_UP
# =============================================================================


class TestFollowUpClassification:
    """Continuation phrasing is a follow-up only when history exists."""

    @pytest.mark.parametrize(
        "message",
        [
            "tell me more",
            "Tell me more about the pricing model",
            "what about the second option",
            "how about next quarter",
            "why?",
            "why is that the case for our team",
            "how so",
            "can you elaborate on the risks",
            "more",
            "go on",
            "what else should I consider here",
            "expand on the migration plan",
            "can you explain that in simpler terms",
            "and the budget for it next year",
            "but what does that mean for the launch plan",
            "so which one would you pick then",
        ],
    )
    def test_follow_up_with_history(self, message: str):
        """Continuation phrasing with history is a follow-up."""
        assert classify_query_intent(message, True) == QueryIntent.FOLLOW_UP

    @pytest.mark.parametrize(
        "message",
        ["tell me more", "why?", "and the budget for it next year", "what about Sarah?"],
    )
    def test_follow_up_phrasing_without_history_is_research(self, message: str):
        """With no prior turns, follow-up phrasing falls through to research."""
        assert classify_query_intent(message, False) == QueryIntent.RESEARCH

    def test_connective_must_be_a_whole_word(self):
        """'Android' starts with 'and' but is not a connective."""
        message = "Android vs iOS market share in Europe this year"
        assert classify_query_intent(message, True) == QueryIntent.RESEARCH


class TestShortMessageRule:
    """Short messages with history lean towards follow-up."""

    def test_short_question_is_follow_up(self):
        """A question of a few words is read as continuing the thread."""
        assert classify_query_intent("Sarah's company?", True) == QueryIntent.FOLLOW_UP

    def test_short_question_at_token_limit(self):
        """Exactly the maximum token count still qualifies."""
        message = " ".join(["word"] * (SHORT_MESSAGE_MAX_TOKENS - 1)) + " right?"
        assert len(message.split()) == SHORT_MESSAGE_MAX_TOKENS
        assert classify_query_intent(message, True) == QueryIntent.FOLLOW_UP

    def test_question_over_token_limit_is_research(self):
        """One token over the limit is a new question."""
        message = "who leads the design team?"
        assert len(message.split()) == SHORT_MESSAGE_MAX_TOKENS + 1
        assert classify_query_intent(message, True) == QueryIntent.RESEARCH

    def test_short_statement_without_question_mark_is_research(self):
        """Short messages need a '?' or a continuation prefix."""
        assert classify_query_intent("Acme pricing page", True) == QueryIntent.RESEARCH

    @pytest.mark.parametrize("message", [
        "Android release notes",
        "Anderson contract status",
        "Andrew's onboarding plan",
    ])
    def test_short_message_prefix_must_be_a_whole_word(self, message):
        """Names that merely start with 'and' are new questions."""
        assert classify_query_intent(message, True) == QueryIntent.RESEARCH

    def test_short_message_with_connective(self):
        """A short 'and ...' message continues the thread."""
        assert classify_query_intent("and the budget", True) == QueryIntent.FOLLOW_UP


# =============================================================================
# Test: RESEARCH and edge cases
# =============================================================================


class TestResearchClassification:
    """Everything else is research."""

    @pytest.mark.parametrize(
        "message",
        [
            "What do I know about headless CMS vendors?",
            "Summarize my notes on the Q2 roadmap",
            "Who did I meet at the fintech conference last month?",
        ],
    )
    @pytest.mark.parametrize("has_history", [False, True])
    def test_questions_are_research(self, message: str, has_history: bool):
        """Substantive questions need a research pass."""
        assert classify_query_intent(message, has_history) == QueryIntent.RESEARCH


class TestEdgeCases:
    """Degenerate input defaults to research."""

    @pytest.mark.parametrize("message", ["", "   ", "\n\t"])
    def test_blank_input_is_research(self, message: str):
        """Empty and whitespace-only messages are research."""
        assert classify_query_intent(message, True) == QueryIntent.RESEARCH

    def test_non_string_input_is_research(self):
        """Non-string input does not raise."""
        assert classify_query_intent(None, True) == QueryIntent.RESEARCH  # type: ignore[arg-type]

    def test_surrounding_whitespace_is_ignored(self):
        """Messages are trimmed before matching."""
        assert classify_query_intent("   hello   ", False) == QueryIntent.CASUAL
