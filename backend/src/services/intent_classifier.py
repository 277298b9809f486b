"""Intent classifier for the research agent.

Decides whether a message is small talk, a follow-up to the previous
exchange, or a question that needs a full research pass. Pure regex
heuristics, no I/O.

Order of checks:
1. casual patterns win regardless of history
2. follow-up patterns, only reachable when prior turns exist
3. everything else is research

The short-message rule deliberately favours follow-up when history exists.
A missed follow-up costs one unnecessary research pass, while a false
follow-up answers a new question out of context. Keep that bias unless
product behaviour is meant to change.
"""

from __future__ import annotations

import logging
import re
from typing import List, Pattern

from ..models.research import QueryIntent

logger = logging.getLogger(__name__)


# =============================================================================
# Patterns
# =============================================================================

# Matched against the trimmed, lowercased message
CASUAL_PATTERNS: List[Pattern[str]] = [
    re.compile(r"^(hi|hello|hey|howdy|yo|sup)\b"),
    re.compile(r"^how are you"),
    re.compile(r"^how('s| is) it going"),
    re.compile(r"^what'?s up"),
    re.compile(r"^good (morning|afternoon|evening|night)"),
    re.compile(r"^thanks?(\s+you)?( so much| a lot)?[!.?]*$"),
    re.compile(r"^thank you( so much| very much)?[!.?]*$"),
    re.compile(r"^(ok|okay|sure|great|cool|nice|awesome|perfect)[!.?]*$"),
    re.compile(r"^(yes|no|yep|nope|yeah|nah)[!.?]*$"),
    re.compile(r"^(bye|goodbye|see you|later)[!.?]*$"),
    re.compile(r"^(got it|understood|makes sense)[!.?]*$"),
]

FOLLOW_UP_PATTERNS: List[Pattern[str]] = [
    re.compile(r"^tell me more"),
    re.compile(r"^what about\b"),
    re.compile(r"^how about\b"),
    re.compile(r"^why[!.?]*$"),
    re.compile(r"^why (is that|not|so)\b"),
    re.compile(r"^how so\b"),
    re.compile(r"\belaborate\b"),
    re.compile(r"^more[!.?]*$"),
    re.compile(r"^go on\b"),
    re.compile(r"^what else\b"),
    re.compile(r"^expand on\b"),
    re.compile(r"^can you (explain|expand)"),
    re.compile(r"^more (details|info|on that)\b"),
    # Conversational connectives at sentence start
    re.compile(r"^(and|but|so|also|then)\b"),
]

SHORT_MESSAGE_MAX_TOKENS = 4
SHORT_CONTINUATION_PATTERN: Pattern[str] = re.compile(r"^(and|what about)\b")


# =============================================================================
# Classifier Function
# =============================================================================


def classify_query_intent(message: str, has_prior_history: bool) -> QueryIntent:
    """Classify a user message.

    Args:
        message: Raw user message
        has_prior_history: True when the session already has turns

    Returns:
        QueryIntent for the message

    Example:
        >>> classify_query_intent("hey", False)
        <QueryIntent.CASUAL: 'casual'>
        >>> classify_query_intent("what about Sarah?", True)
        <QueryIntent.FOLLOW_UP: 'follow_up'>
        >>> classify_query_intent("what about Sarah?", False)
        <QueryIntent.RESEARCH: 'research'>
    """
    if not message or not isinstance(message, str):
        return QueryIntent.RESEARCH

    normalized = message.strip().lower()
    if not normalized:
        return QueryIntent.RESEARCH

    if _is_casual(normalized):
        return QueryIntent.CASUAL

    if has_prior_history and _is_follow_up(normalized):
        return QueryIntent.FOLLOW_UP

    return QueryIntent.RESEARCH


# =============================================================================
# Helper Functions
# =============================================================================


def _is_casual(text: str) -> bool:
    return any(pattern.search(text) for pattern in CASUAL_PATTERNS)


def _is_follow_up(text: str) -> bool:
    """Explicit continuation phrasing, or a short message that reads like one."""
    if any(pattern.search(text) for pattern in FOLLOW_UP_PATTERNS):
        return True

    tokens = text.split()
    if len(tokens) <= SHORT_MESSAGE_MAX_TOKENS:
        if "?" in text or SHORT_CONTINUATION_PATTERN.match(text):
            logger.debug(f"Short message treated as follow-up: {text!r}")
            return True

    return False


__all__ = [
    "classify_query_intent",
    "CASUAL_PATTERNS",
    "FOLLOW_UP_PATTERNS",
    "SHORT_MESSAGE_MAX_TOKENS",
]
