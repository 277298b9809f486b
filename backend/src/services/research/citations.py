"""Citation ledger for a single research session.

Maps each distinct piece of evidence to a stable reference number. The
model cites sources as ``[1]``, ``[2]``... so numbering must be gap-free,
assigned in first-seen order, and idempotent when the same source is
surfaced again by a later tool call.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Union

from ...models.research import KnowledgeCitation, WebCitation

Evidence = Union[KnowledgeCitation, WebCitation]

_MARKER_RE = re.compile(r"\[(\d+)\]")


class CitationLedger:
    """Append-only, deduplicating registry of evidence.

    Keyed by ``external_key`` (item id, else URL, else title). ``add`` does
    not await, so check-and-insert is atomic on a single event loop.
    """

    def __init__(self) -> None:
        self._citations: Dict[str, Evidence] = {}
        self._counter = 1

    def add(self, evidence: Evidence) -> str:
        """Register evidence and return its reference marker, e.g. ``"[3]"``."""
        return f"[{self.register(evidence).number}]"

    def register(self, evidence: Evidence) -> Evidence:
        """Register evidence and return the numbered citation stored for it."""
        key = evidence.external_key
        existing = self._citations.get(key)
        if existing is not None:
            return existing

        numbered = evidence.model_copy(update={"number": self._counter})
        self._counter += 1
        self._citations[key] = numbered
        return numbered

    def add_many(self, evidence: Iterable[Evidence]) -> List[str]:
        return [self.add(e) for e in evidence]

    def get(self, number: int) -> Optional[Evidence]:
        for citation in self._citations.values():
            if citation.number == number:
                return citation
        return None

    def export(self) -> List[Evidence]:
        """All citations ordered by number."""
        return sorted(self._citations.values(), key=lambda c: c.number)

    def is_empty(self) -> bool:
        return not self._citations

    def count(self) -> int:
        return len(self._citations)

    def numbers(self) -> List[int]:
        return [c.number for c in self.export()]

    def format_as_markdown(self) -> str:
        """Source list with links for web citations."""
        lines = []
        for c in self.export():
            if isinstance(c, WebCitation) and c.url:
                lines.append(f"[{c.number}] [{c.title}]({c.url})")
            else:
                lines.append(f"[{c.number}] {c.title} ({c.group_label or 'Brain'})")
        return "\n".join(lines)


def extract_citation_numbers(text: str) -> List[int]:
    """Distinct citation numbers used in text, in order of first use."""
    seen: List[int] = []
    for match in _MARKER_RE.finditer(text or ""):
        number = int(match.group(1))
        if number not in seen:
            seen.append(number)
    return seen


def find_missing_citations(text: str, ledger: CitationLedger) -> List[int]:
    """Citation numbers used in text that the ledger never assigned."""
    available = set(ledger.numbers())
    return [n for n in extract_citation_numbers(text) if n not in available]


__all__ = [
    "CitationLedger",
    "Evidence",
    "extract_citation_numbers",
    "find_missing_citations",
]
