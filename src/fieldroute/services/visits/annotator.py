"""Best-effort extraction of finalize fields from a transcribed voice note.

Whatever is not recognised confidently is left as ``None`` for manual entry;
this never blocks finalization.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

_NUMBER_WORDS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11,
    "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19, "twenty": 20,
    "thirty": 30, "forty": 40, "fifty": 50,
}

_COUNT_NOUNS = r"(?:collaborators?|employees?|staff|people|workers|teachers|colleagues|persons)"

_COUNT_RE = re.compile(
    rf"\b(?P<count>\d{{1,4}}|{'|'.join(_NUMBER_WORDS)})\s+(?:\w+\s+)?{_COUNT_NOUNS}\b",
    re.IGNORECASE,
)

_NAME_RE = re.compile(
    r"\b(?i:spoke|talked|met|speaking)\s+(?i:with|to)\s+(?:the\s+[a-z]+\s+)?"
    r"(?P<name>[A-Z][a-z]+(?:\s+[A-Z][a-z]+){0,3})"
    r"|\b(?i:responsible)(?:\s+(?i:person))?\s*(?i:is|was|:)\s*(?P<name2>[A-Z][a-z]+(?:\s+[A-Z][a-z]+){0,3})",
)


@dataclass(frozen=True, slots=True)
class FinalizeHints:
    responsible_name: Optional[str] = None
    collaborator_count: Optional[int] = None


def _count_from_token(token: str) -> Optional[int]:
    token = token.lower()
    if token.isdigit():
        return int(token)
    return _NUMBER_WORDS.get(token)


def extract_finalize_hints(text: Optional[str]) -> FinalizeHints:
    if not text or not text.strip():
        return FinalizeHints()

    counts = {_count_from_token(match.group("count")) for match in _COUNT_RE.finditer(text)}
    counts.discard(None)
    # conflicting numbers mean we cannot tell which one was meant
    count = counts.pop() if len(counts) == 1 else None

    name = None
    match = _NAME_RE.search(text)
    if match:
        name = (match.group("name") or match.group("name2") or "").strip() or None

    return FinalizeHints(responsible_name=name, collaborator_count=count)
