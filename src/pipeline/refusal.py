"""Refusal text candidates and per-request selection."""

from __future__ import annotations

import random
import re
from typing import List, Optional, Sequence

_WHITESPACE = re.compile(r"\s+")


def parse_refusal_candidates(raw: str) -> List[str]:
    """One candidate per non-blank line, trimmed."""
    return [line.strip() for line in (raw or "").splitlines() if line.strip()]


def normalize_text(text: str) -> str:
    """Collapse whitespace runs and trim, for refusal comparisons."""
    return _WHITESPACE.sub(" ", str(text or "").strip())


def matches_refusal(answer: str, refusal_text: str) -> bool:
    return normalize_text(answer) == normalize_text(refusal_text)


class RefusalPicker:
    """Picks one refusal candidate uniformly at random.

    Pass a seeded ``random.Random`` to pin the outcome in tests.
    """

    def __init__(self, candidates: Sequence[str], rng: Optional[random.Random] = None):
        self.candidates = list(candidates)
        self._rng = rng or random.Random()

    def pick(self) -> str:
        if not self.candidates:
            return ""
        return self._rng.choice(self.candidates)
