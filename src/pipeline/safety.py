"""
Post-generation safety filter.

The filter runs a list of :class:`SafetyRule` objects against the final
answer.  The first rule that trips replaces the answer with the refusal
text; otherwise the answer passes through unchanged.

The built-in rules are keyword heuristics, not a classifier.  Stricter rules
(e.g. a model-backed classifier) plug in by implementing ``SafetyRule`` and
passing them to ``SafetyFilter(rules=[...])``.

Character guardrails (tone, virtue alignment) are applied in the prompt, not
here, so neutral answers are not refused for stylistic reasons.
"""
from __future__ import annotations

import dataclasses
from typing import Any, List, Mapping, Optional, Protocol, Sequence


@dataclasses.dataclass(frozen=True)
class SafetyConfig:
    forbidden_topics: List[str] = dataclasses.field(default_factory=list)
    child_safe_rules: str = ""
    escalation_policy: str = ""


class SafetyRule(Protocol):
    name: str

    def violates(
        self,
        answer: str,
        config: SafetyConfig,
        guardrails: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        ...


class ForbiddenTopicRule:
    """Trips when the answer mentions any hard-blocked topic (substring, case-insensitive)."""

    name = "forbidden_topic"

    def violates(self, answer, config, guardrails=None):
        lower = (answer or "").lower()
        return any(
            topic.strip().lower() in lower
            for topic in config.forbidden_topics
            if str(topic).strip()
        )


class PersonalInfoRule:
    """Trips when the answer looks like it is asking for personal details."""

    name = "personal_info"

    PATTERNS = ("address", "phone", "email", "last name", "full name")

    def violates(self, answer, config, guardrails=None):
        lower = (answer or "").lower()
        return any(pattern in lower for pattern in self.PATTERNS)


DEFAULT_RULES: Sequence[SafetyRule] = (ForbiddenTopicRule(), PersonalInfoRule())


class SafetyFilter:
    def __init__(self, rules: Optional[Sequence[SafetyRule]] = None):
        self.rules = list(DEFAULT_RULES if rules is None else rules)

    def evaluate(
        self,
        answer: str,
        config: SafetyConfig,
        guardrails: Optional[Mapping[str, Any]] = None,
    ) -> Optional[SafetyRule]:
        """Return the first rule the answer violates, or ``None``."""
        for rule in self.rules:
            if rule.violates(answer, config, guardrails):
                return rule
        return None

    def enforce(
        self,
        answer: str,
        config: SafetyConfig,
        guardrails: Optional[Mapping[str, Any]],
        refusal_text: str,
    ) -> str:
        if self.evaluate(answer, config, guardrails) is not None:
            return refusal_text
        return answer


def enforce_safety(answer, config, guardrails, refusal_text):
    """Apply the default rule set."""
    return SafetyFilter().enforce(answer, config, guardrails, refusal_text)
