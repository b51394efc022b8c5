"""Prompt assembly: template rendering plus the empty-context refusal flag."""

from __future__ import annotations

import dataclasses
import json
import re
from typing import Any, Mapping, Optional, Sequence

from src.knowledge.store import PromptTemplates

# {{key}} and {{a.b.c}}, whitespace allowed inside the braces
_TOKEN = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")

_MISSING = object()


@dataclasses.dataclass(frozen=True)
class PromptBundle:
    system: str
    user: str
    should_refuse: bool


def _lookup(variables: Mapping[str, Any], path: str) -> Any:
    value: Any = variables
    for key in path.split("."):
        if isinstance(value, Mapping) and key in value:
            value = value[key]
        else:
            return _MISSING
    return value


def _format_value(value: Any) -> str:
    if value is _MISSING or value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ". ".join(_format_value(item) for item in value)
    if isinstance(value, Mapping):
        return json.dumps(dict(value), ensure_ascii=False)
    return str(value)


def render_template(template: str, variables: Mapping[str, Any]) -> str:
    """Substitute ``{{key}}`` / ``{{a.b.c}}`` tokens.

    Unresolvable tokens (missing key, absent path segment, or a non-mapping
    in the middle of the path) become the empty string.  Lists are joined
    with ``". "``.
    """
    return _TOKEN.sub(lambda m: _format_value(_lookup(variables, m.group(1))), template or "")


def build_prompt(
    templates: PromptTemplates,
    question: str,
    context: str,
    character: str = "",
    refusal_text: str = "",
    guardrails: Optional[Mapping[str, Any]] = None,
    conversation_history: Optional[Sequence[Any]] = None,
) -> PromptBundle:
    """Render the system and user prompts for one question.

    ``conversation_history`` is not rendered into either prompt; providers
    send it as separate turns.  It is accepted here so callers can hand the
    whole request over in one call.
    """
    context = (context or "").strip()
    should_refuse = len(context) == 0

    system = "\n\n".join(
        segment
        for segment in (
            templates.system,
            render_template(templates.character, {"character": character or ""}),
        )
        if segment and segment.strip()
    )

    user = render_template(templates.answer, {
        "context": context,
        "question": question,
        "character": character or "",
        "refusal_text": refusal_text,
        "guardrails": guardrails or {},
    })

    return PromptBundle(system=system, user=user, should_refuse=should_refuse)
