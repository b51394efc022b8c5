"""
Builds the grounded context block for one character.

Input is the character's knowledge bundle (identity / style / guardrails);
output is a single markdown-ish string with one ``## Section`` per kind of
knowledge, plus the guardrails for template rendering.  Empty sections are
left out entirely, so a character without any knowledge yields an empty
context, which sends the request down the refusal path.
"""
from __future__ import annotations

import dataclasses
import json
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple

from src.knowledge.store import CharacterDocuments, DocumentStore


@dataclasses.dataclass(frozen=True)
class CharacterProfile:
    character_id: str
    name: str
    background_facts: Tuple[str, ...] = ()
    virtues: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    teaching_guidance: Tuple[str, ...] = ()
    coach_lines: Tuple[str, ...] = ()
    quotes: Tuple[str, ...] = ()
    daily_missions: Tuple[str, ...] = ()
    identity: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    style: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    guardrails: Mapping[str, Any] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class CharacterContext:
    context: str
    guardrails: Mapping[str, Any]
    character_id: str
    character_name: str


# List sections rendered after the virtues block, in order.
LIST_SECTIONS = (
    ("Teaching Guidance", "teaching_guidance"),
    ("Coach Lines", "coach_lines"),
    ("Quotes", "quotes"),
    ("Daily Missions", "daily_missions"),
)


def _as_items(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(item if isinstance(item, str) else str(item) for item in value)


def _background_facts(value: Any) -> Tuple[str, ...]:
    """Accept both ``["fact", ...]`` and ``[{"fact": "..."}, ...]``."""
    if not isinstance(value, list):
        return ()
    facts = []
    for item in value:
        if isinstance(item, str):
            fact = item
        elif isinstance(item, dict):
            fact = item.get("fact") or ""
        else:
            fact = ""
        if fact:
            facts.append(str(fact))
    return tuple(facts)


def build_profile(docs: CharacterDocuments) -> CharacterProfile:
    identity = docs.identity
    character = identity.get("character")
    name = character.get("name") if isinstance(character, dict) else None
    virtues = identity.get("virtues")

    return CharacterProfile(
        character_id=str(identity.get("character_id") or docs.slug),
        name=str(name or docs.slug),
        background_facts=_background_facts(identity.get("background")),
        virtues=MappingProxyType(dict(virtues)) if isinstance(virtues, dict) else MappingProxyType({}),
        teaching_guidance=_as_items(identity.get("teaching_guidance")),
        coach_lines=_as_items(identity.get("coach_lines")),
        quotes=_as_items(identity.get("quotes")),
        daily_missions=_as_items(identity.get("daily_missions")),
        identity=MappingProxyType(dict(identity)),
        style=MappingProxyType(dict(docs.style)),
        guardrails=MappingProxyType(dict(docs.guardrails)),
    )


# ---------------------------------------------------------------------------
# Section formatting
# ---------------------------------------------------------------------------

def format_section(title: str, data: Mapping[str, Any]) -> str:
    if not data:
        return ""
    return f"## {title}\n{json.dumps(dict(data), indent=2, ensure_ascii=False)}\n"


def format_virtues(virtues: Mapping[str, Any]) -> str:
    if not virtues:
        return ""
    lines = "\n".join(f"- **{name}**: {description}" for name, description in virtues.items())
    return f"## Character Virtues\n{lines}\n"


def format_list_section(title: str, items: Tuple[str, ...]) -> str:
    if not items:
        return ""
    lines = "\n".join(f"- {item}" for item in items)
    return f"## {title}\n{lines}\n"


def format_context(profile: CharacterProfile) -> str:
    sections: List[str] = [
        format_section("Identity", profile.identity),
        format_section("Style", profile.style),
    ]
    if profile.background_facts:
        facts = "\n".join(profile.background_facts)
        sections.append(f"## Background Facts\n{facts}\n")
    sections.append(format_virtues(profile.virtues))
    for title, field in LIST_SECTIONS:
        sections.append(format_list_section(title, getattr(profile, field)))

    return "\n".join(s for s in sections if s)


def load_character_context(store: DocumentStore, slug: str) -> CharacterContext:
    profile = build_profile(store.character(slug))
    guardrails: Dict[str, Any] = dict(profile.guardrails)
    return CharacterContext(
        context=format_context(profile),
        guardrails=guardrails,
        character_id=profile.character_id,
        character_name=profile.name,
    )
