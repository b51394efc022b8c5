"""Read-only document store for character knowledge, prompt templates and safety rules.

Everything the chat pipeline reads from disk is loaded once through
:meth:`DocumentStore.load` (normally from the FastAPI lifespan) and served
from memory afterwards.  Layout under ``content_root``::

    prompts/system.txt
    prompts/character.txt
    prompts/answer_with_rag.txt
    prompts/refusal.txt
    safety/forbidden_topics.json      # {"hard_blocked_topics": [...]}
    safety/child_safe_rules.txt
    safety/escalation_policy.md
    primary-rag/<slug>/identity.json
    primary-rag/<slug>/style.json
    primary-rag/<slug>/guardrails.json

Missing or malformed documents degrade to empty values; loading never fails
because of content.
"""
from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.pipeline.refusal import parse_refusal_candidates
from src.pipeline.safety import SafetyConfig, SafetyFilter
from src.utils.logging_config import get_logger

logger = get_logger("persona.knowledge")

PROMPTS_DIR = "prompts"
SAFETY_DIR = "safety"
CHARACTERS_DIR = "primary-rag"

CHARACTER_DOCUMENTS = ("identity", "style", "guardrails")


@dataclasses.dataclass(frozen=True)
class CharacterDocuments:
    """The raw knowledge bundle of one character."""
    slug: str
    identity: Dict[str, Any] = dataclasses.field(default_factory=dict)
    style: Dict[str, Any] = dataclasses.field(default_factory=dict)
    guardrails: Dict[str, Any] = dataclasses.field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.identity or self.style or self.guardrails)


@dataclasses.dataclass(frozen=True)
class PromptTemplates:
    system: str = ""
    character: str = ""
    answer: str = ""


def normalize_slug(slug: str) -> str:
    return (slug or "").strip().lower()


def read_text_safe(path: Path) -> str:
    """Return the file contents, or "" when the file is missing or unreadable."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return ""


def read_json_safe(path: Path) -> Dict[str, Any]:
    """Parse a JSON object document, degrading to ``{}`` on any problem."""
    raw = read_text_safe(path)
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Malformed JSON in %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Expected a JSON object in %s, got %s", path, type(data).__name__)
        return {}
    return data


def load_safety_config(safety_dir: Path) -> SafetyConfig:
    """Read the global safety rules. Independent of any character."""
    forbidden = read_json_safe(safety_dir / "forbidden_topics.json")
    topics = forbidden.get("hard_blocked_topics")
    if not isinstance(topics, list):
        topics = []

    return SafetyConfig(
        forbidden_topics=[str(t) for t in topics if str(t).strip()],
        child_safe_rules=read_text_safe(safety_dir / "child_safe_rules.txt"),
        escalation_policy=read_text_safe(safety_dir / "escalation_policy.md"),
    )


def load_character_documents(character_dir: Path, slug: str) -> CharacterDocuments:
    docs = {name: read_json_safe(character_dir / f"{name}.json") for name in CHARACTER_DOCUMENTS}
    return CharacterDocuments(slug=slug, **docs)


class DocumentStore:
    """In-memory, read-only view of the content tree.

    Call :meth:`load` before serving requests.  :meth:`reload` builds a fresh
    store; callers swap it in, so in-flight requests keep the one they started with.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self._characters: Dict[str, CharacterDocuments] = {}
        self._templates = PromptTemplates()
        self._refusal_candidates: List[str] = []
        self._safety = SafetyConfig()
        self._loaded = False

    # -- load phase ---------------------------------------------------------

    def load(self) -> "DocumentStore":
        prompts_dir = self.root / PROMPTS_DIR

        templates = PromptTemplates(
            system=read_text_safe(prompts_dir / "system.txt"),
            character=read_text_safe(prompts_dir / "character.txt"),
            answer=read_text_safe(prompts_dir / "answer_with_rag.txt"),
        )
        refusals = parse_refusal_candidates(read_text_safe(prompts_dir / "refusal.txt"))
        safety = load_safety_config(self.root / SAFETY_DIR)

        characters: Dict[str, CharacterDocuments] = {}
        characters_dir = self.root / CHARACTERS_DIR
        if characters_dir.is_dir():
            for entry in sorted(characters_dir.iterdir()):
                if not entry.is_dir():
                    continue
                slug = normalize_slug(entry.name)
                characters[slug] = load_character_documents(entry, slug)
        else:
            logger.warning("Character directory %s does not exist", characters_dir)

        if not refusals:
            logger.warning("No refusal candidates found in %s", prompts_dir / "refusal.txt")

        safety_filter = SafetyFilter()
        for candidate in refusals:
            rule = safety_filter.evaluate(candidate, safety)
            if rule is not None:
                logger.warning("Refusal candidate trips safety rule %s: %r", rule.name, candidate)

        self._templates = templates
        self._refusal_candidates = refusals
        self._safety = safety
        self._characters = characters
        self._loaded = True

        logger.info(
            "Loaded content from %s: %d characters, %d refusal candidates, %d forbidden topics",
            self.root, len(characters), len(refusals), len(safety.forbidden_topics),
        )
        return self

    def reload(self) -> "DocumentStore":
        return DocumentStore(self.root).load()

    # -- read access ----------------------------------------------------------

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def templates(self) -> PromptTemplates:
        return self._templates

    @property
    def refusal_candidates(self) -> List[str]:
        return list(self._refusal_candidates)

    @property
    def safety(self) -> SafetyConfig:
        return self._safety

    @property
    def character_slugs(self) -> List[str]:
        return sorted(self._characters)

    def character(self, slug: str) -> CharacterDocuments:
        """Return the bundle for ``slug``; unknown characters get an empty bundle."""
        key = normalize_slug(slug)
        docs: Optional[CharacterDocuments] = self._characters.get(key)
        if docs is None:
            return CharacterDocuments(slug=key)
        return docs
