"""Shared fixtures: an on-disk content tree and fake providers."""

import json
import random

import pytest

from src.knowledge.store import DocumentStore
from src.providers.errors import ProviderError
from src.utils.unanswered_logger import UnansweredRecorder


REFUSALS = [
    "I don't know that one yet.",
    "That's outside my stories, friend.",
    "Let's talk about my adventures instead!",
]

IDENTITY = {
    "character_id": "nova",
    "character": {"name": "Captain Nova"},
    "background": [
        "Flies the starship Lumen.",
        {"fact": "Best friends with a robot named Bolt."},
        {"note": "no fact field"},
    ],
    "virtues": {"Curiosity": "Always asks one more question."},
    "teaching_guidance": ["Celebrate questions."],
    "coach_lines": [],
    "quotes": ["The stars are friends we haven't met."],
    "daily_missions": ["Count five stars."],
}

STYLE = {"voice": "cheerful"}

GUARDRAILS = {
    "constraints": {
        "tone": "warm",
        "redirection_style": "steer back to space",
        "virtue_alignment": ["Be curious", "Be kind"],
    }
}


def write_content(root, characters=None, refusals=REFUSALS, forbidden=("violence", "weapon")):
    """Lay out a content tree the way ``DocumentStore`` expects it."""
    prompts = root / "prompts"
    safety = root / "safety"
    prompts.mkdir(parents=True, exist_ok=True)
    safety.mkdir(parents=True, exist_ok=True)
    (root / "primary-rag").mkdir(exist_ok=True)

    (prompts / "system.txt").write_text("Stay safe and kind.", encoding="utf-8")
    (prompts / "character.txt").write_text("You are {{character}}.", encoding="utf-8")
    (prompts / "answer_with_rag.txt").write_text(
        "Context:\n{{context}}\nTone: {{guardrails.constraints.tone}}\n"
        "Refuse with: {{refusal_text}}\nQ: {{question}}",
        encoding="utf-8",
    )
    (prompts / "refusal.txt").write_text("\n".join(refusals) + "\n\n", encoding="utf-8")

    (safety / "forbidden_topics.json").write_text(
        json.dumps({"hard_blocked_topics": list(forbidden)}), encoding="utf-8"
    )
    (safety / "child_safe_rules.txt").write_text("Be gentle.", encoding="utf-8")
    (safety / "escalation_policy.md").write_text("Tell a grown-up.", encoding="utf-8")

    for slug, docs in (characters or {}).items():
        char_dir = root / "primary-rag" / slug
        char_dir.mkdir(parents=True, exist_ok=True)
        for name, content in docs.items():
            if isinstance(content, str):
                (char_dir / f"{name}.json").write_text(content, encoding="utf-8")
            else:
                (char_dir / f"{name}.json").write_text(json.dumps(content), encoding="utf-8")
    return root


@pytest.fixture
def content_root(tmp_path):
    root = tmp_path / "ai"
    write_content(root, characters={
        "nova": {"identity": IDENTITY, "style": STYLE, "guardrails": GUARDRAILS},
    })
    # Known character with an empty knowledge directory
    (root / "primary-rag" / "ghost").mkdir()
    return root


@pytest.fixture
def store(content_root):
    return DocumentStore(content_root).load()


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "data" / "unanswered_questions.jsonl"


@pytest.fixture
def recorder(log_path):
    return UnansweredRecorder(log_path)


@pytest.fixture
def rng():
    return random.Random(1234)


def read_log(path):
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


class FakeProvider:
    """Provider double that returns a fixed answer or raises a fixed error."""

    def __init__(self, name="fake", answer="", error=None):
        self.name = name
        self.answer = answer
        self.error = error
        self.calls = []

    async def generate(self, system_prompt, user_prompt, history=()):
        self.calls.append((system_prompt, user_prompt, list(history)))
        if self.error is not None:
            raise self.error
        return self.answer


def provider_error(message, status_code=None, provider="openai"):
    return ProviderError(provider, message, status_code=status_code)
