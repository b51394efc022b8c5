"""
Chat request orchestration.

``ChatService.answer`` runs one question end to end:

1. Load the character's grounded context from the document store.
2. Build the prompts; an empty context short-circuits to a refusal and no
   provider is called.
3. Otherwise generate through the provider gateway (primary → secondary).
4. Run the safety filter over the final answer, whichever path produced it.

Refusals and provider failures are recorded in the unanswered-questions log
with a reason tag.  Provider failures propagate to the caller as
``ProviderFatalError`` / ``ProviderExhaustedError``.
"""
from __future__ import annotations

import asyncio
import dataclasses
import random
from typing import Optional, Sequence

from src.knowledge.store import DocumentStore, normalize_slug
from src.pipeline.context_loader import load_character_context
from src.pipeline.prompt_builder import build_prompt
from src.pipeline.refusal import RefusalPicker, matches_refusal
from src.pipeline.safety import SafetyFilter
from src.providers.base import TextProvider
from src.providers.errors import ProviderExhaustedError, ProviderFatalError
from src.schemas.chat import ConversationTurn
from src.utils import unanswered_logger as reasons
from src.utils.logging_config import CharacterAdapter, get_logger
from src.utils.unanswered_logger import UnansweredRecorder

_logger = get_logger("persona.chat")


@dataclasses.dataclass(frozen=True)
class ChatResult:
    answer: str
    should_refuse: bool


class ChatService:
    def __init__(
        self,
        store: DocumentStore,
        gateway: TextProvider,
        recorder: UnansweredRecorder,
        safety_filter: Optional[SafetyFilter] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.recorder = recorder
        self.safety_filter = safety_filter or SafetyFilter()
        self.rng = rng or random.Random()

    async def _record(self, character: str, message: str, reason: str) -> None:
        try:
            await asyncio.to_thread(self.recorder.record, character, message, reason)
        except Exception:
            _logger.exception("Unanswered recorder raised", extra={"character": character, "reason": reason})

    async def answer(
        self,
        character: str,
        message: str,
        history: Sequence[ConversationTurn] = (),
    ) -> ChatResult:
        slug = normalize_slug(character)
        log = CharacterAdapter(_logger, character=slug)

        primary = load_character_context(self.store, slug)
        refusal_text = RefusalPicker(self.store.refusal_candidates, self.rng).pick()

        prompt = build_prompt(
            self.store.templates,
            question=message,
            context=primary.context,
            character=primary.character_name,
            refusal_text=refusal_text,
            guardrails=primary.guardrails,
            conversation_history=history,
        )

        if prompt.should_refuse:
            log.info("Empty context, refusing without calling a provider", extra={"reason": reasons.EMPTY_CONTEXT})
            raw_answer = refusal_text
            await self._record(slug, message, reasons.EMPTY_CONTEXT)
        else:
            try:
                raw_answer = await self.gateway.generate(prompt.system, prompt.user, history)
            except ProviderFatalError as e:
                await self._record(slug, message, f"{reasons.OPENAI_ERROR}:{e.primary_message}")
                raise
            except ProviderExhaustedError as e:
                await self._record(slug, message, f"{reasons.GEMINI_ERROR}:{e}")
                raise

            if matches_refusal(raw_answer, refusal_text):
                log.info("Model declined to answer", extra={"reason": reasons.MODEL_REFUSAL})
                await self._record(slug, message, reasons.MODEL_REFUSAL)

        safety_config = self.store.safety
        tripped = self.safety_filter.evaluate(raw_answer, safety_config, primary.guardrails)
        safe_answer = self.safety_filter.enforce(raw_answer, safety_config, primary.guardrails, refusal_text)

        if tripped is not None and not matches_refusal(raw_answer, refusal_text):
            log.warning("Answer replaced by refusal (rule=%s)", tripped.name, extra={"reason": reasons.SAFETY_REFUSAL})
            await self._record(slug, message, reasons.SAFETY_REFUSAL)

        return ChatResult(answer=safe_answer, should_refuse=prompt.should_refuse)
