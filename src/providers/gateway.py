"""Primary → secondary provider fallback."""

from __future__ import annotations

from typing import Sequence

from src.config import Settings
from src.providers.base import TextProvider
from src.providers.errors import (
    FailureCategory,
    ProviderExhaustedError,
    ProviderFatalError,
    classify_failure,
    error_message,
)
from src.providers.gemini_provider import GeminiProvider
from src.providers.openai_provider import OpenAIProvider
from src.schemas.chat import ConversationTurn
from src.utils.logging_config import get_logger

logger = get_logger("persona.providers.gateway")


class ProviderGateway:
    """Calls the primary provider and falls back to the secondary one.

    Only quota-class primary failures (exhausted quota, 429, missing
    credentials) fall back.  Anything else raises ``ProviderFatalError``
    without touching the secondary.
    """

    def __init__(self, primary: TextProvider, secondary: TextProvider):
        self.primary = primary
        self.secondary = secondary

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        history: Sequence[ConversationTurn] = (),
    ) -> str:
        try:
            return await self.primary.generate(system_prompt, user_prompt, history)
        except Exception as e:
            primary_message = error_message(e) or "OpenAI failed"
            category = classify_failure(e)
            if category is not FailureCategory.QUOTA:
                logger.error("Primary provider failed (%s): %s", category.value, primary_message,
                             extra={"provider": self.primary.name})
                raise ProviderFatalError(primary_message) from e

        logger.warning("Primary provider unavailable, falling back to %s: %s",
                       self.secondary.name, primary_message,
                       extra={"provider": self.primary.name})

        try:
            return await self.secondary.generate(system_prompt, user_prompt, history)
        except Exception as e:
            secondary_message = error_message(e) or "Gemini failed"
            logger.error("Secondary provider failed: %s", secondary_message,
                         extra={"provider": self.secondary.name})
            raise ProviderExhaustedError(primary_message, secondary_message) from e


def build_gateway(settings: Settings) -> ProviderGateway:
    timeout = settings.provider_timeout_seconds
    return ProviderGateway(
        primary=OpenAIProvider(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            temperature=settings.provider_temperature,
            timeout=timeout,
        ),
        secondary=GeminiProvider(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            temperature=settings.provider_temperature,
            timeout=timeout,
        ),
    )
