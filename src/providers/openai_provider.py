"""Primary provider: OpenAI chat completions."""

from __future__ import annotations

import json
import time
from typing import Any, Dict, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

from src.providers.base import with_timeout
from src.providers.errors import ProviderError
from src.schemas.chat import ConversationTurn
from src.utils.logging_config import get_logger

logger = get_logger("persona.providers.openai")

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


def build_messages(
    system_prompt: str,
    user_prompt: str,
    history: Sequence[ConversationTurn] = (),
) -> List[Dict[str, str]]:
    """System prompt, then history as-is, then the current user prompt."""
    messages = [{"role": "system", "content": system_prompt}]
    messages.extend({"role": turn.role, "content": turn.content} for turn in history)
    messages.append({"role": "user", "content": user_prompt})
    return messages


def _status_error_message(e: openai.APIStatusError) -> str:
    body = e.body if e.body is not None else e.message
    if not isinstance(body, str):
        body = json.dumps(body, default=str)
    return f"OpenAI error {e.status_code}: {body}"


class OpenAIProvider:
    name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_OPENAI_MODEL,
        temperature: float = 0.4,
        timeout: Optional[float] = None,
        client: Any = None,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self._client = client

    @property
    def client(self):
        if self._client is None:
            # Fallback policy lives in the gateway; no SDK-level retries.
            self._client = AsyncOpenAI(api_key=self.api_key, max_retries=0)
        return self._client

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        history: Sequence[ConversationTurn] = (),
    ) -> str:
        if not self.api_key:
            raise ProviderError(self.name, "Missing OPENAI_API_KEY")

        start = time.monotonic()
        try:
            response = await with_timeout(
                self.name,
                self.client.chat.completions.create(
                    model=self.model,
                    messages=build_messages(system_prompt, user_prompt, history),
                    temperature=self.temperature,
                ),
                self.timeout,
            )
        except ProviderError:
            raise
        except openai.APIStatusError as e:
            raise ProviderError(self.name, _status_error_message(e), status_code=e.status_code) from e
        except Exception as e:
            raise ProviderError(self.name, str(e) or type(e).__name__) from e

        logger.info(
            "OpenAI call finished",
            extra={
                "provider": self.name,
                "model": self.model,
                "duration_ms": int((time.monotonic() - start) * 1000),
            },
        )

        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        text = choices[0].message.content
        return str(text).strip() if text else ""
