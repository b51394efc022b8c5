"""
Secondary provider: Gemini generate-content via ``google.genai``.

Model selection walks an ordered, de-duplicated candidate list (configured
model → default → safe fallbacks).  A 404 for a model moves on to the next
candidate; anything else stops immediately.  If every candidate 404s, the
provider asks the API which models are actually available and retries once
with the best one.
"""
from __future__ import annotations

import time
from typing import Any, List, Optional, Sequence

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from src.providers.base import with_timeout
from src.providers.errors import FailureCategory, ProviderError, classify_failure
from src.schemas.chat import ConversationTurn
from src.utils.logging_config import get_logger

logger = get_logger("persona.providers.gemini")

DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
FALLBACK_MODELS = ("gemini-1.5-pro", "gemini-1.0-pro")
PREFERRED_MODELS = (DEFAULT_GEMINI_MODEL, *FALLBACK_MODELS)

GENERATE_ACTION = "generateContent"


def candidate_models(configured: Optional[str]) -> List[str]:
    models: List[str] = []
    for model in (configured or DEFAULT_GEMINI_MODEL, DEFAULT_GEMINI_MODEL, *FALLBACK_MODELS):
        if model and model not in models:
            models.append(model)
    return models


def pick_discovered_model(available: Sequence[str]) -> Optional[str]:
    """First preferred model that is available, else the first available one."""
    for model in PREFERRED_MODELS:
        if model in available:
            return model
    return available[0] if available else None


def build_contents(
    system_prompt: str,
    user_prompt: str,
    history: Sequence[ConversationTurn] = (),
) -> List[types.Content]:
    """Translate the conversation into Gemini turns.

    Gemini has no system role on this endpoint, so the system prompt becomes a
    leading user turn.  ``assistant`` maps to ``model``.
    """
    contents = [types.Content(role="user", parts=[types.Part(text=system_prompt)])]
    for turn in history:
        if not turn.role or not turn.content:
            continue
        role = "model" if turn.role == "assistant" else "user"
        contents.append(types.Content(role=role, parts=[types.Part(text=str(turn.content))]))
    contents.append(types.Content(role="user", parts=[types.Part(text=user_prompt)]))
    return contents


def extract_text(response: Any) -> str:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return ""
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    if not parts:
        return ""
    text = getattr(parts[0], "text", None)
    return str(text).strip() if text else ""


class GeminiProvider:
    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str],
        model: Optional[str] = None,
        temperature: float = 0.4,
        timeout: Optional[float] = None,
        client: Any = None,
    ):
        self.api_key = api_key
        self.model = model or DEFAULT_GEMINI_MODEL
        self.temperature = temperature
        self.timeout = timeout
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _wrap_error(self, e: Exception) -> ProviderError:
        if isinstance(e, genai_errors.APIError):
            return ProviderError(self.name, f"Gemini error {e.code}: {e.message or e}", status_code=e.code)
        return ProviderError(self.name, str(e) or type(e).__name__)

    async def request(self, model: str, contents: List[types.Content]) -> str:
        start = time.monotonic()
        try:
            response = await with_timeout(
                self.name,
                self.client.aio.models.generate_content(
                    model=model,
                    contents=contents,
                    config=types.GenerateContentConfig(temperature=self.temperature),
                ),
                self.timeout,
            )
        except ProviderError:
            raise
        except Exception as e:
            raise self._wrap_error(e) from e

        logger.info(
            "Gemini call finished",
            extra={
                "provider": self.name,
                "model": model,
                "duration_ms": int((time.monotonic() - start) * 1000),
            },
        )
        return extract_text(response)

    async def _list_models(self) -> List[str]:
        pager = await self.client.aio.models.list()
        available = []
        async for model in pager:
            actions = getattr(model, "supported_actions", None)
            if actions and GENERATE_ACTION not in actions:
                continue
            name = str(getattr(model, "name", "") or "")
            if name:
                available.append(name.removeprefix("models/"))
        return available

    async def list_models(self) -> List[str]:
        """Names (without ``models/``) of models that support generation."""
        try:
            return await with_timeout(self.name, self._list_models(), self.timeout)
        except ProviderError:
            raise
        except Exception as e:
            raise self._wrap_error(e) from e

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        history: Sequence[ConversationTurn] = (),
    ) -> str:
        if not self.api_key:
            raise ProviderError(self.name, "Missing GEMINI_API_KEY")

        contents = build_contents(system_prompt, user_prompt, history)

        last_error: Optional[ProviderError] = None
        for model in candidate_models(self.model):
            try:
                return await self.request(model, contents)
            except ProviderError as e:
                last_error = e
                if classify_failure(e) is not FailureCategory.MODEL_NOT_FOUND:
                    raise
                logger.warning("Gemini model %s not found, trying next candidate", model,
                               extra={"provider": self.name, "model": model})

        # Every candidate 404'd: ask the API what it actually serves.
        try:
            fallback = pick_discovered_model(await self.list_models())
            if fallback:
                logger.info("Retrying with discovered Gemini model %s", fallback,
                            extra={"provider": self.name, "model": fallback})
                return await self.request(fallback, contents)
            logger.warning("Gemini model discovery returned no usable models",
                           extra={"provider": self.name})
        except ProviderError as e:
            logger.warning("Gemini model discovery failed: %s", e.message,
                           extra={"provider": self.name})

        raise last_error or ProviderError(self.name, "Gemini failed")
