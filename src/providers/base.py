"""Shared provider interface."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Protocol, Sequence, TypeVar

from src.providers.errors import ProviderError
from src.schemas.chat import ConversationTurn

T = TypeVar("T")


class TextProvider(Protocol):
    name: str

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        history: Sequence[ConversationTurn] = (),
    ) -> str:
        ...


async def with_timeout(provider: str, call: Awaitable[T], timeout: float | None) -> T:
    """Await ``call``, turning a timeout into a ``ProviderError``."""
    if not timeout or timeout <= 0:
        return await call
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError:
        raise ProviderError(provider, f"{provider} timed out after {timeout:g}s") from None
