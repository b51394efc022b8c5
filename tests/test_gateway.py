"""Tests for primary → secondary provider fallback."""

import pytest

from src.config import Settings
from src.providers.errors import ProviderExhaustedError, ProviderFatalError
from src.providers.gateway import ProviderGateway, build_gateway
from src.providers.gemini_provider import GeminiProvider
from src.providers.openai_provider import OpenAIProvider
from src.schemas.chat import ConversationTurn
from tests.conftest import FakeProvider, provider_error


class TestProviderGateway:

    @pytest.mark.asyncio
    async def test_primary_success_skips_secondary(self):
        primary = FakeProvider("openai", answer="From primary")
        secondary = FakeProvider("gemini", answer="From secondary")

        answer = await ProviderGateway(primary, secondary).generate("s", "u")

        assert answer == "From primary"
        assert secondary.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", [
        "Missing OPENAI_API_KEY",
        'OpenAI error 429: {"code": "rate_limit_exceeded"}',
        'OpenAI error 403: {"code": "insufficient_quota"}',
    ])
    async def test_quota_failure_falls_back(self, message):
        primary = FakeProvider("openai", error=provider_error(message))
        secondary = FakeProvider("gemini", answer="Good morning!")

        answer = await ProviderGateway(primary, secondary).generate("s", "u")

        assert answer == "Good morning!"
        assert len(secondary.calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", [
        "OpenAI error 500: upstream",
        "OpenAI error 401: bad key",
        "openai timed out after 60s",
    ])
    async def test_other_failure_is_fatal_without_secondary(self, message):
        primary = FakeProvider("openai", error=provider_error(message))
        secondary = FakeProvider("gemini", answer="never used")

        with pytest.raises(ProviderFatalError) as exc_info:
            await ProviderGateway(primary, secondary).generate("s", "u")

        assert exc_info.value.primary_message == message
        assert secondary.calls == []

    @pytest.mark.asyncio
    async def test_both_fail_concatenates_messages(self):
        primary = FakeProvider("openai", error=provider_error("Missing OPENAI_API_KEY"))
        secondary = FakeProvider("gemini", error=provider_error("Missing GEMINI_API_KEY", provider="gemini"))

        with pytest.raises(ProviderExhaustedError) as exc_info:
            await ProviderGateway(primary, secondary).generate("s", "u")

        assert str(exc_info.value) == (
            "OpenAI failed: Missing OPENAI_API_KEY. Gemini failed: Missing GEMINI_API_KEY"
        )

    @pytest.mark.asyncio
    async def test_history_passed_to_both_providers(self):
        history = [ConversationTurn(role="user", content="earlier")]
        primary = FakeProvider("openai", error=provider_error("Missing OPENAI_API_KEY"))
        secondary = FakeProvider("gemini", answer="ok")

        await ProviderGateway(primary, secondary).generate("SYS", "USER", history)

        assert primary.calls == [("SYS", "USER", history)]
        assert secondary.calls == [("SYS", "USER", history)]


class TestBuildGateway:

    def test_wires_settings(self):
        settings = Settings(
            _env_file=None,
            openai_api_key="sk-x",
            openai_model="gpt-test",
            gemini_api_key="g-x",
            gemini_model="gemini-test",
            provider_timeout_seconds=5,
        )
        gateway = build_gateway(settings)

        assert isinstance(gateway.primary, OpenAIProvider)
        assert isinstance(gateway.secondary, GeminiProvider)
        assert gateway.primary.model == "gpt-test"
        assert gateway.secondary.model == "gemini-test"
        assert gateway.primary.timeout == gateway.secondary.timeout == 5
