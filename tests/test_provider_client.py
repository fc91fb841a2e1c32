"""Tests for the provider client: fallbacks, caching, errors and rate limits."""

import pytest
from langchain_core.messages import HumanMessage, SystemMessage

from construct.core.config.models import CachePolicyConfig, ProviderConfig
from construct.core.errors import (
    NoModelAvailableError,
    ProviderError,
    RateLimitExceededError,
    UnknownProviderError,
)
from construct.providers.backends import build_chat_model, is_model_unavailable, to_langchain_messages
from construct.providers.client import ProviderClient
from construct.providers.types import CachePolicy, ChatMessage, CompletionContext

from conftest import ScriptedFactory, ai_reply


def _context(**kwargs) -> CompletionContext:
    return CompletionContext(
        messages=[ChatMessage.system("You plan tasks."), ChatMessage.user("add input validation")],
        **kwargs,
    )


@pytest.mark.asyncio
async def test_complete_returns_content_and_usage(providers, factory):
    factory.replies.append("1. Do it `true`")

    response = await providers.complete("fake", _context())

    assert response.content == "1. Do it `true`"
    assert response.model == "fake-large"
    assert response.usage.prompt_tokens == 120
    assert response.usage.completion_tokens == 40
    assert response.cached is False


@pytest.mark.asyncio
async def test_cache_hit_is_reported(providers, factory):
    factory.replies.append(ai_reply("cached answer", cache_read=100))
    response = await providers.complete("fake", _context())
    assert response.cached is True
    assert response.usage.cached_tokens == 100


@pytest.mark.asyncio
async def test_unavailable_model_falls_back():
    """A model the provider does not know is skipped for the next candidate."""
    factory = ScriptedFactory(replies=["from fallback"], unavailable={"big-model"})
    client = ProviderClient(
        {"main": ProviderConfig(model="big-model", model_fallbacks=["small-model"])},
        model_factory=factory,
    )

    response = await client.complete("main", _context())

    assert response.content == "from fallback"
    assert response.model == "small-model"
    assert [model for model, _ in factory.calls] == ["big-model", "small-model"]


@pytest.mark.asyncio
async def test_all_models_unavailable():
    factory = ScriptedFactory(unavailable={"a", "b"})
    client = ProviderClient({"main": ProviderConfig(model="a", model_order=["b", "a"])}, model_factory=factory)

    with pytest.raises(NoModelAvailableError, match="a, b"):
        await client.complete("main", _context())


@pytest.mark.asyncio
async def test_no_model_configured():
    client = ProviderClient({"main": ProviderConfig()}, model_factory=ScriptedFactory())
    with pytest.raises(NoModelAvailableError):
        await client.complete("main", _context())


@pytest.mark.asyncio
async def test_other_failures_are_wrapped_without_retry(providers, factory):
    factory.replies.append(ConnectionError("connection reset"))

    with pytest.raises(ProviderError) as exc_info:
        await providers.complete("fake", _context())

    assert exc_info.value.provider_name == "fake"
    assert "connection reset" in str(exc_info.value)
    assert len(factory.calls) == 1


@pytest.mark.asyncio
async def test_unknown_provider(providers):
    with pytest.raises(UnknownProviderError) as exc_info:
        await providers.complete("nope", _context())
    assert "fake" in str(exc_info.value)


@pytest.mark.asyncio
async def test_request_overrides_and_defaults():
    factory = ScriptedFactory(replies=["a", "b"])
    client = ProviderClient(
        {"main": ProviderConfig(model="m1", temperature=0.2, max_tokens=512)},
        model_factory=factory,
    )

    await client.complete("main", _context())
    await client.complete("main", _context(model="m2", temperature=0.9))

    assert factory.built == [("m1", 0.2, 512), ("m2", 0.9, 512)]


@pytest.mark.asyncio
async def test_rate_limit_fail_mode():
    factory = ScriptedFactory(replies=["first", "second"])
    client = ProviderClient(
        {"main": ProviderConfig(model="m", requests_per_minute=1, rate_limit_mode="fail")},
        model_factory=factory,
    )

    await client.complete("main", _context())
    with pytest.raises(RateLimitExceededError):
        await client.complete("main", _context())
    assert len(factory.calls) == 1


@pytest.mark.asyncio
async def test_rate_limit_wait_mode_uses_injected_clock():
    now = [0.0]
    sleeps: list[float] = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)
        now[0] += delay

    client = ProviderClient(
        {"main": ProviderConfig(model="m", requests_per_minute=1)},
        model_factory=ScriptedFactory(replies=["first", "second"]),
        clock=lambda: now[0],
        sleep=fake_sleep,
    )

    await client.complete("main", _context())
    now[0] += 1
    response = await client.complete("main", _context())

    assert response.content == "second"
    assert sleeps == [pytest.approx(59.0)]


@pytest.mark.asyncio
async def test_provider_cache_config_marks_anthropic_prefix():
    factory = ScriptedFactory(replies=["ok"])
    client = ProviderClient(
        {"claude": ProviderConfig(protocol="anthropic", model="claude-x", cache=CachePolicyConfig(max_age_seconds=3600))},
        model_factory=factory,
    )

    await client.complete("claude", _context())

    _, messages = factory.calls[0]
    block = messages[0].content[0]
    assert block["cache_control"] == {"type": "ephemeral", "ttl": "1h"}


class TestToLangchainMessages:
    def test_plain_conversion(self):
        messages = to_langchain_messages(_context(), "openai")
        assert isinstance(messages[0], SystemMessage)
        assert messages[0].content == "You plan tasks."
        assert isinstance(messages[1], HumanMessage)

    def test_openai_ignores_cache_markers(self):
        messages = to_langchain_messages(_context(cache=CachePolicy()), "openai")
        assert messages[0].content == "You plan tasks."

    def test_anthropic_marks_last_system_message(self):
        context = CompletionContext(
            messages=[
                ChatMessage.system("stable instructions"),
                ChatMessage.system("project context"),
                ChatMessage.user("go"),
            ],
            cache=CachePolicy(max_age_seconds=300),
        )
        messages = to_langchain_messages(context, "claude")
        assert messages[0].content == "stable instructions"
        assert messages[1].content == [
            {"type": "text", "text": "project context", "cache_control": {"type": "ephemeral"}}
        ]


class TestBackends:
    def test_unsupported_protocol(self):
        with pytest.raises(ValueError, match="Unsupported provider protocol"):
            build_chat_model(ProviderConfig(protocol="carrier-pigeon"), "m")

    @pytest.mark.asyncio
    async def test_unsupported_protocol_becomes_provider_error(self):
        client = ProviderClient({"odd": ProviderConfig(protocol="carrier-pigeon", model="m")})
        with pytest.raises(ProviderError, match="Unsupported provider protocol"):
            await client.complete("odd", _context())

    def test_model_unavailable_detection(self):
        assert is_model_unavailable(type("E", (Exception,), {"status_code": 404})("gone"))
        assert is_model_unavailable(Exception("Error: model_not_found"))
        assert not is_model_unavailable(Exception("rate limited"))
