"""LangChain chat model construction for the supported provider protocols.

The set of protocols is closed. OpenAI-compatible services are reached
through ``ChatOpenAI`` with their default base URL, Anthropic through
``ChatAnthropic``.
"""

import logging
from typing import Any

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from construct.core.config.models import ProviderConfig
from construct.providers.types import (
    CachePolicy,
    ChatMessage,
    CompletionContext,
    MessageRole,
    TokenUsage,
)

logger = logging.getLogger(__name__)

ANTHROPIC_PROTOCOLS = frozenset({"anthropic", "claude"})

# OpenAI-compatible services and their default endpoints
OPENAI_COMPATIBLE_ENDPOINTS: dict[str, str | None] = {
    "openai": None,
    "groq": "https://api.groq.com/openai/v1",
    "xai": "https://api.x.ai/v1",
    "gemini": "https://generativelanguage.googleapis.com/v1beta/openai/",
    "zai": "https://api.z.ai/api/paas/v4",
    "deepseek": "https://api.deepseek.com/v1",
}

SUPPORTED_PROTOCOLS = frozenset(OPENAI_COMPATIBLE_ENDPOINTS) | ANTHROPIC_PROTOCOLS

# Anthropic supports a 1 hour cache TTL in addition to the 5 minute default
_ANTHROPIC_LONG_TTL_SECONDS = 3600


def build_chat_model(
    config: ProviderConfig,
    model_name: str,
    temperature: float | None = None,
    max_tokens: int | None = None,
) -> BaseChatModel:
    """Create the chat model for a provider protocol.

    Directly instantiates provider-specific classes so constructor kwargs such
    as ``base_url`` reach the client unchanged.

    Args:
        config: Provider configuration.
        model_name: Model identifier to request.
        temperature: Sampling temperature, or None for the provider default.
        max_tokens: Completion token limit, or None for the provider default.

    Returns:
        Configured BaseChatModel instance.

    Raises:
        ValueError: If the protocol is not supported.
    """
    protocol = config.protocol
    kwargs: dict[str, Any] = {"model": model_name}
    if temperature is not None:
        kwargs["temperature"] = temperature
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens
    kwargs.update(config.extra_params)

    api_key = config.resolve_api_key()

    if protocol in OPENAI_COMPATIBLE_ENDPOINTS:
        from langchain_openai import ChatOpenAI

        base_url = config.endpoint or OPENAI_COMPATIBLE_ENDPOINTS[protocol]
        if base_url:
            kwargs["base_url"] = base_url
        if api_key:
            kwargs["api_key"] = api_key
        logger.debug(f"Creating ChatOpenAI ({protocol}): model={model_name}, kwargs={list(kwargs.keys())}")
        return ChatOpenAI(**kwargs)

    if protocol in ANTHROPIC_PROTOCOLS:
        from langchain_anthropic import ChatAnthropic

        if config.endpoint:
            kwargs["base_url"] = config.endpoint
        if api_key:
            kwargs["api_key"] = api_key
        logger.debug(f"Creating ChatAnthropic: model={model_name}")
        return ChatAnthropic(**kwargs)

    raise ValueError(
        f"Unsupported provider protocol: '{protocol}'. "
        f"Supported: {', '.join(sorted(SUPPORTED_PROTOCOLS))}"
    )


def to_langchain_messages(context: CompletionContext, protocol: str) -> list[BaseMessage]:
    """Convert a completion context into LangChain messages.

    When the context requests caching and the protocol supports explicit cache
    markers, the last system message is marked so the stable prefix up to and
    including it is cached by the provider.
    """
    messages: list[BaseMessage] = []
    last_system = _last_system_index(context.messages)
    for i, message in enumerate(context.messages):
        if message.role == MessageRole.SYSTEM:
            if i == last_system and context.cache and protocol in ANTHROPIC_PROTOCOLS:
                messages.append(SystemMessage(content=[_cached_text_block(message.content, context.cache)]))
            else:
                messages.append(SystemMessage(content=message.content))
        elif message.role == MessageRole.USER:
            messages.append(HumanMessage(content=message.content))
        else:
            messages.append(AIMessage(content=message.content))
    return messages


def _last_system_index(messages: list[ChatMessage]) -> int | None:
    index = None
    for i, message in enumerate(messages):
        if message.role == MessageRole.SYSTEM:
            index = i
    return index


def _cached_text_block(text: str, cache: CachePolicy) -> dict[str, Any]:
    cache_control: dict[str, Any] = {"type": "ephemeral"}
    if cache.max_age_seconds >= _ANTHROPIC_LONG_TTL_SECONDS:
        cache_control["ttl"] = "1h"
    return {"type": "text", "text": text, "cache_control": cache_control}


def extract_text(message: BaseMessage) -> str:
    """Return the text of a model reply, joining content blocks when needed."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def extract_usage(message: BaseMessage) -> TokenUsage:
    """Read token usage, including cache hits, from a model reply.

    LangChain normalizes usage into ``usage_metadata`` for every backend;
    cache hits appear as ``input_token_details.cache_read``.
    """
    metadata = getattr(message, "usage_metadata", None) or {}
    details = metadata.get("input_token_details") or {}
    prompt_tokens = metadata.get("input_tokens", 0) or 0
    completion_tokens = metadata.get("output_tokens", 0) or 0
    return TokenUsage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=metadata.get("total_tokens", prompt_tokens + completion_tokens) or 0,
        cached_tokens=details.get("cache_read", 0) or 0,
    )


def is_model_unavailable(error: Exception) -> bool:
    """Check whether a provider error means the requested model cannot be used.

    Both the OpenAI and Anthropic SDKs raise ``NotFoundError`` with
    ``status_code == 404`` for unknown or retired models.
    """
    if getattr(error, "status_code", None) == 404:
        return True
    text = str(error).lower()
    return any(
        marker in text
        for marker in ("model_not_found", "does not exist", "not_found_error", "model not found", "decommissioned")
    )
