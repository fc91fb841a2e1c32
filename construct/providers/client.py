"""Uniform completion interface over the configured providers."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from langchain_core.language_models.chat_models import BaseChatModel

from construct.core.config.models import ProviderConfig
from construct.core.errors import (
    NoModelAvailableError,
    ProviderError,
    UnknownProviderError,
)
from construct.providers.backends import (
    SUPPORTED_PROTOCOLS,
    build_chat_model,
    extract_text,
    extract_usage,
    is_model_unavailable,
    to_langchain_messages,
)
from construct.providers.rate_limiter import RateLimiter
from construct.providers.types import CachePolicy, CompletionContext, CompletionResponse

logger = logging.getLogger(__name__)

ModelFactory = Callable[[ProviderConfig, str, float | None, int | None], BaseChatModel]


class ProviderClient:
    """Routes completion requests to named providers.

    Each request goes through the provider's rate limiter, then walks the
    candidate models in preference order. A model that the provider reports
    as unavailable is skipped in favor of the next candidate; any other
    failure is raised immediately as a ProviderError. Nothing is retried.

    Example:
        >>> client = ProviderClient(config.providers)
        >>> response = await client.complete("claude", CompletionContext(messages=[...]))
        >>> response.content
    """

    def __init__(
        self,
        providers: dict[str, ProviderConfig],
        model_factory: ModelFactory = build_chat_model,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the client.

        Args:
            providers: Provider configurations by name.
            model_factory: Builds a chat model for (config, model, temperature, max_tokens).
            clock: Monotonic clock used by rate limiters.
            sleep: Sleep function used by rate limiters.
        """
        self._providers = dict(providers)
        self._model_factory = model_factory
        self._limiters: dict[str, RateLimiter] = {}

        for name, config in self._providers.items():
            if config.protocol not in SUPPORTED_PROTOCOLS:
                logger.warning(f"Provider '{name}' uses unsupported protocol '{config.protocol}'")
            if config.requests_per_minute:
                self._limiters[name] = RateLimiter(
                    provider_name=name,
                    requests_per_minute=config.requests_per_minute,
                    mode=config.rate_limit_mode,
                    max_queued=config.max_queued_requests,
                    clock=clock,
                    sleep=sleep,
                )

    def list_providers(self) -> list[str]:
        return list(self._providers)

    def has_provider(self, name: str) -> bool:
        return name in self._providers

    def get_config(self, name: str) -> ProviderConfig:
        """Return a provider's configuration.

        Raises:
            UnknownProviderError: If no provider has this name.
        """
        config = self._providers.get(name)
        if config is None:
            raise UnknownProviderError(
                f"Unknown provider. Configured: {', '.join(self._providers) or 'none'}",
                name,
            )
        return config

    def candidate_models(self, name: str, requested: str | None = None) -> list[str]:
        """Return the models to try for a request, most preferred first.

        Order: explicit request, configured model, preference order, fallbacks.
        Duplicates are dropped.
        """
        config = self.get_config(name)
        ordered: list[str] = []
        for model in [requested, config.model, *config.model_order, *config.model_fallbacks]:
            if model and model not in ordered:
                ordered.append(model)
        return ordered

    async def complete(self, provider_name: str, context: CompletionContext) -> CompletionResponse:
        """Produce one completion from a named provider.

        Args:
            provider_name: Configured provider name.
            context: Messages and generation options.

        Returns:
            The completion, with the model that answered and token usage.

        Raises:
            UnknownProviderError: If the provider is not configured.
            RateLimitExceededError: If the request exceeds the rate budget.
            NoModelAvailableError: If no candidate model is available.
            ProviderError: For any other provider failure.
        """
        config = self.get_config(provider_name)
        models = self.candidate_models(provider_name, context.model)
        if not models:
            raise NoModelAvailableError("No model configured", provider_name)

        cache = context.cache
        if cache is None and config.cache is not None:
            cache = CachePolicy(max_age_seconds=config.cache.max_age_seconds)
        request = CompletionContext(
            messages=context.messages,
            model=context.model,
            temperature=context.temperature if context.temperature is not None else config.temperature,
            max_tokens=context.max_tokens if context.max_tokens is not None else config.max_tokens,
            cache=cache,
        )
        messages = to_langchain_messages(request, config.protocol)

        unavailable: list[str] = []
        for model_name in models:
            limiter = self._limiters.get(provider_name)
            if limiter is not None:
                await limiter.acquire()

            try:
                chat_model = self._model_factory(config, model_name, request.temperature, request.max_tokens)
            except ValueError as e:
                raise ProviderError(str(e), provider_name) from e

            started = time.monotonic()
            try:
                reply = await chat_model.ainvoke(messages)
            except Exception as e:
                if is_model_unavailable(e):
                    logger.warning(f"Model {model_name} unavailable on {provider_name}: {e}")
                    unavailable.append(model_name)
                    continue
                logger.error(f"Provider {provider_name} failed with model {model_name}: {e}")
                raise ProviderError(_describe(e), provider_name) from e

            usage = extract_usage(reply)
            answered_by = _response_model(reply) or model_name
            logger.info(
                f"Completion from {provider_name}/{answered_by} in {time.monotonic() - started:.1f}s "
                f"(tokens in={usage.prompt_tokens} out={usage.completion_tokens} cached={usage.cached_tokens})"
            )
            return CompletionResponse(
                content=extract_text(reply),
                model=answered_by,
                usage=usage,
                cached=usage.cached_tokens > 0,
            )

        raise NoModelAvailableError(
            f"No available model (tried: {', '.join(unavailable)})",
            provider_name,
        )


def _response_model(reply: Any) -> str | None:
    metadata = getattr(reply, "response_metadata", None) or {}
    return metadata.get("model_name") or metadata.get("model")


def _describe(error: Exception) -> str:
    text = str(error).strip()
    return text or type(error).__name__
