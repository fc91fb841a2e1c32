"""Provider client abstraction over LangChain chat models."""

from construct.providers.client import ProviderClient
from construct.providers.rate_limiter import RateLimiter
from construct.providers.types import (
    CachePolicy,
    ChatMessage,
    CompletionContext,
    CompletionResponse,
    MessageRole,
    TokenUsage,
)

__all__ = [
    "CachePolicy",
    "ChatMessage",
    "CompletionContext",
    "CompletionResponse",
    "MessageRole",
    "ProviderClient",
    "RateLimiter",
    "TokenUsage",
]
