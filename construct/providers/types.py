"""Provider-neutral request and response types."""

from dataclasses import dataclass, field
from enum import StrEnum


class MessageRole(StrEnum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class ChatMessage:
    role: MessageRole
    content: str

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(MessageRole.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(MessageRole.USER, content)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls(MessageRole.ASSISTANT, content)


@dataclass
class CachePolicy:
    """Request native prompt caching for the stable prefix of a context."""

    max_age_seconds: int = 300


@dataclass
class CompletionContext:
    """Everything a provider needs to produce one completion.

    Attributes:
        messages: Ordered conversation, system messages first.
        model: Explicit model override; otherwise the provider's preference applies.
        temperature: Sampling temperature override.
        max_tokens: Completion token limit override.
        cache: Native caching request, or None to use the provider default.
    """

    messages: list[ChatMessage] = field(default_factory=list)
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    cache: CachePolicy | None = None


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cached_tokens: int = 0


@dataclass
class CompletionResponse:
    """A successful completion.

    Attributes:
        content: Generated text.
        model: Model that actually answered (after fallbacks).
        usage: Token accounting reported by the provider.
        cached: True when the provider reported a native cache hit.
    """

    content: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    cached: bool = False
