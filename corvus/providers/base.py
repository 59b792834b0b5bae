"""Base types and abstract provider interface."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Literal

from corvus.budget import Pricing, estimate_cost, pricing_for

logger = logging.getLogger(__name__)

Role = Literal["user", "assistant", "system"]
FinishReason = Literal["stop", "tool_use", "length", "error"]

# SDK clients are built with this per-request timeout (seconds)
REQUEST_TIMEOUT = 60.0


@dataclass
class Message:
    """One entry of the conversation history."""
    role: Role
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict) -> Message:
        return cls(role=data["role"], content=data.get("content") or "")


@dataclass
class ToolCall:
    """A tool call requested by the model."""
    id: str
    name: str
    arguments: dict


@dataclass
class Usage:
    """Token counts reported by a provider for one call."""
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class ModelResponse:
    """Unified result from any LLM provider."""
    content: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    finish_reason: FinishReason = "stop"
    usage: Usage | None = None

    @classmethod
    def failure(cls, message: str) -> ModelResponse:
        return cls(content=message, finish_reason="error")


@dataclass
class ToolDef:
    """A tool definition that gets converted to each provider's format."""
    name: str
    description: str
    parameters: dict  # JSON Schema


def describe_failure(provider: str, exc: BaseException) -> str:
    """User-facing text for a failed provider call.

    Only the exception class reaches the conversation; the full error is
    logged at DEBUG.
    """
    logger.debug("%s request failed", provider, exc_info=exc)
    return f"Error: {provider} request failed ({type(exc).__name__}). Please try again."


class Provider(ABC):
    """Abstract base for LLM providers.

    An adapter is bound to one provider name and one model for its lifetime.
    ``chat`` never raises: failures come back as a response whose
    ``finish_reason`` is ``"error"``.
    """

    name: str
    supports_streaming: bool = False

    def __init__(self, model: str):
        self.model = model
        self.pricing: Pricing = pricing_for(self.name, model)

    @property
    def provider(self) -> str:
        return self.name

    @abstractmethod
    async def chat(self, messages: list[Message], tools: list[ToolDef]) -> ModelResponse:
        """Send the history to the LLM and return a unified result."""

    async def stream_chat(
        self, messages: list[Message], tools: list[ToolDef]
    ) -> AsyncIterator[str]:
        """Yield the reply incrementally. Only valid when ``supports_streaming``."""
        raise NotImplementedError(f"{self.name} does not support streaming")
        yield  # pragma: no cover

    def estimate_cost(self, messages: list[Message]) -> float:
        """Cheap local USD estimate for sending ``messages``. No network."""
        return estimate_cost(messages, self.pricing)

    @abstractmethod
    def convert_tools(self, tools: list[ToolDef]) -> list:
        """Convert tool definitions to provider-native format."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}:{self.model}>"
