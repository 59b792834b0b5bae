"""OpenAI-compatible provider (OpenAI, Groq, Ollama)."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator

from openai import AsyncOpenAI

from corvus.models import default_model
from corvus.providers.base import (
    REQUEST_TIMEOUT,
    Message,
    ModelResponse,
    Provider,
    ToolCall,
    ToolDef,
    Usage,
    describe_failure,
)

logger = logging.getLogger(__name__)

BASE_URLS = {
    "openai": "https://api.openai.com/v1",
    "groq": "https://api.groq.com/openai/v1",
    "ollama": "http://localhost:11434/v1",
}


class OpenAIProvider(Provider):
    supports_streaming = True

    def __init__(
        self,
        provider: str = "openai",
        api_key: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        client: AsyncOpenAI | None = None,
    ):
        if provider not in BASE_URLS:
            raise ValueError(f"Not an OpenAI-compatible provider: {provider}")
        self.name = provider
        super().__init__(model or default_model(provider))
        self.temperature = temperature
        self.client = client or AsyncOpenAI(
            # Ollama ignores the key but the SDK requires one
            api_key=api_key or "ollama",
            base_url=BASE_URLS[provider],
            timeout=REQUEST_TIMEOUT,
        )

    def _request(self, messages: list[Message], tools: list[ToolDef]) -> dict:
        kwargs: dict = {
            "model": self.model,
            "messages": self._convert_messages(messages),
            "temperature": self.temperature,
        }
        api_tools = self.convert_tools(tools)
        if api_tools:
            kwargs["tools"] = api_tools
            kwargs["tool_choice"] = "auto"
        return kwargs

    async def chat(self, messages: list[Message], tools: list[ToolDef]) -> ModelResponse:
        try:
            response = await self.client.chat.completions.create(
                **self._request(messages, tools)
            )
            return self._parse(response)
        except Exception as e:
            return ModelResponse.failure(describe_failure(self.name, e))

    def _parse(self, response) -> ModelResponse:
        choice = response.choices[0]
        tool_calls = []

        if choice.message.tool_calls:
            for tc in choice.message.tool_calls:
                try:
                    args = json.loads(tc.function.arguments)
                except (json.JSONDecodeError, TypeError):
                    logger.debug("Unparseable arguments for %s: %r",
                                 tc.function.name, tc.function.arguments)
                    args = {}
                tool_calls.append(ToolCall(
                    id=tc.id,
                    name=tc.function.name,
                    arguments=args if isinstance(args, dict) else {},
                ))

        finish = "tool_use" if tool_calls else "stop"
        if choice.finish_reason == "length":
            finish = "length"

        usage = None
        if response.usage:
            usage = Usage(
                input_tokens=response.usage.prompt_tokens or 0,
                output_tokens=response.usage.completion_tokens or 0,
            )

        return ModelResponse(
            content=choice.message.content or None,
            tool_calls=tool_calls,
            finish_reason=finish,
            usage=usage,
        )

    async def stream_chat(
        self, messages: list[Message], tools: list[ToolDef]
    ) -> AsyncIterator[str]:
        try:
            stream = await self.client.chat.completions.create(
                **self._request(messages, tools), stream=True
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except Exception as e:
            yield describe_failure(self.name, e)

    def convert_tools(self, tools: list[ToolDef]) -> list[dict]:
        return [
            {
                "type": "function",
                "function": {
                    "name": t.name,
                    "description": t.description,
                    "parameters": t.parameters,
                },
            }
            for t in tools
        ]

    def _convert_messages(self, messages: list[Message]) -> list[dict]:
        """OpenAI accepts the system/user/assistant roles as they are."""
        return [{"role": m.role, "content": m.content} for m in messages]
