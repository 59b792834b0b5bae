"""Anthropic Claude provider."""

from __future__ import annotations

from collections.abc import AsyncIterator

import anthropic

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

MAX_TOKENS = 4096


class AnthropicProvider(Provider):
    name = "anthropic"
    supports_streaming = True

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        super().__init__(model or default_model(self.name))
        self.temperature = temperature
        self.client = client or anthropic.AsyncAnthropic(
            api_key=api_key, timeout=REQUEST_TIMEOUT
        )

    def _request(self, messages: list[Message], tools: list[ToolDef]) -> dict:
        system, api_messages = self._convert_messages(messages)
        kwargs: dict = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "messages": api_messages,
            "temperature": self.temperature,
        }
        if system:
            kwargs["system"] = system
        api_tools = self.convert_tools(tools)
        if api_tools:
            kwargs["tools"] = api_tools
        return kwargs

    async def chat(self, messages: list[Message], tools: list[ToolDef]) -> ModelResponse:
        try:
            response = await self.client.messages.create(**self._request(messages, tools))
            return self._parse(response)
        except Exception as e:
            return ModelResponse.failure(describe_failure(self.name, e))

    def _parse(self, response) -> ModelResponse:
        content = ""
        tool_calls = []
        for block in response.content:
            if block.type == "text":
                content += block.text
            elif block.type == "tool_use":
                tool_calls.append(ToolCall(
                    id=block.id,
                    name=block.name,
                    arguments=block.input if isinstance(block.input, dict) else {},
                ))

        finish = "tool_use" if tool_calls else "stop"
        if response.stop_reason == "max_tokens":
            finish = "length"

        return ModelResponse(
            content=content or None,
            tool_calls=tool_calls,
            finish_reason=finish,
            usage=Usage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            ),
        )

    async def stream_chat(
        self, messages: list[Message], tools: list[ToolDef]
    ) -> AsyncIterator[str]:
        try:
            async with self.client.messages.stream(**self._request(messages, tools)) as stream:
                async for text in stream.text_stream:
                    if text:
                        yield text
        except Exception as e:
            yield describe_failure(self.name, e)

    def convert_tools(self, tools: list[ToolDef]) -> list[dict]:
        return [
            {
                "name": t.name,
                "description": t.description,
                "input_schema": t.parameters,
            }
            for t in tools
        ]

    def _convert_messages(self, messages: list[Message]) -> tuple[str, list[dict]]:
        """Split out the system prompt; Anthropic takes it as a separate field."""
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        result = []
        for msg in messages:
            if msg.role == "system":
                continue
            # Anthropic requires alternating roles; fold repeats into one turn
            if result and result[-1]["role"] == msg.role:
                result[-1]["content"] += "\n\n" + msg.content
            else:
                result.append({"role": msg.role, "content": msg.content})
        return system, result
