"""Google Gemini provider."""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator

from google import genai
from google.genai import types

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


class GoogleProvider(Provider):
    name = "google"
    supports_streaming = True

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        client: genai.Client | None = None,
    ):
        super().__init__(model or default_model(self.name))
        self.temperature = temperature
        self.client = client or genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(REQUEST_TIMEOUT * 1000)),
        )

    def _request(self, messages: list[Message], tools: list[ToolDef]) -> dict:
        system, contents = self._convert_messages(messages)
        config = types.GenerateContentConfig(
            max_output_tokens=MAX_TOKENS,
            temperature=self.temperature,
        )
        if system:
            config.system_instruction = system
        if tools:
            config.tools = self.convert_tools(tools)
        return {"model": self.model, "contents": contents, "config": config}

    async def chat(self, messages: list[Message], tools: list[ToolDef]) -> ModelResponse:
        try:
            response = await self.client.aio.models.generate_content(
                **self._request(messages, tools)
            )
            return self._parse(response)
        except Exception as e:
            return ModelResponse.failure(describe_failure(self.name, e))

    def _parse(self, response) -> ModelResponse:
        content = ""
        tool_calls = []

        if response.candidates and response.candidates[0].content:
            for part in response.candidates[0].content.parts or []:
                if part.text:
                    content += part.text
                elif part.function_call:
                    fc = part.function_call
                    # Gemini does not assign call ids
                    tool_calls.append(ToolCall(
                        id=fc.id or f"call_{uuid.uuid4().hex[:12]}",
                        name=fc.name,
                        arguments=dict(fc.args) if fc.args else {},
                    ))

        finish = "tool_use" if tool_calls else "stop"
        if response.candidates and response.candidates[0].finish_reason:
            if "MAX_TOKENS" in str(response.candidates[0].finish_reason):
                finish = "length"

        usage = None
        if response.usage_metadata:
            usage = Usage(
                input_tokens=response.usage_metadata.prompt_token_count or 0,
                output_tokens=response.usage_metadata.candidates_token_count or 0,
            )

        return ModelResponse(
            content=content or None,
            tool_calls=tool_calls,
            finish_reason=finish,
            usage=usage,
        )

    async def stream_chat(
        self, messages: list[Message], tools: list[ToolDef]
    ) -> AsyncIterator[str]:
        try:
            stream = await self.client.aio.models.generate_content_stream(
                **self._request(messages, tools)
            )
            async for chunk in stream:
                if chunk.text:
                    yield chunk.text
        except Exception as e:
            yield describe_failure(self.name, e)

    def convert_tools(self, tools: list[ToolDef]) -> list[types.Tool]:
        declarations = []
        for t in tools:
            declarations.append(types.FunctionDeclaration(
                name=t.name,
                description=t.description,
                parameters=_jsonschema_to_gemini(t.parameters),
            ))
        return [types.Tool(function_declarations=declarations)]

    def _convert_messages(self, messages: list[Message]) -> tuple[str, list[types.Content]]:
        """Gemini takes the system prompt separately and calls the assistant "model"."""
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        result = []
        for msg in messages:
            if msg.role == "system":
                continue
            role = "model" if msg.role == "assistant" else "user"
            result.append(types.Content(
                role=role,
                parts=[types.Part.from_text(text=msg.content)],
            ))
        return system, result


def _jsonschema_to_gemini(schema: dict) -> dict:
    """Convert a JSON Schema dict to a Gemini-compatible schema dict.

    Gemini wants upper-case type names and rejects keys it does not know,
    so only the supported subset is copied.
    """
    result = {}
    if "type" in schema:
        result["type"] = schema["type"].upper()
    if "properties" in schema:
        result["properties"] = {
            k: _jsonschema_to_gemini(v) for k, v in schema["properties"].items()
        }
    if "required" in schema:
        result["required"] = schema["required"]
    if "description" in schema:
        result["description"] = schema["description"]
    if "items" in schema:
        result["items"] = _jsonschema_to_gemini(schema["items"])
    if "enum" in schema:
        result["enum"] = schema["enum"]
    return result
