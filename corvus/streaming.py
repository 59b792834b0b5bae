"""Uniform chunk streams over providers with or without native streaming."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable

from corvus.providers.base import Message, Provider, ToolDef


class StreamHandler:
    """Streams a reply from ``client``, replaying ``chat`` as one chunk when needed."""

    def __init__(self, client: Provider):
        self.client = client

    async def stream(self, messages: list[Message], tools: list[ToolDef]) -> AsyncIterator[str]:
        if not self.client.supports_streaming:
            response = await self.client.chat(messages, tools)
            yield response.content or ""
            return

        async for chunk in self.client.stream_chat(messages, tools):
            yield chunk


async def collect_stream(stream: AsyncIterator[str]) -> str:
    return "".join([chunk async for chunk in stream])


async def display_stream(
    stream: AsyncIterator[str],
    on_chunk: Callable[[str], None] | None = None,
) -> str:
    """Hand each chunk to ``on_chunk`` (stdout by default) and return the full text."""
    parts = []
    async for chunk in stream:
        parts.append(chunk)
        if on_chunk is not None:
            on_chunk(chunk)
        else:
            print(chunk, end="", flush=True)
    return "".join(parts)
