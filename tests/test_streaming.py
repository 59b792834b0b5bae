"""Tests for the streaming helpers."""

from __future__ import annotations

import pytest

from corvus.providers.base import Message, ModelResponse
from corvus.streaming import StreamHandler, collect_stream, display_stream

HISTORY = [Message("user", "hi")]


class TestStreamHandler:

    @pytest.mark.asyncio
    async def test_native_stream(self, scripted):
        client = scripted([ModelResponse(content="unused")], streaming=True, chunks=["a", "b"])

        chunks = [c async for c in StreamHandler(client).stream(HISTORY, [])]

        assert chunks == ["a", "b"]
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_replays_chat_as_single_chunk(self, scripted):
        client = scripted([ModelResponse(content="whole")])

        chunks = [c async for c in StreamHandler(client).stream(HISTORY, [])]

        assert chunks == ["whole"]

    @pytest.mark.asyncio
    async def test_empty_content_is_empty_chunk(self, scripted):
        client = scripted([ModelResponse(content=None)])
        assert await collect_stream(StreamHandler(client).stream(HISTORY, [])) == ""


@pytest.mark.asyncio
async def test_display_stream_forwards_chunks(scripted):
    client = scripted([], streaming=True, chunks=["x", "y", "z"])
    seen = []

    text = await display_stream(client.stream_chat(HISTORY, []), on_chunk=seen.append)

    assert text == "xyz"
    assert seen == ["x", "y", "z"]


@pytest.mark.asyncio
async def test_display_stream_defaults_to_stdout(scripted, capsys):
    client = scripted([], streaming=True, chunks=["hello ", "world"])

    await display_stream(client.stream_chat(HISTORY, []))

    assert capsys.readouterr().out == "hello world"
