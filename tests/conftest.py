"""Shared fixtures: a scripted provider that never touches the network."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest

from corvus.budget import Pricing
from corvus.providers.base import Message, ModelResponse, Provider, ToolDef


class ScriptedProvider(Provider):
    """Replays a fixed list of responses; the last one repeats once exhausted."""

    name = "scripted"

    def __init__(self, responses, streaming=False, chunks=None, estimate=0.0,
                 pricing=Pricing(0.0, 0.0), delay=0.0, stream_delay=0.0):
        super().__init__("scripted-model")
        self.responses = list(responses)
        self.supports_streaming = streaming
        self.chunks = chunks
        self.estimate = estimate
        self.pricing = pricing
        self.delay = delay
        self.stream_delay = stream_delay
        self.calls: list[list[Message]] = []
        self.stream_calls: list[list[Message]] = []

    async def chat(self, messages: list[Message], tools: list[ToolDef]) -> ModelResponse:
        self.calls.append(list(messages))
        if self.delay:
            await asyncio.sleep(self.delay)
        index = min(len(self.calls) - 1, len(self.responses) - 1)
        return self.responses[index]

    async def stream_chat(self, messages: list[Message], tools: list[ToolDef]) -> AsyncIterator[str]:
        self.stream_calls.append(list(messages))
        for chunk in self.chunks or []:
            if self.stream_delay:
                await asyncio.sleep(self.stream_delay)
            yield chunk

    def estimate_cost(self, messages: list[Message]) -> float:
        return self.estimate

    def convert_tools(self, tools: list[ToolDef]) -> list:
        return [t.name for t in tools]


@pytest.fixture
def scripted():
    return ScriptedProvider
