"""Shared fixtures and fakes for the test suite."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx
import pytest
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult

from toolgate.config import ToolSettings
from toolgate.models.messages import Message, TextPart, ToolInvocation, ToolInvocationPart
from toolgate.tools.base import ToolServices, create_tool_services

PIKACHU_PAYLOAD = {
    "id": 25,
    "name": "pikachu",
    "height": 4,
    "weight": 60,
    "types": [{"type": {"name": "electric"}}],
    "abilities": [{"ability": {"name": "static"}}, {"ability": {"name": "lightning-rod"}}],
    "sprites": {"front_default": "https://img.example/25.png"},
}


class RecordingChannel:
    """Output channel that records every published tool result."""

    def __init__(self) -> None:
        self.published: list[tuple[str, Any]] = []

    async def publish_tool_result(self, tool_call_id: str, result: Any) -> None:
        self.published.append((tool_call_id, result))


class ScriptedChatModel(BaseChatModel):
    """Chat model that replies with a fixed sequence of messages.

    An exception in ``responses`` is raised instead of replying.
    """

    responses: list[Any]
    received: list[list[BaseMessage]] = []
    bound_tools: list[Any] = []

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def bind_tools(self, tools, **kwargs):
        self.bound_tools = list(tools)
        return self

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        self.received.append(list(messages))
        response = self.responses[len(self.received) - 1]
        if isinstance(response, Exception):
            raise response
        return ChatResult(generations=[ChatGeneration(message=response)])


@dataclass
class StoredObject:
    data: bytes
    content_type: str
    cache_control: str


class InMemoryObjectStorage:
    """Object storage kept in a dict, keyed by object key."""

    def __init__(self) -> None:
        self.objects: dict[str, StoredObject] = {}

    async def put(self, key: str, data: bytes, content_type: str, cache_control: str) -> None:
        self.objects[key] = StoredObject(data=data, content_type=content_type, cache_control=cache_control)


class FakeImageGenerator:
    def __init__(self, image: bytes = b"jpeg-bytes", error: Exception | None = None):
        self.image = image
        self.error = error
        self.calls: list[tuple[str, int]] = []

    async def generate(self, prompt: str, steps: int) -> bytes:
        self.calls.append((prompt, steps))
        if self.error:
            raise self.error
        return self.image


def make_services(
    handler: Callable[[httpx.Request], httpx.Response] | None = None,
    **settings: Any,
) -> ToolServices:
    """Tool services whose outbound HTTP is answered by ``handler``."""
    handler = handler or (lambda request: httpx.Response(404))
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return create_tool_services(settings=ToolSettings(**settings), http=http, storage=InMemoryObjectStorage())


def invocation_part(
    tool_call_id: str,
    tool_name: str,
    args: dict[str, Any] | None = None,
    state: str = "result",
    result: Any = None,
) -> ToolInvocationPart:
    return ToolInvocationPart(
        tool_invocation=ToolInvocation(
            state=state,
            tool_call_id=tool_call_id,
            tool_name=tool_name,
            args=args or {},
            result=result,
        )
    )


def weather_transcript(decision: str, city: str = "Lima") -> list[Message]:
    return [
        Message(id="u1", role="user", content=f"what's the weather in {city}?"),
        Message(
            id="a1",
            role="assistant",
            parts=[
                TextPart(text="Let me check."),
                invocation_part("call-1", "getWeatherInformation", {"city": city}, result=decision),
            ],
        ),
    ]


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def services() -> ToolServices:
    return make_services()
