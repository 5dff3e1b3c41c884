"""Tests for the chat service running the graph over a scripted model."""

from unittest.mock import AsyncMock, Mock

import httpx
import pytest
from conftest import PIKACHU_PAYLOAD, ScriptedChatModel, make_services
from langchain_core.messages import AIMessage, ToolMessage

from toolgate.graphs.conversation import ChatGraphManager
from toolgate.models.messages import Approval, Message
from toolgate.models.session import Session
from toolgate.services.chat import ChatService
from toolgate.services.reconciliation import DENIAL_MESSAGE
from toolgate.services.stream import DataStreamWriter, parse_stream_part
from toolgate.services.tokens import TokenCounter
from toolgate.tools.confirmation import build_default_resolver
from toolgate.tools.registry import build_default_registry

WEATHER_CALL = AIMessage(
    content="Let me check the weather.",
    tool_calls=[{"id": "call-1", "name": "getWeatherInformation", "args": {"city": "Lima"}}],
)


def build_service(model: ScriptedChatModel, services=None) -> ChatService:
    registry = build_default_registry()
    token_counter = TokenCounter()
    token_counter.tokenizer = None
    return ChatService(
        registry=registry,
        resolver=build_default_resolver(registry),
        services=services or make_services(),
        graph_manager=ChatGraphManager(token_counter=token_counter, chat_model=model),
        token_counter=token_counter,
    )


async def run_chat(service: ChatService, session: Session, messages: list[Message]):
    writer = DataStreamWriter()
    transcript = await service.handle_chat(session, messages, writer)
    await writer.close()
    events = [parse_stream_part(line) async for line in writer]
    return transcript, events


def decide(transcript: list[Message], decision: Approval) -> list[Message]:
    """Answer every pending invocation in the last message, as a confirmation UI would."""
    last = transcript[-1]
    parts = []
    for part in last.parts:
        if part.type == "tool-invocation" and part.tool_invocation.state == "call":
            invocation = part.tool_invocation.model_copy(update={"state": "result", "result": decision})
            part = part.model_copy(update={"tool_invocation": invocation})
        parts.append(part)
    return [*transcript[:-1], last.model_copy(update={"parts": parts})]


class TestConfirmationFlow:
    """Tests for the approve/deny round trip."""

    @pytest.mark.asyncio
    async def test_gated_call_pauses_for_confirmation(self):
        """Test that a call to a gated tool ends the turn with a pending invocation."""
        model = ScriptedChatModel(responses=[WEATHER_CALL])
        service = build_service(model)
        session = Session(session_id="s1")

        transcript, events = await run_chat(
            service, session, [Message(id="u1", role="user", content="What's the weather in Lima?")]
        )

        [invocation] = transcript[-1].tool_invocations()
        assert invocation.state == "call"
        assert invocation.tool_name == "getWeatherInformation"
        assert invocation.args == {"city": "Lima"}
        assert [kind for kind, _ in events] == ["text", "tool_call", "finish_message"]
        assert events[-1][1]["finishReason"] == "tool-calls"
        assert session.messages == transcript
        assert len(model.received) == 1
        assert {tool["name"] for tool in model.bound_tools} >= {"getWeatherInformation", "searchPokemon"}

    @pytest.mark.asyncio
    async def test_approval_runs_tool_then_model_continues(self):
        """Test the approved call's result is streamed first, then the model's answer."""
        model = ScriptedChatModel(responses=[WEATHER_CALL, AIMessage(content="It's sunny in Lima!")])
        service = build_service(model)
        session = Session(session_id="s1")

        first, _ = await run_chat(service, session, [Message(id="u1", role="user", content="Weather in Lima?")])
        transcript, events = await run_chat(service, session, decide(first, Approval.YES))

        reconciled = transcript[-2].tool_invocations()[0]
        assert reconciled.result.startswith("The weather in Lima is sunny")
        assert transcript[-1].text() == "It's sunny in Lima!"
        assert [kind for kind, _ in events] == ["tool_result", "text", "finish_message"]
        assert events[0][1] == {"toolCallId": "call-1", "result": reconciled.result}
        assert events[-1][1]["finishReason"] == "stop"

        second_input = model.received[1]
        assert isinstance(second_input[-1], ToolMessage)
        assert second_input[-1].tool_call_id == "call-1"
        assert second_input[-1].content == reconciled.result

    @pytest.mark.asyncio
    async def test_denial_is_reported_to_model(self):
        """Test that a denial reaches the model as the tool result."""
        model = ScriptedChatModel(responses=[WEATHER_CALL, AIMessage(content="Okay, I won't check.")])
        service = build_service(model)
        session = Session(session_id="s1")

        first, _ = await run_chat(service, session, [Message(id="u1", role="user", content="Weather in Lima?")])
        transcript, events = await run_chat(service, session, decide(first, Approval.NO))

        assert transcript[-2].tool_invocations()[0].result == DENIAL_MESSAGE
        assert events[0] == ("tool_result", {"toolCallId": "call-1", "result": DENIAL_MESSAGE})
        assert model.received[1][-1].content == DENIAL_MESSAGE

    @pytest.mark.asyncio
    async def test_undecided_invocation_does_not_run_model(self):
        """Test that a transcript still waiting on a human does not reach the model."""
        graph_manager = Mock()
        graph_manager.run = AsyncMock()
        registry = build_default_registry()
        service = ChatService(
            registry=registry,
            resolver=build_default_resolver(registry),
            services=make_services(),
            graph_manager=graph_manager,
            token_counter=TokenCounter(),
        )
        pending = Message.model_validate(
            {
                "id": "a1",
                "role": "assistant",
                "parts": [
                    {
                        "type": "tool-invocation",
                        "toolInvocation": {
                            "state": "call",
                            "toolCallId": "call-1",
                            "toolName": "getWeatherInformation",
                            "args": {"city": "Lima"},
                        },
                    }
                ],
            }
        )

        _, events = await run_chat(service, Session(session_id="s1"), [pending])

        graph_manager.run.assert_not_called()
        assert events == [("finish_message", {"finishReason": "awaiting-confirmation", "usage": {}})]


class TestModelLoop:
    """Tests for auto-executed tools and failures inside the graph."""

    @pytest.mark.asyncio
    async def test_auto_tool_runs_without_confirmation(self):
        """Test that auto-executed tools run inside the loop and feed the next model call."""
        model = ScriptedChatModel(
            responses=[
                AIMessage(content="", tool_calls=[{"id": "call-p", "name": "searchPokemon", "args": {"nameOrId": "25"}}]),
                AIMessage(content="That's Pikachu!"),
            ]
        )
        services = make_services(lambda request: httpx.Response(200, json=PIKACHU_PAYLOAD))
        service = build_service(model, services)

        transcript, events = await run_chat(
            service, Session(session_id="s1"), [Message(id="u1", role="user", content="Show me #25")]
        )

        [invocation] = transcript[-1].tool_invocations()
        assert invocation.state == "result"
        assert "Pokémon: pikachu (ID: 25)" in invocation.result
        assert transcript[-1].text() == "That's Pikachu!"
        assert [kind for kind, _ in events] == ["tool_call", "tool_result", "text", "finish_message"]
        assert isinstance(model.received[1][-1], ToolMessage)

    @pytest.mark.asyncio
    async def test_mixed_response_runs_auto_tools_then_waits(self):
        """Test that auto tools in a response with a gated call run, then the turn ends pending."""
        model = ScriptedChatModel(
            responses=[
                AIMessage(
                    content="",
                    tool_calls=[
                        {"id": "call-p", "name": "searchPokemon", "args": {"nameOrId": "25"}},
                        {"id": "call-w", "name": "getWeatherInformation", "args": {"city": "Lima"}},
                    ],
                ),
            ]
        )
        services = make_services(lambda request: httpx.Response(200, json=PIKACHU_PAYLOAD))
        service = build_service(model, services)

        transcript, events = await run_chat(
            service, Session(session_id="s1"), [Message(id="u1", role="user", content="Pikachu and Lima weather")]
        )

        pokemon, weather = transcript[-1].tool_invocations()
        assert pokemon.state == "result"
        assert "Pokémon: pikachu (ID: 25)" in pokemon.result
        assert weather.state == "call"
        assert weather.result is None
        assert [kind for kind, _ in events] == ["tool_call", "tool_call", "tool_result", "finish_message"]
        assert events[2][1]["toolCallId"] == "call-p"
        assert events[-1][1]["finishReason"] == "tool-calls"
        assert len(model.received) == 1

    @pytest.mark.asyncio
    async def test_invalid_tool_arguments_are_returned_to_model(self):
        model = ScriptedChatModel(
            responses=[
                AIMessage(content="", tool_calls=[{"id": "call-p", "name": "searchPokemon", "args": {}}]),
                AIMessage(content="I need a name."),
            ]
        )
        service = build_service(model)

        transcript, _ = await run_chat(
            service, Session(session_id="s1"), [Message(id="u1", role="user", content="Find a pokemon")]
        )

        assert transcript[-1].tool_invocations()[0].result.startswith("Error: Invalid arguments for searchPokemon")

    @pytest.mark.asyncio
    async def test_model_failure_streams_apology(self):
        """Test that a model error ends the turn with an apology instead of raising."""
        model = ScriptedChatModel(responses=[RuntimeError("upstream exploded")])
        service = build_service(model)

        transcript, events = await run_chat(
            service, Session(session_id="s1"), [Message(id="u1", role="user", content="hello")]
        )

        assert events[0] == ("text", "I apologize, but I encountered an error. Please try rephrasing your request.")
        assert transcript[-1].role == "assistant"


class TestScheduledTask:
    def test_execute_task_appends_user_message(self, services):
        registry = build_default_registry()
        service = ChatService(
            registry=registry,
            resolver=build_default_resolver(registry),
            services=services,
            graph_manager=Mock(),
            token_counter=TokenCounter(),
        )
        session = Session(session_id="s1")

        message = service.execute_task(session, "daily report")

        assert message.role == "user"
        assert message.content == "Running scheduled task: daily report"
        assert session.messages == [message]
