"""Node implementations for the chat graph."""

import asyncio
import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, RemoveMessage, SystemMessage, ToolMessage
from langchain_core.messages.tool import ToolCall as LangChainToolCall
from langchain_core.runnables import RunnableConfig
from pydantic import ValidationError

from toolgate.config import ModelConfig
from toolgate.graphs.convert import message_text, result_text
from toolgate.graphs.state import ChatState, ToolCall
from toolgate.models.messages import Message
from toolgate.services.stream import DataStreamWriter
from toolgate.services.tokens import ModelRateLimiter, TokenCounter
from toolgate.tools.base import ToolContext, ToolServices
from toolgate.tools.registry import ToolRegistry
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)

MAX_RETRIES = 3


@dataclass
class ChatRuntime:
    """Per-request dependencies, passed to nodes through the run config."""

    registry: ToolRegistry
    channel: DataStreamWriter
    services: ToolServices
    model_config: ModelConfig
    token_counter: TokenCounter
    rate_limiter: ModelRateLimiter
    transcript: Sequence[Message] = ()
    chat_model: BaseChatModel | None = None


def get_runtime(config: RunnableConfig) -> ChatRuntime:
    return config["configurable"]["runtime"]


def _create_model(runtime: ChatRuntime) -> BaseChatModel:
    if runtime.chat_model is not None:
        return runtime.chat_model

    model_config = runtime.model_config
    api_key = model_config.api_key
    if not api_key:
        raise ValueError("ANTHROPIC_API_KEY environment variable is required")

    return ChatAnthropic(
        model=model_config.model,
        temperature=model_config.temperature,
        max_tokens=model_config.max_tokens,
        max_retries=model_config.max_retries,
        api_key=api_key,
    )


async def agent_node(state: ChatState, config: RunnableConfig) -> dict[str, Any]:
    """Call the model with the advertised tools and decide the next step.

    Calls to confirmation-required tools are not executed here; they end the
    run and reach the client as pending invocations.
    """
    logger.info(f"Agent node processing for session {state.session_id}")
    runtime = get_runtime(config)

    try:
        tool_specs = runtime.registry.tool_specs()
        model = _create_model(runtime).bind_tools(tool_specs)

        tool_tokens = runtime.token_counter.estimate(json.dumps(tool_specs))
        messages = runtime.token_counter.truncate(state.messages, reserved_tokens=tool_tokens)
        estimated_tokens = tool_tokens + sum(runtime.token_counter.estimate_message(m) for m in messages)
        await runtime.rate_limiter.acquire(estimated_tokens)

        response = await model.ainvoke(messages, config)

        usage = response.usage_metadata or {}
        token_updates = {
            "total_input_tokens": state.total_input_tokens + usage.get("input_tokens", 0),
            "total_output_tokens": state.total_output_tokens + usage.get("output_tokens", 0),
        }

        text = message_text(response)
        if text:
            await runtime.channel.write_text(text)

        if not response.tool_calls:
            return {"messages": [response], "next_step": "end", **token_updates}

        logger.info(f"Agent requesting {len(response.tool_calls)} tool calls")
        for call in response.tool_calls:
            await runtime.channel.write_tool_call(call["id"], call["name"], call["args"])

        pending = [
            ToolCall(id=call["id"], name=call["name"], args=call["args"])
            for call in response.tool_calls
            if runtime.registry.requires_confirmation(call["name"])
        ]
        if pending:
            logger.info(f"Awaiting confirmation for tools: {[call.name for call in pending]}")

        runs_tools = len(pending) < len(response.tool_calls)
        return {
            "messages": [response],
            "pending_confirmations": pending,
            "next_step": "tools" if runs_tools else "end",
            **token_updates,
        }

    except Exception as e:
        logger.error(f"Agent node error: {e}", exc_info=True)
        return {
            "error": str(e),
            "next_step": "error",
        }


async def tools_node(state: ChatState, config: RunnableConfig) -> dict[str, Any]:
    """Run the auto-executed tools requested by the last model response."""
    runtime = get_runtime(config)
    last_message = state.messages[-1]
    if not isinstance(last_message, AIMessage):
        return {"error": "No tool calls to execute", "next_step": "error"}

    calls = [call for call in last_message.tool_calls if not runtime.registry.requires_confirmation(call["name"])]
    tool_messages = await asyncio.gather(*(_execute_tool_call(call, runtime) for call in calls))

    return {
        "messages": list(tool_messages),
        "next_step": "end" if state.pending_confirmations else "agent",
    }


async def _execute_tool_call(call: LangChainToolCall, runtime: ChatRuntime) -> ToolMessage:
    tool_name = call["name"]
    tool = runtime.registry.lookup(tool_name)
    status = "success"

    if tool is None or tool.execute is None:
        logger.error(f"Unknown tool requested: {tool_name}")
        result: Any = f"Error: Unknown tool {tool_name}"
        status = "error"
    else:
        logger.debug(f"Executing tool: tool={tool_name} call_id={call['id']} args={call['args']}")
        context = ToolContext(tool_call_id=call["id"], services=runtime.services, messages=runtime.transcript)
        try:
            result = await tool.execute(tool.parse_input(call["args"]), context)
        except ValidationError as e:
            logger.warning(f"Invalid tool arguments: tool={tool_name} errors={e.error_count()}")
            result = f"Error: Invalid arguments for {tool_name}: {e}"
            status = "error"
        except Exception as e:
            logger.error(f"Tool {tool_name} failed: {e}", exc_info=True)
            result = f"Error: {e!s}"
            status = "error"

    await runtime.channel.publish_tool_result(call["id"], result)
    return ToolMessage(
        content=result_text(result),
        tool_call_id=call["id"],
        name=tool_name,
        status=status,
        artifact=result,
    )


async def error_handler_node(state: ChatState, config: RunnableConfig) -> dict[str, Any]:
    """Handle errors and implement recovery strategies."""
    logger.error(f"Error handler invoked: {state.error}")
    runtime = get_runtime(config)

    error = state.error or "Unknown error occurred"

    if state.retry_count < MAX_RETRIES and ("rate_limit" in error.lower() or "overloaded" in error.lower()):
        await asyncio.sleep(2**state.retry_count)
        return {
            "retry_count": state.retry_count + 1,
            "error": None,
            "next_step": "agent",
        }

    if state.retry_count < MAX_RETRIES and ("token" in error.lower() or "context" in error.lower()):
        # Keep only the last 10 conversation messages
        conversation = [m for m in state.messages if not isinstance(m, SystemMessage)]
        dropped = conversation[:-10]
        return {
            "messages": [RemoveMessage(id=m.id) for m in dropped if m.id],
            "retry_count": state.retry_count + 1,
            "error": None,
            "next_step": "agent",
        }

    error_message = "I apologize, but I encountered an error. Please try rephrasing your request."
    await runtime.channel.write_text(error_message)
    return {
        "messages": [AIMessage(content=error_message)],
        "error": None,
        "next_step": "end",
    }
