"""Conversion between transcript messages and LangChain messages."""

import json
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from cuid2 import cuid_wrapper
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

from toolgate.models.messages import Message, Part, StepStartPart, TextPart, ToolInvocation, ToolInvocationPart

cuid = cuid_wrapper()

SYSTEM_PROMPT_ID = "system-prompt"


def message_text(message: BaseMessage) -> str:
    """Text content of a LangChain message, ignoring non-text blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    texts = []
    for block in content:
        if isinstance(block, str):
            texts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            texts.append(block.get("text", ""))
    return "".join(texts)


def result_text(result: Any) -> str:
    """Tool result as the text fed back to the model."""
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


def to_langchain_messages(messages: Sequence[Message], system_prompt: str | None = None) -> list[BaseMessage]:
    """Convert a transcript into model input.

    Assistant messages are split into steps; each step becomes an ``AIMessage``
    carrying its tool calls followed by one ``ToolMessage`` per resolved call.
    Invocations still waiting for a result are left out.
    """
    # The model accepts a single leading system message
    system_texts = [system_prompt] if system_prompt else []
    system_texts.extend(message.text() for message in messages if message.role == "system")

    converted: list[BaseMessage] = []
    if system_texts:
        converted.append(SystemMessage(content="\n\n".join(system_texts), id=SYSTEM_PROMPT_ID))

    for message in messages:
        if message.role == "system":
            continue
        if message.role == "user":
            converted.append(HumanMessage(content=message.text(), id=message.id))
        elif message.parts is None:
            if message.content:
                converted.append(AIMessage(content=message.content, id=message.id))
        else:
            converted.extend(_assistant_steps(message))

    return converted


def _assistant_steps(message: Message) -> list[BaseMessage]:
    steps: list[list[Part]] = [[]]
    for part in message.parts or []:
        starts_step = isinstance(part, StepStartPart) or (
            isinstance(part, TextPart) and any(isinstance(p, ToolInvocationPart) for p in steps[-1])
        )
        if starts_step and steps[-1]:
            steps.append([])
        if not isinstance(part, StepStartPart):
            steps[-1].append(part)

    converted: list[BaseMessage] = []
    for index, step in enumerate(steps):
        text = "".join(part.text for part in step if isinstance(part, TextPart))
        invocations = [
            part.tool_invocation
            for part in step
            if isinstance(part, ToolInvocationPart) and part.tool_invocation.state == "result"
        ]
        if not text and not invocations:
            continue

        converted.append(
            AIMessage(
                content=text,
                id=f"{message.id}-{index}",
                tool_calls=[
                    {"id": invocation.tool_call_id, "name": invocation.tool_name, "args": invocation.args}
                    for invocation in invocations
                ],
            )
        )
        converted.extend(
            ToolMessage(
                content=result_text(invocation.result),
                tool_call_id=invocation.tool_call_id,
                name=invocation.tool_name,
                id=f"{message.id}-{invocation.tool_call_id}",
            )
            for invocation in invocations
        )

    return converted


def to_assistant_message(new_messages: Sequence[BaseMessage]) -> Message | None:
    """Fold the model's output for one request into a single assistant message.

    Tool calls answered by a ``ToolMessage`` end in ``result`` state; the
    others stay in ``call`` state, awaiting a decision.
    """
    parts: list[Part] = []
    invocation_index: dict[str, int] = {}
    step = 0

    for message in new_messages:
        if isinstance(message, AIMessage):
            parts.append(StepStartPart())
            text = message_text(message)
            if text:
                parts.append(TextPart(text=text))
            for call in message.tool_calls:
                invocation_index[call["id"]] = len(parts)
                parts.append(
                    ToolInvocationPart(
                        tool_invocation=ToolInvocation(
                            state="call",
                            tool_call_id=call["id"],
                            tool_name=call["name"],
                            args=call["args"],
                            step=step,
                        )
                    )
                )
            step += 1
        elif isinstance(message, ToolMessage) and message.tool_call_id in invocation_index:
            position = invocation_index[message.tool_call_id]
            part = parts[position]
            result = message.artifact if message.artifact is not None else message_text(message)
            invocation = part.tool_invocation.model_copy(update={"state": "result", "result": result})
            parts[position] = part.model_copy(update={"tool_invocation": invocation})

    if not parts:
        return None

    return Message(
        id=cuid(),
        role="assistant",
        content="".join(part.text for part in parts if isinstance(part, TextPart)),
        parts=parts,
        created_at=datetime.now(UTC),
    )
