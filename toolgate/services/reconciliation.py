"""Reconciliation of human decisions on pending tool invocations.

A confirmation UI answers a pending invocation by writing ``Approval.YES``
or ``Approval.NO`` into its result. ``process_tool_calls`` turns those tokens
into real outcomes: approved calls run through the confirmation resolver,
denied calls get a fixed denial text. Each outcome replaces the token in the
transcript and is published on the output channel as soon as it is known.
"""

import asyncio
from collections.abc import Sequence
from typing import Any

from toolgate.models.messages import Approval, Message, Part, ToolInvocationPart
from toolgate.services.stream import OutputChannel
from toolgate.tools.base import ToolContext, ToolServices
from toolgate.tools.confirmation import ConfirmationResolver
from toolgate.tools.registry import ToolRegistry
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)

DENIAL_MESSAGE = "Error: User denied access to tool execution"


def execution_error_message(error: BaseException) -> str:
    return f"Error executing tool: {error}"


async def process_tool_calls(
    messages: list[Message],
    *,
    registry: ToolRegistry,
    resolver: ConfirmationResolver,
    channel: OutputChannel,
    services: ToolServices,
    resolver_timeout: float | None = None,
) -> list[Message]:
    """Resolve approve/deny decisions in the last message of a transcript.

    Args:
        messages: Transcript, oldest first
        registry: Registry used to identify confirmation-required tools
        resolver: Executions for approved calls
        channel: Sink receiving each reconciled ``(tool_call_id, result)``
        services: Backing services handed to executions
        resolver_timeout: Seconds allowed per approved execution; on expiry
            the part is left pending

    Returns:
        The transcript with only its last message replaced. Earlier messages
        are the same objects as in ``messages``.
    """
    if not messages:
        return messages

    last_message = messages[-1]
    if last_message.parts is None:
        logger.debug(f"No parts in last message: message_id={last_message.id}")
        return messages

    snapshot = tuple(messages)
    processed_parts = await asyncio.gather(
        *(
            _reconcile_part(
                part,
                registry=registry,
                resolver=resolver,
                channel=channel,
                services=services,
                transcript=snapshot,
                resolver_timeout=resolver_timeout,
            )
            for part in last_message.parts
        )
    )

    if all(new is old for new, old in zip(processed_parts, last_message.parts, strict=True)):
        return messages

    logger.debug(f"Reconciled last message: message_id={last_message.id} parts={len(processed_parts)}")
    return [*messages[:-1], last_message.model_copy(update={"parts": list(processed_parts)})]


async def _reconcile_part(
    part: Part,
    *,
    registry: ToolRegistry,
    resolver: ConfirmationResolver,
    channel: OutputChannel,
    services: ToolServices,
    transcript: Sequence[Message],
    resolver_timeout: float | None,
) -> Part:
    if not isinstance(part, ToolInvocationPart):
        return part

    invocation = part.tool_invocation
    tool_name = invocation.tool_name

    if not resolver.has(tool_name) or invocation.state != "result":
        logger.debug(
            f"Skipping tool invocation: tool={tool_name} call_id={invocation.tool_call_id} state={invocation.state}"
        )
        return part

    descriptor = registry.lookup(tool_name)
    if descriptor is not None and not descriptor.requires_confirmation:
        logger.warning(f"Resolver entry for auto-executed tool ignored: tool={tool_name}")
        return part

    result: Any
    if invocation.result == Approval.YES:
        logger.info(f"Tool call approved: tool={tool_name} call_id={invocation.tool_call_id}")
        context = ToolContext(tool_call_id=invocation.tool_call_id, services=services, messages=transcript)
        deadline = asyncio.timeout(resolver_timeout)
        try:
            async with deadline:
                result = await resolver.resolve(tool_name, invocation.args, context)
        except TimeoutError as e:
            if not deadline.expired():
                logger.error(f"Error executing tool: tool={tool_name} call_id={invocation.tool_call_id} error={e}")
                result = execution_error_message(e)
            else:
                logger.warning(
                    f"Tool execution timed out, left pending: tool={tool_name} call_id={invocation.tool_call_id}"
                )
                return part
        except Exception as e:
            logger.error(f"Error executing tool: tool={tool_name} call_id={invocation.tool_call_id} error={e}")
            result = execution_error_message(e)
    elif invocation.result == Approval.NO:
        logger.info(f"Tool call denied: tool={tool_name} call_id={invocation.tool_call_id}")
        result = DENIAL_MESSAGE
    else:
        # Already holds a real answer
        logger.debug(f"Tool invocation already resolved: tool={tool_name} call_id={invocation.tool_call_id}")
        return part

    await channel.publish_tool_result(invocation.tool_call_id, result)
    return part.with_result(result)
