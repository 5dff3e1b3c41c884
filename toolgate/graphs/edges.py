"""Edge logic and routing for the chat graph."""

from typing import Literal

from toolgate.graphs.state import ChatState
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)


def route_agent_output(state: ChatState) -> Literal["tools", "error", "end"]:
    """Route from agent node based on state.

    Determines the next node based on:
    1. Error conditions
    2. Explicit next_step if set
    3. Default to end
    """
    logger.debug(f"Routing from agent node. Next step: {state.next_step}")

    if state.error or state.next_step == "error":
        logger.warning(f"Routing to error handler due to: {state.error}")
        return "error"

    if state.next_step == "tools":
        return "tools"

    return "end"


def route_tool_output(state: ChatState) -> Literal["agent", "error", "end"]:
    """Route from tool execution node.

    Returns to the agent unless a call still waits for a human decision.
    """
    if state.error:
        return "error"
    if state.pending_confirmations:
        logger.info(f"Ending run with {len(state.pending_confirmations)} calls awaiting confirmation")
        return "end"
    return "agent"


def route_error_output(state: ChatState) -> Literal["agent", "end"]:
    """Route from error handler.

    Decides whether to retry (back to agent) or end the run.
    """
    if state.next_step == "agent" and not state.error:
        return "agent"

    if state.retry_count >= 3:
        logger.warning(f"Max retries ({state.retry_count}) reached, ending run")

    return "end"
