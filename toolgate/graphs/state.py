"""State definitions for the LangGraph chat flow."""

from collections.abc import Sequence
from typing import Annotated, Any, Literal

from langchain_core.messages import BaseMessage
from langgraph.graph import add_messages
from pydantic import BaseModel, Field


class ToolCall(BaseModel):
    """Represents a tool call request."""

    id: str
    name: str
    args: dict[str, Any]


class ChatState(BaseModel):
    """Conversation state passed through all nodes of the chat graph."""

    # Core conversation data
    messages: Annotated[Sequence[BaseMessage], add_messages]
    session_id: str

    # Calls surfaced to the client for a human decision
    pending_confirmations: list[ToolCall] = Field(default_factory=list)

    # Control flow
    next_step: Literal["agent", "tools", "error", "end"] | None = None
    error: str | None = None
    retry_count: int = 0

    # Token usage tracking
    total_input_tokens: int = 0
    total_output_tokens: int = 0

    class Config:
        """Pydantic configuration."""

        arbitrary_types_allowed = True  # Allow BaseMessage types
