"""Transcript data models: messages, parts and tool invocations."""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Discriminator, Tag
from pydantic.alias_generators import to_camel


class Approval(StrEnum):
    """Decision tokens a confirmation UI writes into a pending invocation's result."""

    YES = "APPROVAL_YES"
    NO = "APPROVAL_NO"


ToolInvocationState = Literal["partial-call", "call", "result"]


class WireModel(BaseModel):
    """Base for models exchanged with chat clients (camelCase on the wire)."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ToolInvocation(WireModel):
    """A model-requested call to a named tool."""

    state: ToolInvocationState
    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = {}
    result: Any = None
    step: int | None = None

    @property
    def is_decision(self) -> bool:
        """Whether the result field holds an approve/deny token."""
        return self.state == "result" and self.result in (Approval.YES, Approval.NO)


class TextPart(WireModel):
    """Plain text fragment."""

    type: Literal["text"] = "text"
    text: str


class StepStartPart(WireModel):
    """Marks the start of a model step."""

    type: Literal["step-start"] = "step-start"


class ToolInvocationPart(WireModel):
    """Fragment carrying a tool invocation."""

    type: Literal["tool-invocation"] = "tool-invocation"
    tool_invocation: ToolInvocation

    def with_result(self, result: Any) -> "ToolInvocationPart":
        """Return a copy whose invocation carries ``result``; the original is left as is."""
        return self.model_copy(update={"tool_invocation": self.tool_invocation.model_copy(update={"result": result})})


class GenericPart(WireModel):
    """Any part type this service does not interpret; fields are kept verbatim."""

    type: str

    class Config:
        extra = "allow"


def _part_tag(value: Any) -> str:
    part_type = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    if part_type in ("text", "tool-invocation", "step-start"):
        return part_type
    return "other"


Part = Annotated[
    Annotated[TextPart, Tag("text")]
    | Annotated[ToolInvocationPart, Tag("tool-invocation")]
    | Annotated[StepStartPart, Tag("step-start")]
    | Annotated[GenericPart, Tag("other")],
    Discriminator(_part_tag),
]


class Message(WireModel):
    """One turn of a conversation transcript."""

    id: str
    role: Literal["user", "assistant", "system"]
    content: str | list[dict[str, Any]] = ""
    parts: list[Part] | None = None
    created_at: datetime | None = None

    class Config:
        extra = "allow"

    def tool_invocations(self) -> list[ToolInvocation]:
        """Tool invocations carried by this message, in part order."""
        return [part.tool_invocation for part in self.parts or [] if isinstance(part, ToolInvocationPart)]

    def text(self) -> str:
        """Text of the message, preferring text parts over ``content``."""
        if self.parts:
            texts = [part.text for part in self.parts if isinstance(part, TextPart)]
            if texts:
                return "".join(texts)
        if isinstance(self.content, list):
            return "".join(block.get("text", "") for block in self.content if block.get("type") == "text")
        return self.content
