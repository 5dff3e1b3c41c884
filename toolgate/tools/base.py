"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import BaseModel

from toolgate.config import ToolSettings
from toolgate.models.messages import Message
from toolgate.services.storage import HttpImageGenerator, HttpObjectStorage, ImageGenerator, ObjectStorage


@dataclass
class ToolServices:
    """Backing services handed to tool executions."""

    http: httpx.AsyncClient
    settings: ToolSettings
    image_generator: ImageGenerator
    storage: ObjectStorage


@dataclass(frozen=True)
class ToolContext:
    """Per-invocation context for a tool execution."""

    tool_call_id: str
    services: ToolServices
    messages: Sequence[Message] = field(default_factory=tuple)


ToolExecute = Callable[[Any, ToolContext], Awaitable[Any]]


@dataclass
class ToolDescriptor:
    """Definition of a tool available to the model.

    A descriptor without ``execute`` is confirmation-required: it only runs
    through the confirmation resolver after a human approves the call.
    """

    name: str
    description: str
    input_schema: type[BaseModel]
    execute: ToolExecute | None = None

    @property
    def requires_confirmation(self) -> bool:
        return self.execute is None

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        return self.input_schema.model_json_schema()

    def parse_input(self, raw_input: dict[str, Any]) -> BaseModel:
        """Parse and validate tool input."""
        return self.input_schema.model_validate(raw_input)

    def as_spec(self) -> dict[str, Any]:
        """Tool definition in the shape the chat model binds."""
        return {"name": self.name, "description": self.description, "input_schema": self.get_json_schema()}


def create_tool_services(
    settings: ToolSettings | None = None,
    http: httpx.AsyncClient | None = None,
    storage: ObjectStorage | None = None,
) -> ToolServices:
    """Build the default service bundle from settings."""
    settings = settings or ToolSettings()
    http = http or httpx.AsyncClient(timeout=settings.http_timeout)
    return ToolServices(
        http=http,
        settings=settings,
        image_generator=HttpImageGenerator(http, settings.image_api_url),
        storage=storage or HttpObjectStorage(http, settings.bucket_upload_url, settings.bucket_upload_token),
    )
