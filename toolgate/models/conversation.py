"""Request and response models for the HTTP API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from toolgate.models.messages import Message


class ChatRequest(BaseModel):
    """Request model for the chat endpoint."""

    messages: list[Message] = Field(..., min_length=1)
    session_id: str | None = None


class ToolInfo(BaseModel):
    """A tool as advertised to the model."""

    name: str
    description: str
    requires_confirmation: bool
    input_schema: dict[str, Any]


class TaskRequest(BaseModel):
    """Request model for running a scheduled task."""

    description: str = Field(..., min_length=1)


class TaskResponse(BaseModel):
    """Response model for a scheduled task run."""

    session_id: str
    message: Message


class ApiKeyStatus(BaseModel):
    """Whether the model API key is configured."""

    success: bool


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
