"""API endpoints for the chat service."""

import asyncio
from collections.abc import AsyncIterator
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from toolgate import __version__
from toolgate.config import ModelConfig
from toolgate.models.conversation import (
    ApiKeyStatus,
    ChatRequest,
    HealthResponse,
    TaskRequest,
    TaskResponse,
    ToolInfo,
)
from toolgate.models.messages import Message
from toolgate.models.session import Session
from toolgate.services.chat import chat_service
from toolgate.services.session_manager import session_manager
from toolgate.services.stream import DataStreamWriter
from toolgate.tools.errors import ToolSchemaError
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

APOLOGY = "I apologize, but I'm experiencing technical difficulties. Please try again."


@router.post("/chat", tags=["Chat"])
async def handle_chat(request: ChatRequest) -> StreamingResponse:
    """Reconcile pending tool decisions and stream the assistant's reply.

    The body carries the full transcript. If its last message answers pending
    tool invocations with approval tokens, those are resolved before the model
    runs; each outcome is streamed as soon as it is known.
    """
    try:
        if request.session_id:
            logger.info(f"Validating existing session: {request.session_id}")
            session = session_manager.get_session(request.session_id)
            if not session:
                logger.warning(f"Invalid session ID provided: {request.session_id}")
                raise HTTPException(status_code=400, detail=f"Invalid session ID: {request.session_id}")
        else:
            logger.info("Creating new session")
            session = session_manager.get_or_create_session()

    except Exception as e:
        logger.error(f"Session management error: {e}", exc_info=True)
        if isinstance(e, HTTPException):
            raise
        raise HTTPException(status_code=500, detail="Failed to manage session") from e

    try:
        chat_service.validate_transcript(request.messages)
    except (ValueError, ToolSchemaError) as e:
        logger.warning(f"Transcript validation error for session {session.session_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e

    return StreamingResponse(
        _stream_chat(session, request.messages),
        media_type="text/plain; charset=utf-8",
        headers={"x-vercel-ai-data-stream": "v1", "x-session-id": session.session_id},
    )


async def _stream_chat(session: Session, messages: list[Message]) -> AsyncIterator[str]:
    writer = DataStreamWriter()

    async def run() -> None:
        try:
            await chat_service.handle_chat(session, messages, writer)
        except Exception as e:
            logger.error(f"Chat processing error for session {session.session_id}: {e}", exc_info=True)
            await writer.write_error(APOLOGY)
        finally:
            await writer.close()

    task = asyncio.create_task(run())
    try:
        async for line in writer:
            yield line
        await task
    finally:
        if not task.done():
            logger.info(f"Stream closed early, cancelling chat run for session {session.session_id}")
            task.cancel()


@router.get("/tools", response_model=list[ToolInfo], tags=["Tools"])
async def list_tools() -> list[ToolInfo]:
    """List the tools advertised to the model."""
    return [
        ToolInfo(
            name=tool.name,
            description=tool.description,
            requires_confirmation=tool.requires_confirmation,
            input_schema=tool.get_json_schema(),
        )
        for tool in chat_service.registry.list_descriptors()
    ]


@router.get("/sessions/{session_id}/messages", response_model=list[Message], tags=["Chat"])
async def get_session_messages(session_id: str) -> list[Message]:
    """Return the stored transcript so a client can restore pending invocations."""
    session = session_manager.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return session.messages


@router.post("/sessions/{session_id}/tasks", response_model=TaskResponse, tags=["Chat"])
async def run_scheduled_task(session_id: str, request: TaskRequest) -> TaskResponse:
    """Record a scheduled task run in a session's transcript."""
    session = session_manager.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")

    message = chat_service.execute_task(session, request.description)
    return TaskResponse(session_id=session_id, message=message)


@router.get("/check-api-key", response_model=ApiKeyStatus, tags=["Health"])
async def check_api_key() -> ApiKeyStatus:
    """Report whether the model API key is configured."""
    return ApiKeyStatus(success=bool(ModelConfig().api_key))


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
