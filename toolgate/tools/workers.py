"""Tools that call companion worker services over HTTP."""

import httpx
from pydantic import BaseModel, Field

from toolgate.tools.base import ToolContext, ToolDescriptor
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)


class WorkerMessageInput(BaseModel):
    """Input schema for worker calls."""

    message: str = Field("", description="Free-form note passed along with the request")


async def _fetch_worker(context: ToolContext, url: str, label: str) -> str:
    if not url:
        return f"Failed to call {label} via HTTP service binding: service URL is not configured"

    try:
        response = await context.services.http.get(url)
        return response.text
    except httpx.HTTPError as e:
        logger.error(f"Worker call failed: worker={label} error={e}")
        return f"Failed to call {label} via HTTP service binding: {e}"


async def call_do_worker(args: WorkerMessageInput, context: ToolContext) -> str:
    logger.info(f"Calling do-worker: message={args.message[:50]}")
    return await _fetch_worker(context, context.services.settings.worker_url, "do-worker")


async def call_graphql_worker(args: WorkerMessageInput, context: ToolContext) -> str:
    logger.info(f"Calling graphql worker: message={args.message[:50]}")
    return await _fetch_worker(context, context.services.settings.origin_worker_url, "origin error worker")


def create_do_worker_tool() -> ToolDescriptor:
    return ToolDescriptor(
        name="callDoWorker",
        description=(
            "Call the do-worker service and return its response. "
            "Use this to get a hello world message from the do-worker."
        ),
        input_schema=WorkerMessageInput,
        execute=call_do_worker,
    )


def create_graphql_worker_tool() -> ToolDescriptor:
    return ToolDescriptor(
        name="callgraphqlWorker",
        description="Call the origin worker service and return its response. Use this to get total user agent from graphql api.",
        input_schema=WorkerMessageInput,
        execute=call_graphql_worker,
    )
