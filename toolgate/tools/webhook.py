"""Chat webhook tool."""

import httpx
from pydantic import BaseModel, Field

from toolgate.tools.base import ToolContext, ToolDescriptor
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)


class SendWebhookInput(BaseModel):
    """Input schema for the webhook tool."""

    message: str = Field(..., description="Text of the message to post")


async def send_webhook(args: SendWebhookInput, context: ToolContext) -> str:
    url = context.services.settings.webhook_url
    if not url:
        return "Failed to send message to the webhook. Error: webhook URL is not configured"

    logger.info(f"Sending webhook message: chars={len(args.message)}")
    try:
        response = await context.services.http.post(
            url,
            json={"text": args.message},
            headers={"Content-Type": "application/json; charset=UTF-8"},
        )
        if response.is_error:
            raise RuntimeError(f"HTTP error! status: {response.status_code}, body: {response.text}")
    except (httpx.HTTPError, RuntimeError) as e:
        logger.error(f"Error sending webhook: {e}")
        return f"Failed to send message to the webhook. Error: {e}"

    return "Message successfully sent to the webhook."


def create_send_webhook_tool() -> ToolDescriptor:
    return ToolDescriptor(
        name="sendWebhook",
        description="Send a message to the team chat webhook.",
        input_schema=SendWebhookInput,
        execute=send_webhook,
    )
