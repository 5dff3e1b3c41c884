"""Local time tool."""

from datetime import datetime

from pydantic import BaseModel, Field

from toolgate.tools.base import ToolContext, ToolDescriptor
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)


class LocalTimeInput(BaseModel):
    """Input schema for the local time tool."""

    location: str = Field(
        ...,
        min_length=1,
        description="The name of the location to get the local time for",
    )


async def get_local_time(args: LocalTimeInput, context: ToolContext) -> str:
    logger.info(f"Getting local time: location={args.location}")
    now = datetime.now()
    return (
        f"The current local time in {args.location} is approximately {now.strftime('%I:%M:%S %p')} "
        "(note: this is a simulated response for demo purposes)."
    )


def create_local_time_tool() -> ToolDescriptor:
    return ToolDescriptor(
        name="getLocalTime",
        description=(
            "Get the local time for a specified location. "
            "ONLY use this tool when a user EXPLICITLY asks what time it is in a particular city or place."
        ),
        input_schema=LocalTimeInput,
        execute=get_local_time,
    )
