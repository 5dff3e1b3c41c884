"""Weather lookup tool (requires human confirmation)."""

from pydantic import BaseModel, Field

from toolgate.tools.base import ToolContext, ToolDescriptor
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)


class WeatherInput(BaseModel):
    """Input schema for the weather tool."""

    city: str = Field(
        ...,
        min_length=1,
        description="The name of the city to get weather information for",
        examples=["Lima", "Tokyo"],
    )


def create_weather_tool() -> ToolDescriptor:
    # No execute function: the call waits for a human decision.
    return ToolDescriptor(
        name="getWeatherInformation",
        description=(
            "Get the current weather information for a specified city. "
            "Use this tool when a user asks about the weather in a particular location."
        ),
        input_schema=WeatherInput,
    )


async def get_weather_information(args: WeatherInput, context: ToolContext) -> str:
    """Approved execution of ``getWeatherInformation``.

    Returns a simulated report; no weather provider is wired in.
    """
    logger.info(f"Getting weather information: city={args.city} call_id={context.tool_call_id}")
    return (
        f"The weather in {args.city} is sunny with a temperature of 72°F (22°C). "
        "Humidity is at 45% with a light breeze from the southwest at 5 mph."
    )
