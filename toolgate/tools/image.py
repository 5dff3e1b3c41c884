"""Image generation tool."""

import time
import uuid

from pydantic import BaseModel, Field

from toolgate.tools.base import ToolContext, ToolDescriptor
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)

IMAGE_PREFIX = "ai-generated"
IMAGE_CACHE_CONTROL = "public, max-age=31536000"


class GenerateImageInput(BaseModel):
    """Input schema for image generation."""

    prompt: str = Field(
        ...,
        min_length=1,
        max_length=2048,
        description="A text description of the image you want to generate",
    )
    steps: int = Field(
        4,
        ge=1,
        le=8,
        description="Number of diffusion steps (1-8). Higher values can improve quality but take longer",
    )


def image_key(timestamp_ms: int | None = None) -> str:
    """Storage key for a newly generated image."""
    timestamp_ms = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"{IMAGE_PREFIX}/{timestamp_ms}-{uuid.uuid4().hex[:6]}.jpg"


async def generate_image(args: GenerateImageInput, context: ToolContext) -> str:
    services = context.services
    steps = min(max(args.steps, 1), 8)
    logger.info(f"Generating image: steps={steps} call_id={context.tool_call_id}")

    try:
        image = await services.image_generator.generate(args.prompt, steps)

        key = image_key()
        await services.storage.put(key, image, content_type="image/jpeg", cache_control=IMAGE_CACHE_CONTROL)

        public_url = f"{services.settings.public_bucket_url.rstrip('/')}/{key}"
        logger.info(f"Image saved: url={public_url}")

        # Plain text, not JSON
        return f'I\'ve generated an image based on your prompt "{args.prompt}". View it here: {public_url}'
    except Exception as e:
        logger.error(f"Image generation failed: {e}", exc_info=True)
        return f"Failed to generate image. Error: {e}"


def create_generate_image_tool() -> ToolDescriptor:
    return ToolDescriptor(
        name="generateImage",
        description=(
            "Generate an image from a text description. Use this when a user asks for an image to be created."
        ),
        input_schema=GenerateImageInput,
        execute=generate_image,
    )
