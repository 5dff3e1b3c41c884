"""Backing services reached by tools: image generation and object storage."""

import base64
from typing import Protocol

import httpx

from toolgate.utils.logging import get_logger

logger = get_logger(__name__)


class ImageGenerator(Protocol):
    """Interface for text-to-image backends."""

    async def generate(self, prompt: str, steps: int) -> bytes:
        """Generate an image and return the encoded bytes."""
        ...


class ObjectStorage(Protocol):
    """Interface for object stores that serve public files."""

    async def put(self, key: str, data: bytes, content_type: str, cache_control: str) -> None:
        """Store ``data`` under ``key``."""
        ...


class HttpImageGenerator:
    """Image generator backed by an HTTP inference endpoint.

    The endpoint receives ``{"prompt", "steps"}`` and answers with
    ``{"image": <base64>}``.
    """

    def __init__(self, http: httpx.AsyncClient, url: str):
        self.http = http
        self.url = url

    async def generate(self, prompt: str, steps: int) -> bytes:
        if not self.url:
            raise RuntimeError("Image generation service is not configured")

        logger.debug(f"Requesting image generation: steps={steps} prompt_chars={len(prompt)}")
        response = await self.http.post(self.url, json={"prompt": prompt, "steps": steps})
        response.raise_for_status()

        image = response.json().get("image")
        if not image:
            raise RuntimeError("No image generated in response")

        return base64.b64decode(image)


class HttpObjectStorage:
    """Object storage written through an HTTP upload endpoint.

    Each object is sent as ``PUT <upload_url>/<key>`` and is expected to be
    served afterwards from the public bucket URL.
    """

    def __init__(self, http: httpx.AsyncClient, upload_url: str, token: str = ""):
        self.http = http
        self.upload_url = upload_url
        self.token = token

    async def put(self, key: str, data: bytes, content_type: str, cache_control: str) -> None:
        if not self.upload_url:
            raise RuntimeError("Object storage is not configured")

        headers = {"Content-Type": content_type, "Cache-Control": cache_control}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        response = await self.http.put(f"{self.upload_url.rstrip('/')}/{key}", content=data, headers=headers)
        response.raise_for_status()
        logger.debug(f"Stored object: key={key} bytes={len(data)}")
