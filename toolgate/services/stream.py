"""Output channel for streaming chat results to a connected client.

Parts use the line-oriented data stream format ``<code>:<json>\\n``.
"""

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any, Literal, Protocol

StreamPartType = Literal["text", "error", "tool_call", "tool_result", "finish_message"]

STREAM_PART_CODES: dict[str, str] = {
    "text": "0",
    "error": "3",
    "tool_call": "9",
    "tool_result": "a",
    "finish_message": "d",
}


def format_stream_part(part_type: StreamPartType, value: Any) -> str:
    """Encode one stream part as a single line."""
    return f"{STREAM_PART_CODES[part_type]}:{json.dumps(value, default=str, ensure_ascii=False)}\n"


def parse_stream_part(line: str) -> tuple[str, Any]:
    """Decode a line produced by ``format_stream_part``."""
    code, _, payload = line.rstrip("\n").partition(":")
    for part_type, part_code in STREAM_PART_CODES.items():
        if part_code == code:
            return part_type, json.loads(payload)
    raise ValueError(f"Unknown stream part code: {code!r}")


class OutputChannel(Protocol):
    """Write-only sink for reconciled tool outcomes."""

    async def publish_tool_result(self, tool_call_id: str, result: Any) -> None:
        """Publish the outcome of one tool invocation."""
        ...


class DataStreamWriter:
    """Queue-backed data stream consumed by the HTTP response."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._closed = False

    async def write(self, part_type: StreamPartType, value: Any) -> None:
        if self._closed:
            raise RuntimeError("Data stream is closed")
        await self._queue.put(format_stream_part(part_type, value))

    async def write_text(self, text: str) -> None:
        await self.write("text", text)

    async def write_error(self, message: str) -> None:
        await self.write("error", message)

    async def write_tool_call(self, tool_call_id: str, tool_name: str, args: dict[str, Any]) -> None:
        await self.write("tool_call", {"toolCallId": tool_call_id, "toolName": tool_name, "args": args})

    async def publish_tool_result(self, tool_call_id: str, result: Any) -> None:
        await self.write("tool_result", {"toolCallId": tool_call_id, "result": result})

    async def write_finish(self, finish_reason: str, usage: dict[str, int] | None = None) -> None:
        await self.write("finish_message", {"finishReason": finish_reason, "usage": usage or {}})

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            await self._queue.put(None)

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            line = await self._queue.get()
            if line is None:
                return
            yield line
