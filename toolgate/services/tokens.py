"""Token estimation, message limits and model rate limiting."""

import asyncio
import time
from collections.abc import Sequence
from dataclasses import dataclass

import tiktoken
from langchain_core.messages import BaseMessage, SystemMessage
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from toolgate.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TokenLimits:
    """Token limits for validation and truncation."""

    max_message_tokens: int = 2000  # Maximum tokens per individual user message
    max_conversation_tokens: int = 200000
    token_headroom: int = 4096  # Reserved for the response


class TokenCounter:
    """Approximate token counting for chat content."""

    tokenizer: tiktoken.Encoding | None = None

    def __init__(self, limits: TokenLimits | None = None):
        self.limits = limits or TokenLimits()

        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            logger.warning("tiktoken encoding unavailable, falling back to character estimate")
            self.tokenizer = None

    def estimate(self, text: str) -> int:
        """Estimate token count for a piece of text."""
        try:
            return len(self.tokenizer.encode(text)) if self.tokenizer else len(text) // 4
        except Exception:
            # Roughly 4 characters per token
            return len(text) // 4

    def estimate_message(self, message: BaseMessage) -> int:
        content = message.content
        if isinstance(content, str):
            text = content
        else:
            text = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block) for block in content
            )
        tool_calls = getattr(message, "tool_calls", None) or []
        return self.estimate(text) + sum(self.estimate(str(call.get("args", {}))) for call in tool_calls)

    def validate_message_tokens(self, message: str) -> None:
        """Validate that a message doesn't exceed the per-message limit.

        Raises:
            ValueError: If message exceeds token limit
        """
        token_count = self.estimate(message)
        if token_count > self.limits.max_message_tokens:
            raise ValueError(
                f"Message exceeds token limit: {token_count} tokens > {self.limits.max_message_tokens} limit"
            )

    def truncate(self, messages: Sequence[BaseMessage], reserved_tokens: int = 0) -> list[BaseMessage]:
        """Drop the oldest non-system messages until the conversation fits.

        System messages are always kept. A tool message is never kept without
        the assistant message that requested it.
        """
        if not messages:
            return list(messages)

        system_messages = [m for m in messages if isinstance(m, SystemMessage)]
        others = [m for m in messages if not isinstance(m, SystemMessage)]

        available = self.limits.max_conversation_tokens - self.limits.token_headroom - reserved_tokens
        available -= sum(self.estimate_message(m) for m in system_messages)

        kept: list[BaseMessage] = []
        current = 0
        for message in reversed(others):
            tokens = self.estimate_message(message)
            if current + tokens > available:
                break
            kept.insert(0, message)
            current += tokens

        while kept and kept[0].type == "tool":
            kept.pop(0)

        if len(kept) < len(others):
            logger.warning(
                f"Truncated conversation from {len(others)} to {len(kept)} messages "
                f"to fit within {available} token limit"
            )

        return [*system_messages, *kept]


class ModelRateLimiter:
    """Moving-window limiter for model requests and tokens."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def acquire(self, estimated_tokens: int, identifier: str = "model") -> None:
        """Wait until a request of ``estimated_tokens`` fits within the limits."""
        logger.debug(f"Checking rate limit: tokens={estimated_tokens} identifier={identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        if not self.limiter.hit(self.token_limit, token_identifier, cost=estimated_tokens):
            await self._wait(self.token_limit, token_identifier, "Token")

    async def _wait(self, limit, identifier: str, label: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        wait_time = max(0.0, window_stats.reset_time - time.time())
        if wait_time > 0:
            logger.warning(f"{label} rate limit exceeded, waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time)
