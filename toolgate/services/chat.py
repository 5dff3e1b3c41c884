"""Chat service: reconciles human decisions, then runs the model."""

from collections import Counter
from datetime import UTC, datetime

from cuid2 import cuid_wrapper

from toolgate.config import ToolSettings
from toolgate.graphs.conversation import ChatGraphManager
from toolgate.models.messages import Message
from toolgate.models.session import Session
from toolgate.services.reconciliation import process_tool_calls
from toolgate.services.stream import DataStreamWriter
from toolgate.services.tokens import TokenCounter
from toolgate.tools.base import ToolServices, create_tool_services
from toolgate.tools.confirmation import ConfirmationResolver, get_confirmation_resolver
from toolgate.tools.errors import ToolSchemaError
from toolgate.tools.registry import ToolRegistry, get_tool_registry
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


class ChatService:
    """Service handling one chat turn end to end."""

    def __init__(
        self,
        registry: ToolRegistry | None = None,
        resolver: ConfirmationResolver | None = None,
        services: ToolServices | None = None,
        graph_manager: ChatGraphManager | None = None,
        token_counter: TokenCounter | None = None,
    ):
        self.registry = registry or get_tool_registry()
        self.resolver = resolver or get_confirmation_resolver()
        self.services = services or create_tool_services()
        self.token_counter = token_counter or TokenCounter()
        self.graph_manager = graph_manager or ChatGraphManager(token_counter=self.token_counter)

        logger.info(
            f"ChatService initialized with {len(self.registry)} tools, "
            f"confirmation required for {self.resolver.names()}"
        )

    def validate_transcript(self, messages: list[Message]) -> None:
        """Reject transcripts the pipeline must not see.

        Raises:
            ValueError: If the latest user message exceeds the token limit
            ToolSchemaError: If the last message repeats a tool call id
        """
        if not messages:
            raise ToolSchemaError("Transcript is empty")

        last_message = messages[-1]
        if last_message.role == "user":
            try:
                self.token_counter.validate_message_tokens(last_message.text())
            except ValueError as e:
                max_tokens = self.token_counter.limits.max_message_tokens
                raise ValueError(f"Your message is too long. Please keep messages under {max_tokens} tokens.") from e

        call_ids = Counter(invocation.tool_call_id for invocation in last_message.tool_invocations())
        duplicates = sorted(call_id for call_id, count in call_ids.items() if count > 1)
        if duplicates:
            raise ToolSchemaError(f"Duplicate tool call ids in last message: {', '.join(duplicates)}")

    async def handle_chat(self, session: Session, messages: list[Message], channel: DataStreamWriter) -> list[Message]:
        """Process one chat request.

        Pending decisions in the last message are reconciled first; the model
        then continues the conversation unless some invocation is still
        waiting for a human.

        Args:
            session: Session receiving the updated transcript
            messages: Full transcript sent by the client
            channel: Stream to the client

        Returns:
            The updated transcript
        """
        self.validate_transcript(messages)
        logger.info(f"Handling chat for session {session.session_id}: {len(messages)} messages")

        settings: ToolSettings = self.services.settings
        transcript = await process_tool_calls(
            messages,
            registry=self.registry,
            resolver=self.resolver,
            channel=channel,
            services=self.services,
            resolver_timeout=settings.resolver_timeout,
        )

        awaiting = [
            invocation.tool_call_id
            for invocation in transcript[-1].tool_invocations()
            if invocation.state != "result" or (invocation.is_decision and self.resolver.has(invocation.tool_name))
        ]
        if awaiting:
            logger.info(f"Invocations still awaiting a decision: {awaiting}")
            session.set_messages(transcript)
            await channel.write_finish("awaiting-confirmation")
            return transcript

        result = await self.graph_manager.run(
            transcript,
            session_id=session.session_id,
            registry=self.registry,
            channel=channel,
            services=self.services,
        )

        if result.error:
            await channel.write_error("I apologize, but I'm experiencing technical difficulties. Please try again.")

        if result.message is not None:
            transcript = [*transcript, result.message]

        session.set_messages(transcript)

        if result.usage.get("promptTokens"):
            logger.info(
                f"Token usage - Input: {result.usage['promptTokens']}, Output: {result.usage['completionTokens']}"
            )

        finish_reason = "tool-calls" if result.pending_confirmations else ("error" if result.error else "stop")
        await channel.write_finish(finish_reason, result.usage)
        return transcript

    def execute_task(self, session: Session, description: str) -> Message:
        """Record a scheduled task as a user turn in the session transcript."""
        logger.info(f"Executing scheduled task for session {session.session_id}: {description}")
        message = Message(
            id=cuid(),
            role="user",
            content=f"Running scheduled task: {description}",
            created_at=datetime.now(UTC),
        )
        session.append_message(message)
        return message


chat_service = ChatService()
