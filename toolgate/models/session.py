"""Session state models."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from toolgate.models.messages import Message
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Session:
    """Session state for conversation management."""

    session_id: str
    messages: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_activity: datetime = field(default_factory=lambda: datetime.now(UTC))

    def as_dict(self) -> dict[str, Any]:
        """Return the session as a dictionary."""
        return {
            "session_id": self.session_id,
            "message_count": len(self.messages),
            "created_at": self.created_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
        }

    def update_activity(self) -> None:
        """Update the last activity timestamp."""
        self.last_activity = datetime.now(UTC)

    def set_messages(self, messages: list[Message]) -> None:
        """Replace the stored transcript."""
        logger.debug(f"Storing {len(messages)} messages for session {self.session_id}")
        self.messages = list(messages)
        self.update_activity()

    def append_message(self, message: Message) -> None:
        self.messages.append(message)
        self.update_activity()
