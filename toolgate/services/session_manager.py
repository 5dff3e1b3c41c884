"""In-memory store for per-session transcripts."""

import os
from datetime import UTC, datetime, timedelta

from cuid2 import cuid_wrapper

from toolgate.models.session import Session
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


class InMemorySessionManager:
    """Keeps each session's latest transcript for the lifetime of the process.

    Sessions expire after a period of inactivity. When ``max_sessions`` is
    reached, the least recently active session is evicted to make room.
    """

    def __init__(self, session_timeout_minutes: int = 60, max_sessions: int = 1000):
        """Initialize session manager.

        Args:
            session_timeout_minutes: Minutes of inactivity before a session expires
            max_sessions: Upper bound on sessions held at once
        """
        self.sessions: dict[str, Session] = {}
        self.session_timeout = timedelta(minutes=session_timeout_minutes)
        self.max_sessions = max_sessions

    def get_or_create_session(self, session_id: str | None = None) -> Session:
        """Return the live session for ``session_id``, creating one if needed."""
        self._cleanup_expired_sessions()

        if session_id and session_id in self.sessions:
            session = self.sessions[session_id]
            session.update_activity()
            return session

        if len(self.sessions) >= self.max_sessions:
            self._evict_least_recent()

        session = Session(session_id=session_id or cuid())
        self.sessions[session.session_id] = session
        logger.info(f"Created session {session.session_id}")
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Get a live session by ID, or None if unknown or expired."""
        self._cleanup_expired_sessions()

        session = self.sessions.get(session_id)
        if session:
            session.update_activity()
        return session

    def delete_session(self, session_id: str) -> bool:
        """Delete a session, returning whether it existed."""
        return self.sessions.pop(session_id, None) is not None

    def get_session_count(self) -> int:
        """Get current number of active sessions."""
        self._cleanup_expired_sessions()
        return len(self.sessions)

    def _evict_least_recent(self) -> None:
        oldest = min(self.sessions.values(), key=lambda session: session.last_activity)
        logger.warning(f"Session limit {self.max_sessions} reached, evicting {oldest.session_id}")
        del self.sessions[oldest.session_id]

    def _cleanup_expired_sessions(self) -> None:
        cutoff = datetime.now(UTC) - self.session_timeout
        expired = [sid for sid, session in self.sessions.items() if session.last_activity < cutoff]

        for session_id in expired:
            del self.sessions[session_id]

        if expired:
            logger.debug(f"Expired {len(expired)} inactive sessions")


session_manager = InMemorySessionManager(
    session_timeout_minutes=int(os.getenv("SESSION_TIMEOUT_MINUTES", "60")),
    max_sessions=int(os.getenv("MAX_SESSIONS", "1000")),
)
