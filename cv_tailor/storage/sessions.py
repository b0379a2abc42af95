"""
In-memory store for generated documents.

Sessions are inserted once under a unique id and removed by age. Reads of a
missing or swept session return None.
"""

import threading
import time
from typing import Any, Callable, Optional

import structlog
from pydantic import Field

from cv_tailor.graph.state import CamelModel, Region

logger = structlog.get_logger(__name__)

Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


class SessionArtifact(CamelModel):
    content: bytes
    filename: str
    snapshot: dict[str, Any] = Field(default_factory=dict)  # CV or letter content as JSON


class GenerationSession(CamelModel):
    session_id: str
    cv: SessionArtifact
    cover_letter: Optional[SessionArtifact] = None
    created_at_ms: int
    region: Region = Region.GLOBAL


class GenerationSessionStore:
    """Session arena with insert-by-unique-key and delete-by-age."""

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or now_ms
        self._sessions: dict[str, GenerationSession] = {}
        self._lock = threading.Lock()

    def now(self) -> int:
        """Current time of the store clock in milliseconds."""
        return self._clock()

    def put(self, session_id: str, session: GenerationSession) -> None:
        """
        Insert a session.

        Args:
            session_id: Unique session id
            session: Generated documents

        Raises:
            ValueError: If the id is already stored
        """
        with self._lock:
            if session_id in self._sessions:
                raise ValueError(f"Session {session_id} already exists")
            self._sessions[session_id] = session
        logger.info("Session stored", session_id=session_id, has_cover_letter=session.cover_letter is not None)

    def get(self, session_id: str) -> Optional[GenerationSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def sweep(self, max_age_ms: int) -> int:
        """
        Remove sessions older than the given age.

        Args:
            max_age_ms: Sessions created before now - max_age_ms are removed

        Returns:
            int: Number of sessions removed
        """
        cutoff = self._clock() - max_age_ms
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.created_at_ms < cutoff]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.info("Expired sessions swept", removed=len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions
