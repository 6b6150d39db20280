"""
In-memory store of cart editing sessions.

Each register (or browser tab) works on its own cart, so the API keeps one
:class:`CartHistoryService` per session id. Services are created by this
store, which is the composition root for the HTTP surface, and are reset with
``clear_history`` when the session ends.

Note on Persistence
-------------------
This is a volatile memory store. If the server restarts, every cart and its
history is lost, which matches the checkpoint core's in-process scope.
"""

from __future__ import annotations

import uuid
from typing import ClassVar

from cartkeeper.core.scheduling import AsyncioScheduler
from cartkeeper.core.settings import get_logger
from cartkeeper.services import CartEditor, CartHistoryService

log = get_logger("cartkeeper.api.sessions")


class SessionStore:
    """
    A simple dictionary-backed store of cart sessions.
    """

    # Singleton instance placeholder (initialized in app startup)
    _instance: ClassVar[SessionStore | None] = None

    def __init__(self) -> None:
        self._sessions: dict[str, CartEditor] = {}

    @classmethod
    def get_instance(cls) -> SessionStore:
        """Accessor for the global singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def create_session(
        self,
        autosave_enabled: bool | None = None,
        autosave_threshold_ms: int | None = None,
    ) -> str:
        """
        Register a new cart session with an empty cart and history.

        Returns
        -------
        str
            The generated UUID4 string for the new session.
        """
        session_id = str(uuid.uuid4())
        service = CartHistoryService(
            AsyncioScheduler(),
            autosave_enabled=autosave_enabled,
            autosave_threshold_ms=autosave_threshold_ms,
        )
        self._sessions[session_id] = CartEditor(service)
        log.info("Session %s opened", session_id)
        return session_id

    def get_session(self, session_id: str) -> CartEditor | None:
        """Retrieve a session's editor, or None if not found."""
        return self._sessions.get(session_id)

    def close_session(self, session_id: str) -> bool:
        """Reset and drop a session. Returns False if it did not exist."""
        editor = self._sessions.pop(session_id, None)
        if editor is None:
            return False
        editor.history.clear_history()
        log.info("Session %s closed", session_id)
        return True

    def clear(self) -> None:
        """Close every session (shutdown and tests)."""
        for session_id in list(self._sessions):
            self.close_session(session_id)

    def __len__(self) -> int:
        return len(self._sessions)


# Global accessor for convenience
def get_session_store() -> SessionStore:
    return SessionStore.get_instance()


__all__ = ["SessionStore", "get_session_store"]
