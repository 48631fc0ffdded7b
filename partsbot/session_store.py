"""
Session list for the chat widget.

An explicit store passed to whoever needs it: newest session first, whole
sessions replaced or removed, never edited piecemeal. Mutations of one
session are serialized through a per-session lock; different sessions do
not block each other.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from .config import Settings
from .database import SessionDatabase
from .engine import advance, new_session
from .flows import DEFAULT_CATALOG, FlowCatalog
from .models import ChatSession

logger = logging.getLogger(__name__)


class SessionStore:
    """Ordered collection of chat sessions, newest first"""

    def __init__(self, database: Optional[SessionDatabase] = None, catalog: FlowCatalog = DEFAULT_CATALOG):
        """
        Initialize the store

        Args:
            database: Optional local storage to hydrate from and write through to
            catalog: Flow catalog used for new sessions
        """
        self._database = database
        self._catalog = catalog
        self._sessions: List[ChatSession] = []
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

        if database is not None:
            self._sessions = database.list_sessions(order_by="list_position")
            logger.info(f"Loaded {len(self._sessions)} stored chat sessions")

    def create_session(self) -> ChatSession:
        """New session with the welcome message; listed only once replaced"""
        return new_session(self._catalog)

    def replace(self, session_id: str, session: ChatSession) -> None:
        """
        Store a session, replacing any previous version

        Raises:
            ValueError: If session_id does not match the session
        """
        if session.id != session_id:
            raise ValueError(f"Session id mismatch: {session_id} != {session.id}")

        stored = session.model_copy(deep=True)
        with self._guard:
            for index, existing in enumerate(self._sessions):
                if existing.id == session_id:
                    self._sessions[index] = stored
                    break
            else:
                self._sessions.insert(0, stored)

        if self._database is not None:
            self._database.save_session(stored)

    def remove(self, session_id: str) -> bool:
        """Delete a whole session, returning False if it was not stored"""
        # Waits for any change already in progress on the same session
        with self.lock_for(session_id):
            with self._guard:
                before = len(self._sessions)
                self._sessions = [s for s in self._sessions if s.id != session_id]
                removed = len(self._sessions) != before

            if self._database is not None:
                self._database.delete_session(session_id)
        if not removed:
            logger.warning(f"Session {session_id} not found for removal")
        return removed

    def get(self, session_id: str) -> Optional[ChatSession]:
        with self._guard:
            for session in self._sessions:
                if session.id == session_id:
                    return session.model_copy(deep=True)
        return None

    def load(self, session_id: str) -> ChatSession:
        """
        Fetch a stored session to continue it

        Raises:
            KeyError: If the session is not stored
        """
        session = self.get(session_id)
        if session is None:
            raise KeyError(session_id)
        return session

    def list_sessions(self) -> List[ChatSession]:
        with self._guard:
            return [session.model_copy(deep=True) for session in self._sessions]

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._guard:
            return any(session.id == session_id for session in self._sessions)

    @contextmanager
    def lock_for(self, session_id: str) -> Iterator[None]:
        """Hold the lock that serializes changes to one session"""
        with self._guard:
            lock = self._locks.setdefault(session_id, threading.Lock())
        with lock:
            yield

    def apply(self, session_id: str, selected_option: str, settings: Optional[Settings] = None) -> ChatSession:
        """
        Advance a stored session by one selection and store the result

        Raises:
            KeyError: If the session is not stored
        """
        with self.lock_for(session_id):
            current = self.load(session_id)
            updated = advance(current, selected_option, self._catalog, settings)
            if updated is not current:
                self.replace(session_id, updated)
            return updated
