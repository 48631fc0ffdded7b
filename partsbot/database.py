"""
Local session storage.
Keeps the chat session list in a SQLite file so history survives restarts.
"""

import sqlite3
import logging
from pathlib import Path
from typing import List, Optional
from contextlib import contextmanager

from pydantic import ValidationError

from .models import ChatSession

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SESSION_ORDERS = ("updated_at", "list_position")


class SessionDatabase:
    """Manages SQLite storage of chat sessions"""

    def __init__(self, db_path: str = "chat_sessions.db"):
        """Initialize database manager with path"""
        self.db_path = Path(db_path)
        self.init_database()

    def init_database(self) -> None:
        """Initialize database with required tables"""
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS chat_sessions (
                        session_id TEXT PRIMARY KEY,
                        title TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        payload_json TEXT NOT NULL,
                        list_position INTEGER NOT NULL DEFAULT 0
                    )
                """)

                # Files created before list_position existed
                cursor.execute("PRAGMA table_info(chat_sessions)")
                columns = [row['name'] for row in cursor.fetchall()]
                if 'list_position' not in columns:
                    cursor.execute(
                        "ALTER TABLE chat_sessions ADD COLUMN list_position INTEGER NOT NULL DEFAULT 0"
                    )

                cursor.execute(
                    "CREATE INDEX IF NOT EXISTS idx_chat_sessions_updated_at ON chat_sessions(updated_at)"
                )

                conn.commit()
                logger.info("Session database initialized successfully")

        except sqlite3.Error as e:
            logger.error(f"Database initialization error: {e}")
            raise

    @contextmanager
    def get_connection(self):
        """Get database connection with context manager"""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            logger.error(f"Database connection error: {e}")
            raise
        finally:
            if conn:
                conn.close()

    def save_session(self, session: ChatSession) -> None:
        """
        Insert or update a session.
        A new session takes the next list position; updates keep it.

        Args:
            session: Session to persist

        Raises:
            sqlite3.Error: If database operation fails
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    INSERT INTO chat_sessions (session_id, title, created_at, updated_at, payload_json, list_position)
                    VALUES (?, ?, ?, ?, ?, (SELECT COALESCE(MAX(list_position), 0) + 1 FROM chat_sessions))
                    ON CONFLICT(session_id) DO UPDATE SET
                        title = excluded.title,
                        updated_at = excluded.updated_at,
                        payload_json = excluded.payload_json
                """, (
                    session.id,
                    session.title,
                    session.created_at.isoformat(),
                    session.updated_at.isoformat(),
                    session.model_dump_json()
                ))
                conn.commit()
                logger.debug(f"Session {session.id} saved")

        except sqlite3.Error as e:
            logger.error(f"Database error saving session {session.id}: {e}")
            raise

    def get_session(self, session_id: str) -> Optional[ChatSession]:
        """
        Retrieve session by ID

        Args:
            session_id: Session identifier

        Returns:
            ChatSession instance or None if not found or unreadable
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT payload_json FROM chat_sessions WHERE session_id = ?", (session_id,)
            )
            row = cursor.fetchone()
            if not row:
                return None
            return self._row_to_session(session_id, row['payload_json'])

    def list_sessions(self, limit: Optional[int] = None, order_by: str = "updated_at") -> List[ChatSession]:
        """
        Get sessions, newest first

        Args:
            limit: Maximum number of sessions to return
            order_by: "updated_at" for most recently updated first,
                "list_position" for most recently listed first

        Returns:
            List of ChatSession instances; unreadable rows are skipped

        Raises:
            ValueError: If order_by is not a known column
        """
        if order_by not in SESSION_ORDERS:
            raise ValueError(f"Unknown session order: {order_by}")

        with self.get_connection() as conn:
            cursor = conn.cursor()
            query = f"SELECT session_id, payload_json FROM chat_sessions ORDER BY {order_by} DESC"
            if limit is not None:
                cursor.execute(query + " LIMIT ?", (limit,))
            else:
                cursor.execute(query)

            sessions = []
            for row in cursor.fetchall():
                session = self._row_to_session(row['session_id'], row['payload_json'])
                if session:
                    sessions.append(session)
            return sessions

    def delete_session(self, session_id: str) -> bool:
        """
        Delete a session

        Args:
            session_id: Session identifier

        Returns:
            bool: True if a session was deleted
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM chat_sessions WHERE session_id = ?", (session_id,))

            if cursor.rowcount == 0:
                logger.warning(f"Session {session_id} not found for deletion")
                return False

            conn.commit()
            logger.info(f"Session {session_id} deleted")
            return True

    def get_session_count(self) -> int:
        """Get total number of stored sessions"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS total FROM chat_sessions")
            return cursor.fetchone()['total']

    def clear(self) -> None:
        """Remove every stored session"""
        with self.get_connection() as conn:
            conn.execute("DELETE FROM chat_sessions")
            conn.commit()

    def _row_to_session(self, session_id: str, payload_json: str) -> Optional[ChatSession]:
        try:
            return ChatSession.model_validate_json(payload_json)
        except ValidationError as e:
            logger.error(f"Skipping unreadable session {session_id}: {e}")
            return None
