#!/usr/bin/env python3
"""
Session management module for the business chatbot.

This module keeps conversation history per session in process memory.
Histories are bounded and are lost when the process restarts.
"""

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import Config
from ..schemas.io_models import ChatTurn
from ..utils.logger import get_logger

logger = get_logger()


class SessionManager:
    """Manages conversation histories keyed by session id."""

    def __init__(self, max_turns: int = None):
        """Initialize an empty in-memory session store."""
        self.max_turns = max_turns or Config.MAX_HISTORY_TURNS
        self.memory_sessions: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._session_locks: Dict[str, threading.RLock] = {}

    @contextmanager
    def session_lock(self, session_id: str):
        """
        Hold the lock for one session.

        Exchanges on the same session run one at a time; other sessions
        are not blocked.
        """
        with self._lock:
            lock = self._session_locks.setdefault(session_id, threading.RLock())
        with lock:
            yield

    def create_session(self, session_id: str) -> bool:
        """
        Create a new session.

        Args:
            session_id: Unique session identifier

        Returns:
            True if session was created, False if it already exists
        """
        with self._lock:
            if session_id in self.memory_sessions:
                return False

            now = datetime.now().isoformat()
            self.memory_sessions[session_id] = {
                "messages": [],
                "created_at": now,
                "last_updated": now,
            }
            return True

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self.memory_sessions.get(session_id)

    def append_turn(self, session_id: str, role: str, content: str):
        """
        Append one turn, creating the session on first use.

        The history is trimmed to the most recent ``max_turns`` turns.

        Args:
            session_id: Unique session identifier
            role: "user" or "assistant"
            content: Message text
        """
        # Raises pydantic.ValidationError (a ValueError) on an unknown role
        turn = ChatTurn(role=role, content=content)

        self.create_session(session_id)
        with self._lock:
            session_data = self.memory_sessions[session_id]
            session_data["messages"].append({**turn.model_dump(), "timestamp": datetime.now().isoformat()})
            if len(session_data["messages"]) > self.max_turns:
                session_data["messages"] = session_data["messages"][-self.max_turns:]
            session_data["last_updated"] = datetime.now().isoformat()

    def get_history(self, session_id: str, max_messages: int = None) -> List[Dict[str, str]]:
        """
        Get the conversation history as role/content dicts, oldest first.

        Args:
            session_id: Unique session identifier
            max_messages: Only return this many of the most recent turns

        Returns:
            List of {"role", "content"} dicts
        """
        with self._lock:
            session_data = self.memory_sessions.get(session_id)
            messages = list(session_data["messages"]) if session_data else []

        if max_messages:
            messages = messages[-max_messages:]
        return [{"role": m["role"], "content": m["content"]} for m in messages]

    def has_history(self, session_id: str) -> bool:
        with self._lock:
            session_data = self.memory_sessions.get(session_id)
            return bool(session_data and session_data["messages"])

    def clear(self, session_id: Optional[str] = None) -> bool:
        """
        Clear one session, or every session when no id is given.

        Returns:
            True if anything was removed
        """
        with self._lock:
            if session_id:
                removed = self.memory_sessions.pop(session_id, None) is not None
                self._session_locks.pop(session_id, None)
                if removed:
                    logger.info(f"Cleared history for session: {session_id}")
                return removed

            removed = bool(self.memory_sessions)
            self.memory_sessions.clear()
            self._session_locks.clear()
            logger.info("Cleared all conversation history")
            return removed

    def active_sessions(self) -> int:
        with self._lock:
            return len(self.memory_sessions)
