#!/usr/bin/env python3
"""
Session management module for the store chat backend.

This module keeps per-session conversation turns and the recent commands fed
into AI escalation. Redis is used when configured and reachable, otherwise an
in-memory dict.
"""

import json
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

import redis

from .config import Config
from ..utils.logger import get_logger

logger = get_logger()


class SessionManager:
    """Manages chat sessions, conversation context and recent commands."""

    def __init__(self, backend: Optional[str] = None, redis_client=None):
        """Initialize with Redis or fall back to in-memory storage."""
        self.memory_sessions: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self.redis_client = None
        self.use_redis = False

        backend = (backend or Config.SESSION_BACKEND).lower()
        if redis_client is not None:
            self.redis_client = redis_client
            self.use_redis = True
        elif backend == "redis":
            try:
                client = redis.Redis(
                    host=Config.REDIS_HOST,
                    port=Config.REDIS_PORT,
                    db=Config.REDIS_DB,
                    decode_responses=True,
                )
                # Test Redis connection
                client.ping()
                self.redis_client = client
                self.use_redis = True
                logger.info("[SESSION] Using Redis for session storage")
            except redis.exceptions.RedisError as e:
                logger.warning(f"[SESSION] Redis not available ({e}), using in-memory session storage")

    def _get_session_key(self, session_id: str) -> str:
        return f"storechat:session:{session_id}"

    @staticmethod
    def _new_session() -> Dict[str, Any]:
        now = datetime.now().isoformat()
        return {"messages": [], "recent_commands": [], "created_at": now, "last_updated": now}

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve session data.

        Args:
            session_id: Unique session identifier

        Returns:
            Session data or None if not found
        """
        if self.use_redis:
            raw = self.redis_client.get(self._get_session_key(session_id))
            return json.loads(raw) if raw else None
        return self.memory_sessions.get(session_id)

    def _save(self, session_id: str, data: Dict[str, Any]) -> None:
        data["last_updated"] = datetime.now().isoformat()
        if self.use_redis:
            self.redis_client.set(self._get_session_key(session_id), json.dumps(data))
        else:
            self.memory_sessions[session_id] = data

    def create_session(self, session_id: str) -> bool:
        """Create a new session. Returns False if it already exists."""
        with self._lock:
            if self.get_session(session_id) is not None:
                return False
            self._save(session_id, self._new_session())
            return True

    def _update(self, session_id: str, fn) -> None:
        with self._lock:
            data = self.get_session(session_id) or self._new_session()
            fn(data)
            self._save(session_id, data)

    def add_message(self, session_id: str, role: str, text: str) -> None:
        def append(data):
            data["messages"].append({"role": role, "text": text, "timestamp": datetime.now().isoformat()})
            data["messages"] = data["messages"][-Config.MAX_CONVERSATION_TURNS:]
        self._update(session_id, append)

    def add_command(self, session_id: str, command: str) -> None:
        """Remember a message that was handled as a catalog command."""
        def append(data):
            data["recent_commands"].append(command)
            data["recent_commands"] = data["recent_commands"][-Config.MAX_RECENT_COMMANDS:]
        self._update(session_id, append)

    def get_recent_commands(self, session_id: str) -> List[str]:
        data = self.get_session(session_id)
        return list(data.get("recent_commands", [])) if data else []

    def get_conversation_context(self, session_id: str) -> List[Dict[str, str]]:
        """
        Conversation turns in chat-completion shape.

        Returns:
            List of {"role", "content"} dicts, oldest first
        """
        data = self.get_session(session_id)
        if not data:
            return []
        return [{"role": m["role"], "content": m["text"]} for m in data.get("messages", [])]
