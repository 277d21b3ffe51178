import logging
import secrets
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from . import config

logger = logging.getLogger("uvicorn")

SESSION_TTL_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class AdminSession:
    username: str
    created_at: float  # epoch seconds


class SessionStore(ABC):
    """Admin session storage. Absence from the store means logged out."""

    @abstractmethod
    def create(self, username: str) -> str:
        ...

    @abstractmethod
    def validate(self, token: str) -> Optional[AdminSession]:
        ...

    @abstractmethod
    def revoke(self, token: str) -> None:
        ...


class InMemorySessionStore(SessionStore):
    """
    Process-local store. Sessions are not shared between server instances,
    so multi-instance deployments need sticky routing or an external store.
    """

    def __init__(self, ttl_seconds: int = SESSION_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._sessions: Dict[str, AdminSession] = {}
        self._lock = threading.Lock()

    def _is_expired(self, session: AdminSession, now: float) -> bool:
        return now - session.created_at > self.ttl_seconds

    def cleanup_expired(self) -> int:
        """Remove sessions older than the TTL"""
        now = self.clock()
        with self._lock:
            to_remove = [
                token for token, session in self._sessions.items()
                if self._is_expired(session, now)
            ]
            for token in to_remove:
                del self._sessions[token]
        return len(to_remove)

    def create(self, username: str) -> str:
        self.cleanup_expired()

        token = secrets.token_urlsafe(32)
        with self._lock:
            self._sessions[token] = AdminSession(username=username, created_at=self.clock())
        return token

    def validate(self, token: str) -> Optional[AdminSession]:
        if not token:
            return None

        now = self.clock()
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if self._is_expired(session, now):
                del self._sessions[token]
                return None
            return session

    def revoke(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def __contains__(self, token) -> bool:
        with self._lock:
            return token in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def credentials_configured() -> bool:
    return bool(config.ADMIN_USERNAME and config.ADMIN_PASSWORD)


def check_credentials(username, password) -> bool:
    if not credentials_configured():
        return False
    if not isinstance(username, str) or not isinstance(password, str):
        return False
    username_ok = secrets.compare_digest(username.encode(), config.ADMIN_USERNAME.encode())
    password_ok = secrets.compare_digest(password.encode(), config.ADMIN_PASSWORD.encode())
    return username_ok and password_ok


_session_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """FastAPI dependency returning the process-wide store."""
    global _session_store
    if _session_store is None:
        _session_store = InMemorySessionStore()
        logger.info("Using in-memory admin session store")
    return _session_store
