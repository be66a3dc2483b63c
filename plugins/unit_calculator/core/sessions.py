"""In-memory workspaces for the HTTP API."""

from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator

from common.logging import get_logger

from .workspace import Workspace

DEFAULT_SESSION_TTL = timedelta(minutes=30)
DEFAULT_MAX_SESSIONS = 256

logger = get_logger("unitcalc.sessions")


class SessionNotFound(KeyError):
    """Raised when a session id is unknown or has expired."""


@dataclass(slots=True)
class Session:
    """A workspace owned by one API client."""

    workspace: Workspace
    session_id: str = ""
    unit_sets: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_accessed: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def describe(self) -> dict[str, object]:
        return {
            "session_id": self.session_id,
            "unit_sets": list(self.unit_sets),
            "created_at": self.created_at.isoformat(),
            "last_accessed": self.last_accessed.isoformat(),
            **self.workspace.describe(),
        }


class SessionStore:
    """Thread-safe session registry with TTL purging and a capacity limit.

    A workspace is not thread-safe, so :meth:`use` also holds the session's
    own lock while a request works with it.
    """

    def __init__(
        self,
        *,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.ttl = ttl
        self.max_sessions = max_sessions
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._items: dict[str, Session] = {}
        self._lock = threading.Lock()

    def configure(self, *, ttl: timedelta, max_sessions: int) -> None:
        with self._lock:
            self.ttl = ttl
            self.max_sessions = max_sessions

    def _purge_locked(self) -> None:
        now = self._clock()
        expired = [
            session_id
            for session_id, session in self._items.items()
            if now - session.last_accessed > self.ttl
        ]
        for session_id in expired:
            self._items.pop(session_id, None)
        if expired:
            logger.info("purged %d expired session(s)", len(expired))

    def create(self, workspace: Workspace, unit_sets: tuple[str, ...] = ()) -> Session:
        session_id = uuid.uuid4().hex
        now = self._clock()
        with self._lock:
            self._purge_locked()
            while len(self._items) >= self.max_sessions:
                oldest = min(self._items.values(), key=lambda item: item.last_accessed)
                self._items.pop(oldest.session_id, None)
                logger.info("evicted session %s to stay within capacity", oldest.session_id)
            session = Session(
                workspace=workspace,
                session_id=session_id,
                unit_sets=tuple(unit_sets),
                created_at=now,
                last_accessed=now,
            )
            self._items[session_id] = session
        logger.info("created session %s (%s)", session_id, workspace.domain.name)
        return session

    def get(self, session_id: str) -> Session:
        with self._lock:
            self._purge_locked()
            try:
                session = self._items[session_id]
            except KeyError as exc:
                raise SessionNotFound("Session expired or not found") from exc
            session.last_accessed = self._clock()
            return session

    @contextmanager
    def use(self, session_id: str) -> Iterator[Session]:
        session = self.get(session_id)
        with session.lock:
            yield session

    def delete(self, session_id: str) -> bool:
        with self._lock:
            removed = self._items.pop(session_id, None) is not None
        if removed:
            logger.info("deleted session %s", session_id)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


__all__ = [
    "DEFAULT_MAX_SESSIONS",
    "DEFAULT_SESSION_TTL",
    "Session",
    "SessionNotFound",
    "SessionStore",
]
