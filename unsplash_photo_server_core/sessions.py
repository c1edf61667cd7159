"""Registry of live streamable HTTP sessions.

The registry is the only cross-session mutable state in the server. All
reads and writes of the session table go through one ``anyio.Lock``; the
transport is torn down outside the lock so a slow shutdown of one session
never stalls routing for the others.
"""

from __future__ import annotations

import contextlib
import sys
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

import anyio

from .errors import SessionNotFound


CLOSE_TERMINATED = "terminated"
CLOSE_DISCONNECTED = "disconnected"
CLOSE_IDLE = "idle"
CLOSE_FAILED = "failed"
CLOSE_SHUTDOWN = "shutdown"


@dataclass
class Session:
    session_id: str
    transport: Any = None
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    initialized: bool = False
    cancel_scope: Optional[anyio.CancelScope] = None
    open_requests: int = 0

    def touch(self) -> None:
        self.last_activity = time.time()

    @contextlib.contextmanager
    def in_use(self) -> Iterator["Session"]:
        """Mark the session busy while a request or push stream is open."""

        self.open_requests += 1
        self.touch()
        try:
            yield self
        finally:
            self.open_requests -= 1
            self.touch()


@dataclass(frozen=True)
class SessionClosed:
    """Lifecycle event telling the registry a session's transport is gone."""

    session_id: str
    reason: str = CLOSE_DISCONNECTED


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}
        self._lock = anyio.Lock()

    def __len__(self) -> int:
        return sum(1 for session in self._sessions.values() if session.initialized)

    def active_ids(self) -> List[str]:
        return [session_id for session_id, session in self._sessions.items() if session.initialized]

    async def create(self) -> str:
        """Register an empty session under a fresh identifier and return it."""

        async with self._lock:
            session_id = uuid.uuid4().hex
            while session_id in self._sessions:
                session_id = uuid.uuid4().hex
            self._sessions[session_id] = Session(session_id=session_id)
        return session_id

    async def attach(
        self,
        session_id: str,
        transport: Any,
        cancel_scope: Optional[anyio.CancelScope] = None,
    ) -> Session:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            session.transport = transport
            if cancel_scope is not None:
                session.cancel_scope = cancel_scope
            return session

    async def activate(self, session_id: str) -> Session:
        """Make a created session visible to :meth:`lookup`."""

        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            session.initialized = True
            session.touch()
            return session

    async def lookup(self, session_id: Optional[str]) -> Session:
        """Return the live session for ``session_id``.

        Raises:
            SessionNotFound: the id is missing, unknown, already removed or
                belongs to a session that has not finished initializing.
        """

        if not session_id:
            raise SessionNotFound(session_id)
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or not session.initialized:
                raise SessionNotFound(session_id)
            return session

    async def remove(self, session_id: str, reason: str = CLOSE_DISCONNECTED) -> None:
        """Evict ``session_id`` and release its transport. Unknown ids are ignored."""

        async with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return

        print(f"Session {session_id} closed ({reason})", file=sys.stderr)
        transport = session.transport
        if transport is not None and not getattr(transport, "is_terminated", False):
            try:
                await transport.terminate()
            except Exception as exc:  # pragma: no cover - diagnostic path
                print(f"Error terminating transport for session {session_id}: {exc}", file=sys.stderr)
        if session.cancel_scope is not None:
            session.cancel_scope.cancel()

    async def dispatch(self, event: SessionClosed) -> None:
        await self.remove(event.session_id, event.reason)

    async def idle_sessions(self, timeout: float, now: Optional[float] = None) -> List[str]:
        """Ids of sessions with no activity during the last ``timeout`` seconds.

        Sessions with an open request or stream are never idle.
        """

        if timeout <= 0:
            return []
        current = time.time() if now is None else now
        async with self._lock:
            return [
                session_id
                for session_id, session in self._sessions.items()
                if session.initialized
                and session.open_requests == 0
                and current - session.last_activity > timeout
            ]

    async def close_all(self) -> None:
        async with self._lock:
            session_ids = list(self._sessions)
        for session_id in session_ids:
            await self.remove(session_id, CLOSE_SHUTDOWN)


__all__ = [
    "CLOSE_DISCONNECTED",
    "CLOSE_FAILED",
    "CLOSE_IDLE",
    "CLOSE_SHUTDOWN",
    "CLOSE_TERMINATED",
    "Session",
    "SessionClosed",
    "SessionRegistry",
]
