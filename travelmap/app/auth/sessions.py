"""In-memory login sessions.

A session is created unauthenticated when the login page is served and is
flipped to authenticated once the correct access code is submitted. Logging out
removes the session entirely. Sessions use a sliding expiry: every successful
lookup pushes the deadline forward by the TTL.

Sessions are process-local and are lost on restart.
"""

import dataclasses
import logging
import secrets
import threading
import time
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)

SESSION_ID_BYTES = 16


@dataclasses.dataclass
class SessionRecord:
    """State held for one browser session."""

    created: float
    last_seen: float
    authenticated: bool = False


class SessionStore(Protocol):
    """Interface used by the auth dependencies and routes."""

    def create(self) -> str: ...

    def get(self, session_id: str | None) -> SessionRecord | None: ...

    def is_valid(self, session_id: str | None) -> bool: ...

    def authenticate(self, session_id: str) -> bool: ...

    def destroy(self, session_id: str | None) -> bool: ...

    def purge_expired(self) -> int: ...


class InMemorySessionStore:
    """Dictionary-backed session store with an optional sliding TTL.

    ``ttl_seconds`` of ``None`` or ``0`` disables expiry.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds or None
        self._clock = clock
        self._sessions: dict[str, SessionRecord] = {}
        # Sync route handlers run in a thread pool
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def _is_expired(self, record: SessionRecord, now: float) -> bool:
        if self.ttl_seconds is None:
            return False
        return now - record.last_seen > self.ttl_seconds

    def _drop_expired(self, now: float) -> int:
        # Caller holds self._lock
        expired = [
            session_id
            for session_id, record in self._sessions.items()
            if self._is_expired(record, now)
        ]
        for session_id in expired:
            del self._sessions[session_id]
        return len(expired)

    def create(self) -> str:
        """Create a new unauthenticated session and return its id.

        Expired sessions are swept first, so anonymous visits to the login page
        cannot grow the store without bound.
        """
        session_id = secrets.token_hex(SESSION_ID_BYTES)
        now = self._clock()
        with self._lock:
            purged = self._drop_expired(now)
            self._sessions[session_id] = SessionRecord(created=now, last_seen=now)
        if purged:
            logger.info('Purged %d expired sessions', purged)
        logger.debug('Created session %s', session_id[:8])
        return session_id

    def get(self, session_id: str | None) -> SessionRecord | None:
        """Return the live session for an id, refreshing its expiry."""
        if not session_id:
            return None
        now = self._clock()
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                return None
            if self._is_expired(record, now):
                del self._sessions[session_id]
                logger.info('Session %s expired', session_id[:8])
                return None
            record.last_seen = now
            return record

    def is_valid(self, session_id: str | None) -> bool:
        """True if the session exists, has not expired and is authenticated."""
        record = self.get(session_id)
        return record is not None and record.authenticated

    def authenticate(self, session_id: str) -> bool:
        """Mark a live session as authenticated.

        Returns False if the session does not exist or has expired.
        """
        record = self.get(session_id)
        if record is None:
            return False
        if not record.authenticated:
            record.authenticated = True
            logger.info('Session %s authenticated', session_id[:8])
        return True

    def destroy(self, session_id: str | None) -> bool:
        """Remove a session. Returns True if one was removed."""
        if not session_id:
            return False
        with self._lock:
            removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info('Session %s destroyed', session_id[:8])
        return removed

    def purge_expired(self) -> int:
        """Drop all expired sessions and return how many were removed."""
        now = self._clock()
        with self._lock:
            return self._drop_expired(now)
