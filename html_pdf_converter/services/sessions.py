"""In-memory session store: one ConversionSession per browser cookie."""

from __future__ import annotations

import logging
import secrets
import threading
import time
from pathlib import Path

from html_pdf_converter.services.conversion import ConversionSession
from html_pdf_converter.services.uploads import discard_tree

logger = logging.getLogger(__name__)


class SessionStore:
    """Creates, looks up and expires conversion sessions.

    Each session gets its own directory under ``work_dir`` so that expiring
    a session removes its uploads and PDFs in one go.
    """

    def __init__(self, engine, work_dir: Path, wait_secs: float = 2.0, ttl_secs: float = 3600):
        self.engine = engine
        self.work_dir = Path(work_dir)
        self.wait_secs = wait_secs
        self.ttl_secs = ttl_secs
        self._sessions: dict[str, ConversionSession] = {}
        self._last_seen: dict[str, float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str | None) -> ConversionSession | None:
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._last_seen[session_id] = time.monotonic()
            return session

    def get_or_create(self, session_id: str | None) -> ConversionSession:
        session = self.get(session_id)
        if session is not None:
            return session

        session_id = secrets.token_urlsafe(24)
        session = ConversionSession(
            engine=self.engine,
            work_dir=self.work_dir / session_id,
            wait_secs=self.wait_secs,
            session_id=session_id,
        )
        session.subscribe(self._touch)
        with self._lock:
            self._sessions[session_id] = session
            self._last_seen[session_id] = time.monotonic()
        logger.info("Session %s created", session_id[:8])
        return session

    def sweep(self, now: float | None = None) -> int:
        """Close sessions idle for longer than the TTL. Returns how many were closed."""
        now = time.monotonic() if now is None else now
        with self._lock:
            expired = [
                sid for sid, seen in self._last_seen.items()
                if now - seen > self.ttl_secs
            ]
            sessions = [self._sessions.pop(sid) for sid in expired]
            for sid in expired:
                self._last_seen.pop(sid, None)

        for session in sessions:
            self._close(session)
        if sessions:
            logger.info("Expired %d idle session(s)", len(sessions))
        return len(sessions)

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            self._last_seen.clear()
        for session in sessions:
            self._close(session)

    def _close(self, session: ConversionSession) -> None:
        session.close()
        discard_tree(session.work_dir)

    def _touch(self, session: ConversionSession) -> None:
        with self._lock:
            if session.session_id in self._sessions:
                self._last_seen[session.session_id] = time.monotonic()
