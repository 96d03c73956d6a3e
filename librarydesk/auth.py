"""Admin authentication and session handling.

Passwords are stored as salted PBKDF2-SHA256 hashes. After a successful login
the API hands out an opaque token created with the ``secrets`` module; the
``SessionStore`` maps that token to the admin id until it expires.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from librarydesk.config import settings
from librarydesk.database import get_db_connection

logger = logging.getLogger(__name__)

_ITERATIONS = 120_000


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Return ``salt$hexdigest`` for the given password."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), _ITERATIONS)
    return f"{salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    if not stored or "$" not in stored:
        return False
    salt, _ = stored.split("$", 1)
    return hmac.compare_digest(hash_password(password, salt), stored)


def authenticate(username: str, password: str, db_file: Optional[str] = None) -> Optional[dict]:
    """Return ``{id, username}`` if the credentials are correct, else None."""
    conn = get_db_connection(db_file)
    try:
        row = conn.execute("SELECT * FROM admin WHERE username = ?", (username,)).fetchone()
    finally:
        conn.close()
    if row is None or not verify_password(password, row["password"]):
        logger.warning(f"Failed login for {username!r}")
        return None
    return {"id": row["id"], "username": row["username"]}


def get_admin(user_id: int, db_file: Optional[str] = None) -> Optional[dict]:
    conn = get_db_connection(db_file)
    try:
        row = conn.execute("SELECT id, username FROM admin WHERE id = ?", (user_id,)).fetchone()
    finally:
        conn.close()
    return dict(row) if row else None


class SessionStore:
    """In-memory mapping from session token to admin id, with expiry."""

    def __init__(self, ttl_seconds: Optional[int] = None, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.session_ttl_minutes * 60
        self._clock = clock
        self._sessions: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def create(self, user_id: int) -> str:
        """Start a session for ``user_id`` and return its token.

        Expired sessions are dropped here, so the store holds at most the
        sessions started within one TTL.
        """
        with self._lock:
            now = self._clock()
            self._purge_locked(now)
            # Generate a token that isn't already in use
            while True:
                token = secrets.token_urlsafe(32)
                if token not in self._sessions:
                    break
            self._sessions[token] = (user_id, now + self.ttl_seconds)
        return token

    def get(self, token: Optional[str]) -> Optional[int]:
        """Return the admin id for a live token; expired tokens are dropped."""
        if not token:
            return None
        with self._lock:
            entry = self._sessions.get(token)
            if entry is None:
                return None
            user_id, expires_at = entry
            if self._clock() >= expires_at:
                del self._sessions[token]
                return None
            return user_id

    def destroy(self, token: Optional[str]) -> bool:
        """Invalidate a token. Returns True if the token existed."""
        if not token:
            return False
        with self._lock:
            return self._sessions.pop(token, None) is not None

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked(self._clock())

    def _purge_locked(self, now: float) -> int:
        # caller holds self._lock
        expired = [t for t, (_, expires_at) in self._sessions.items() if now >= expires_at]
        for token in expired:
            del self._sessions[token]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
