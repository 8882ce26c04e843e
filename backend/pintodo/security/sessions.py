"""
Session trust for the PIN gate.

Two modes, picked by ``SESSION_MODE``:

``pin`` (default)
    The trust cookie carries the PIN itself and is re-compared with the
    configured secret on every request. Anyone holding the cookie holds the PIN.

``token``
    The trust cookie carries an opaque random token issued after a successful
    verification and remembered server-side until it expires or is revoked.

The ``X-Pin`` header is always compared against the PIN, so scripts that know
the PIN can call the API in either mode.
"""

from __future__ import annotations

import secrets
import threading
import time
from typing import Dict, Optional

from starlette.responses import Response

from pintodo.core.settings import Settings
from pintodo.security.pin import secure_compare

SESSION_COOKIE_NAME = "pintodo_session"
PIN_HEADER_NAME = "X-Pin"


class SessionStore:
    """In-memory registry of issued session tokens."""

    def __init__(self, max_age_seconds: int = 24 * 60 * 60) -> None:
        self.max_age_seconds = max_age_seconds
        self._tokens: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _now(self) -> float:
        return time.time()

    def issue(self) -> str:
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._tokens[token] = self._now() + self.max_age_seconds
        return token

    def is_valid(self, token: Optional[str]) -> bool:
        if not token:
            return False
        with self._lock:
            expires_at = self._tokens.get(token)
            if expires_at is None:
                return False
            if expires_at <= self._now():
                self._tokens.pop(token, None)
                return False
            return True

    def revoke(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            self._tokens.pop(token, None)

    def prune(self) -> int:
        now = self._now()
        with self._lock:
            expired = [t for t, exp in self._tokens.items() if exp <= now]
            for token in expired:
                del self._tokens[token]
        return len(expired)

    def __len__(self) -> int:
        return len(self._tokens)


def is_trusted(
    cookie: Optional[str],
    header: Optional[str],
    settings: Settings,
    sessions: SessionStore,
) -> bool:
    """
    Classify a request's credentials.

    The cookie wins when present; the header is only consulted when no cookie
    was sent. Never touches the attempt tracker.
    """
    if not settings.pin_required:
        return True
    if cookie is not None:
        if settings.session_mode == "token":
            return sessions.is_valid(cookie)
        return secure_compare(cookie, settings.pin)
    if header is not None:
        return secure_compare(header, settings.pin)
    return False


def issue_trust(response: Response, settings: Settings, sessions: SessionStore) -> None:
    """Set the trust cookie after a successful verification."""
    if settings.session_mode == "token":
        value = sessions.issue()
    else:
        value = settings.pin or ""
    response.set_cookie(
        SESSION_COOKIE_NAME,
        value,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="strict",
        path="/",
    )


def revoke_trust(response: Response, cookie: Optional[str], settings: Settings, sessions: SessionStore) -> None:
    if settings.session_mode == "token":
        sessions.revoke(cookie)
    response.delete_cookie(
        SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.secure_cookies,
        samesite="strict",
    )


__all__ = [
    "PIN_HEADER_NAME",
    "SESSION_COOKIE_NAME",
    "SessionStore",
    "is_trusted",
    "issue_trust",
    "revoke_trust",
]
