"""Admin token login and bearer session validation."""

from __future__ import annotations

import secrets
from collections import OrderedDict
from datetime import datetime, timedelta
from threading import RLock
from typing import Callable, Optional

from spacebook.utils.config import Settings, get_settings


class AuthenticationError(Exception):
    """Base authentication failure."""


class AdminTokenNotConfiguredError(AuthenticationError):
    """Raised when ADMIN_TOKEN is missing."""


class InvalidAdminTokenError(AuthenticationError):
    """Raised when a login token or bearer token is rejected."""


class AuthService:
    """Issues in-memory session tokens; sessions end with the process.

    Sessions expire after `session_ttl_minutes`. At most `max_admin_sessions`
    are kept, and a new login evicts the oldest one beyond that.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._clock = clock or datetime.now
        self._sessions: OrderedDict[str, datetime] = OrderedDict()
        self._lock = RLock()

    @property
    def auth_enabled(self) -> bool:
        return bool(self._settings.admin_token)

    @property
    def active_sessions(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._sessions)

    def _purge_expired(self) -> None:
        now = self._clock()
        for token in [token for token, expires_at in self._sessions.items() if expires_at <= now]:
            del self._sessions[token]

    def login(self, provided_admin_token: str) -> str:
        if not self._settings.admin_token:
            raise AdminTokenNotConfiguredError(
                "ADMIN_TOKEN is not configured. Set ADMIN_TOKEN in environment variables."
            )
        if not secrets.compare_digest(provided_admin_token, self._settings.admin_token):
            raise InvalidAdminTokenError("Invalid credentials")
        session_token = secrets.token_urlsafe(32)
        expires_at = self._clock() + timedelta(minutes=self._settings.session_ttl_minutes)
        with self._lock:
            self._purge_expired()
            self._sessions[session_token] = expires_at
            while len(self._sessions) > self._settings.max_admin_sessions:
                self._sessions.popitem(last=False)
        return session_token

    def logout(self, bearer_token: str) -> None:
        with self._lock:
            self._sessions.pop(bearer_token, None)

    def validate_bearer_token(self, bearer_token: str) -> None:
        if not self.auth_enabled:
            return
        with self._lock:
            self._purge_expired()
            active = any(
                secrets.compare_digest(bearer_token, session) for session in self._sessions
            )
        if not active:
            raise InvalidAdminTokenError("Invalid or expired token")
