"""
Server-side Session Store

Sessions live in process memory, keyed by an opaque random token. The browser
only ever holds the token, signed with itsdangerous so forged cookies are
rejected before the store is consulted.

Lifetime is fixed from creation: reading a session never extends it.
"""

import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from itsdangerous import BadSignature, URLSafeSerializer

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "cocktail_session"


@dataclass
class SessionData:
    """A single session record."""
    token: str
    created_at: float
    expires_at: float
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return bool(self.data.get("is_admin"))

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class SessionStore:
    """
    In-memory session store with explicit create/get/destroy/expire operations.

    Example:
        >>> store = SessionStore(secret="s3cret", ttl_seconds=3600)
        >>> token = store.create({"is_admin": True})
        >>> store.get(token).is_admin
        True
        >>> store.destroy(token)
        >>> store.get(token) is None
        True
    """

    def __init__(
        self,
        secret: str,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._serializer = URLSafeSerializer(secret, salt="cocktail-menu-session")
        self._sessions: dict[str, SessionData] = {}

    def create(self, data: Optional[dict[str, Any]] = None) -> str:
        """Start a new session and return its token."""
        now = self._clock()
        token = secrets.token_urlsafe(32)
        self._sessions[token] = SessionData(
            token=token,
            created_at=now,
            expires_at=now + self.ttl_seconds,
            data=dict(data or {}),
        )
        return token

    def get(self, token: Optional[str]) -> Optional[SessionData]:
        """Return the live session for a token, dropping it if expired."""
        if not token:
            return None
        session = self._sessions.get(token)
        if session is None:
            return None
        if session.is_expired(self._clock()):
            logger.debug("Session expired")
            self._sessions.pop(token, None)
            return None
        return session

    def destroy(self, token: Optional[str]) -> None:
        if token:
            self._sessions.pop(token, None)

    def purge_expired(self) -> int:
        """Remove every expired session; returns how many were dropped."""
        now = self._clock()
        expired = [t for t, s in self._sessions.items() if s.is_expired(now)]
        for token in expired:
            del self._sessions[token]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)

    # ==========================================================================
    # COOKIE ENCODING
    # ==========================================================================

    def sign(self, token: str) -> str:
        """Cookie value for a token."""
        return self._serializer.dumps(token)

    def unsign(self, cookie_value: Optional[str]) -> Optional[str]:
        """Token from a cookie value, or None if missing or tampered with."""
        if not cookie_value:
            return None
        try:
            token = self._serializer.loads(cookie_value)
        except BadSignature:
            logger.warning("Rejected session cookie with a bad signature")
            return None
        return token if isinstance(token, str) else None

    def from_cookie(self, cookie_value: Optional[str]) -> Optional[SessionData]:
        return self.get(self.unsign(cookie_value))
