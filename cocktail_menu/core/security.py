"""
Admin guard.

FastAPI dependencies that gate the management routes on the session's
``is_admin`` flag.
"""

import logging
import secrets
from typing import Optional

from fastapi import Request

from cocktail_menu.core.sessions import SESSION_COOKIE_NAME, SessionData, SessionStore

logger = logging.getLogger(__name__)


class AdminLoginRequired(Exception):
    """Raised when a management route is hit without an admin session."""


def password_matches(submitted: str, expected: str) -> bool:
    """Constant-time comparison of the submitted admin password. Empty never matches."""
    if not submitted or not expected:
        return False
    return secrets.compare_digest(submitted.encode("utf-8"), expected.encode("utf-8"))


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def current_session(request: Request) -> Optional[SessionData]:
    """Session attached to the request cookie, if it is still alive."""
    store = get_session_store(request)
    return store.from_cookie(request.cookies.get(SESSION_COOKIE_NAME))


async def require_admin(request: Request) -> SessionData:
    """Dependency: continue only for admin sessions, otherwise go to login."""
    session = current_session(request)
    if session is None or not session.is_admin:
        logger.info(f"Admin session required for {request.url.path}")
        raise AdminLoginRequired()
    return session
