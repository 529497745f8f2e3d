"""Single-admin session provider for backends without native auth"""

from __future__ import annotations

import secrets
from typing import Callable, Optional
from uuid import NAMESPACE_URL, uuid5

import bcrypt

from ...errors import NotAuthenticatedError
from ...observability import logger
from ..entities import Credentials, Session
from .base import SessionCallback, SessionProvider


def hash_password(plain_password: str, rounds: int = 12) -> str:
    """Hash a plaintext password for RELGRAPH_ADMIN_PASSWORD_HASH"""
    return bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plaintext password against a bcrypt hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        logger.error("Configured admin password hash is not a valid bcrypt hash")
        return False


def user_id_for(email: str):
    """Stable user id derived from the login email"""
    return uuid5(NAMESPACE_URL, f"relgraph:user:{email.strip().lower()}")


class LocalSessionProvider(SessionProvider):
    """
    Checks credentials against the configured admin account.

    The graph has one editing user; visitors read anonymously and every
    mutating call without a session is rejected by the repositories.
    Only a bcrypt hash of the admin password is configured.
    """

    def __init__(
        self,
        admin_email: Optional[str] = None,
        admin_password_hash: Optional[str] = None,
    ):
        from ..config import settings

        self._admin_email = admin_email if admin_email is not None else settings.admin_email
        self._admin_password_hash = (
            admin_password_hash
            if admin_password_hash is not None
            else settings.admin_password_hash
        )
        self._session: Optional[Session] = None
        self._listeners: list[SessionCallback] = []

    async def get_session(self) -> Optional[Session]:
        return self._session

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    async def sign_in(self, credentials: Credentials) -> Session:
        email_ok = credentials.email.strip().lower() == self._admin_email.strip().lower()
        # No configured hash disables sign-in entirely
        password_ok = bool(self._admin_password_hash) and verify_password(
            credentials.password, self._admin_password_hash
        )
        if not (email_ok and password_ok):
            logger.warning(f"Rejected sign-in for {credentials.email!r}")
            raise NotAuthenticatedError("Invalid credentials")

        self._set(Session(
            user_id=user_id_for(credentials.email),
            email=credentials.email.strip().lower(),
            access_token=secrets.token_urlsafe(24),
        ))
        return self._session

    async def sign_out(self) -> None:
        self._set(None)

    def _set(self, session: Optional[Session]) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(session)
