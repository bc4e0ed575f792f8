# classifieds/client/auth_client.py

"""Login, signup and logout against the backend's auth endpoints."""

import logging

from classifieds.client.errors import RequestRejected, ValidationError
from classifieds.client.responses import MALFORMED_RECORD, ensure_success
from classifieds.client.transport import (
    ApiRequest,
    RetryTransport,
    accept_any,
)
from classifieds.config.settings import Settings
from classifieds.models.user import Session, User
from classifieds.storage.session_store import SessionStore

logger = logging.getLogger("classifieds.auth")


def validate_signup(password: str, confirm_password: str) -> None:
    """Reject a signup form locally, before any request is made."""
    if password != confirm_password:
        raise ValidationError("Passwords do not match!")
    if len(password) < Settings.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {Settings.MIN_PASSWORD_LENGTH} "
            "characters long!"
        )


class AuthClient:
    """Obtains sessions from the backend and caches them locally."""

    def __init__(
        self, transport: RetryTransport, store: SessionStore
    ) -> None:
        self.transport = transport
        self.store = store

    async def login(self, email: str, password: str) -> Session:
        """Log in and replace the cached session."""
        resp = await self.transport.send(
            ApiRequest(
                "POST",
                "/auth/login",
                json={"email": email, "password": password},
            ),
            max_attempts=1,
            is_success=accept_any,
        )
        body = ensure_success(resp)
        if not body.get("user") or not body.get("token"):
            raise RequestRejected("Login response missing user or token")

        try:
            session = Session(
                user=User.from_api(body["user"]),
                credential=str(body["token"]),
            )
        except MALFORMED_RECORD as exc:
            raise RequestRejected(
                "Invalid login response from server"
            ) from exc
        self.store.save(session)
        logger.info(
            "Logged in as user %d (%s)",
            session.user.id,
            session.user.role.value,
        )
        return session

    async def signup(
        self,
        email: str,
        password: str,
        confirm_password: str,
        name: str,
    ) -> User | None:
        """Create an account; the caller still has to log in afterwards.

        Returns:
            The created user when the backend echoes it back.
        """
        validate_signup(password, confirm_password)
        resp = await self.transport.send(
            ApiRequest(
                "POST",
                "/auth/signup",
                json={"email": email, "password": password, "name": name},
            ),
            max_attempts=1,
            is_success=accept_any,
        )
        body = ensure_success(resp)
        logger.info("Account created for %s", email)
        try:
            return User.from_api(body["user"])
        except MALFORMED_RECORD:
            logger.debug("Signup response carried no usable user record")
            return None

    def logout(self) -> None:
        """Forget the cached identity and credential."""
        self.store.clear()
        logger.info("Logged out")
