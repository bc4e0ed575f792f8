# classifieds/storage/session_store.py

"""Persists the logged-in session between command invocations."""

import json
import logging
import os
from pathlib import Path

from classifieds.config.settings import Settings
from classifieds.models.user import Session, User

logger = logging.getLogger("classifieds.storage")

IDENTITY_FILE = "user.json"
CREDENTIAL_FILE = "token"


class SessionStore:
    """Keeps identity and credential as two independent files.

    Code that only needs to know *who* is logged in reads
    ``user.json`` and never touches the token.  The session is only
    ever replaced or cleared as a whole; token freshness is not
    checked here, the backend rejects stale tokens.
    """

    def __init__(self, session_dir: Path | None = None) -> None:
        self.session_dir: Path = session_dir or Settings.SESSION_DIR
        logger.debug(
            "SessionStore initialised, session_dir=%s", self.session_dir
        )

    @property
    def identity_path(self) -> Path:
        return self.session_dir / IDENTITY_FILE

    @property
    def credential_path(self) -> Path:
        return self.session_dir / CREDENTIAL_FILE

    def load_identity(self) -> User | None:
        """Return the cached user, or ``None`` when browsing anonymously."""
        if not self.identity_path.exists():
            return None
        try:
            with open(self.identity_path, encoding="utf-8") as f:
                return User.from_api(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning(
                "Ignoring unreadable identity file %s: %s",
                self.identity_path,
                exc,
            )
            return None

    def load_credential(self) -> str | None:
        """Return the cached bearer token, or ``None``."""
        if not self.credential_path.exists():
            return None
        token = self.credential_path.read_text(encoding="utf-8").strip()
        return token or None

    def load(self) -> Session | None:
        """Return the full session when both halves are cached."""
        user = self.load_identity()
        credential = self.load_credential()
        if user is None or credential is None:
            return None
        return Session(user=user, credential=credential)

    def save(self, session: Session) -> None:
        """Replace the cached session."""
        self.session_dir.mkdir(parents=True, exist_ok=True)
        with open(self.identity_path, "w", encoding="utf-8") as f:
            json.dump(session.user.to_dict(), f, ensure_ascii=False, indent=2)

        fd = os.open(
            self.credential_path,
            os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
            0o600,
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(session.credential)

        logger.info("Saved session for user %d", session.user.id)

    def clear(self) -> None:
        """Remove both the identity and the credential."""
        for path in (self.identity_path, self.credential_path):
            path.unlink(missing_ok=True)
        logger.info("Session cleared")
