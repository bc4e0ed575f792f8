# classifieds/client/errors.py

"""Error taxonomy shared by the clients and the listing lifecycle.

Every failure a command can hit is a :class:`ClassifiedsError`; callers
catch at the point of the triggering action and show ``user_message``
inline.  None of them is fatal to the process.
"""


class ClassifiedsError(Exception):
    """Base class for all client-visible failures."""

    default_message = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.user_message = message or self.default_message
        super().__init__(self.user_message)


class ValidationError(ClassifiedsError):
    """Input rejected locally; nothing was sent to the backend."""

    default_message = "Invalid input"


class Unauthenticated(ClassifiedsError):
    """No credential is cached; the call never reached the transport."""

    default_message = "You must be logged in to do that"


class TransportError(ClassifiedsError):
    """The backend could not be reached within the allowed attempts."""

    default_message = (
        "Could not connect to server. Make sure the backend is running."
    )

    def __init__(
        self,
        message: str | None = None,
        attempts: int = 0,
        last_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_status = last_status


class RequestRejected(ClassifiedsError):
    """The backend answered with a non-success status and a reason."""

    default_message = "Unknown error"

    def __init__(self, message: str | None = None, status: int = 0) -> None:
        super().__init__(message)
        self.status = status

    @property
    def is_auth_failure(self) -> bool:
        """True when the cached token was refused (expired or invalid)."""
        return self.status in (401, 403)


class NotFound(ClassifiedsError):
    """The addressed listing does not exist."""

    default_message = "Listing not found or invalid"


class ActionNotPermitted(ClassifiedsError):
    """The current session holds no capability for this action."""

    default_message = "You are not allowed to do that"


class InvalidTransition(ClassifiedsError):
    """The listing's state does not offer the requested transition."""

    default_message = "This listing can no longer be changed"


class ActionInProgress(ClassifiedsError):
    """The same action is already waiting on the backend."""

    default_message = "This action is already in progress"
