# classifieds/services/authorization.py

"""Decides which listing actions the current session may offer.

This is advisory: it only controls which affordances the client shows.
The backend remains the actual trust boundary and re-checks every
mutation.
"""

from enum import Enum

from classifieds.models.listing import AnyListing, ModerationState
from classifieds.models.user import Session


class Capability(str, Enum):
    """An action the client may offer on a listing."""

    EDIT = "edit"
    DELETE = "delete"
    MODERATE_DELETE = "moderate_delete"


NO_CAPABILITIES: frozenset[Capability] = frozenset()
OWNER_CAPABILITIES = frozenset({Capability.EDIT, Capability.DELETE})
STAFF_CAPABILITIES = frozenset({Capability.MODERATE_DELETE})


def is_owner(session: Session | None, listing: AnyListing) -> bool:
    return (
        session is not None
        and listing.owner_user_id == session.user.id
    )


def resolve_capabilities(
    session: Session | None, listing: AnyListing
) -> frozenset[Capability]:
    """Return the capability set of ``session`` on ``listing``.

    * anonymous: nothing
    * owner: edit and hard delete
    * moderator or admin: moderation delete, on any listing including
      their own
    * redacted listing: nothing, for anyone
    """
    if session is None:
        return NO_CAPABILITIES
    if listing.moderation_state is ModerationState.REDACTED:
        return NO_CAPABILITIES

    capabilities: set[Capability] = set()
    if is_owner(session, listing):
        capabilities |= OWNER_CAPABILITIES
    if session.is_staff:
        capabilities |= STAFF_CAPABILITIES
    return frozenset(capabilities)


def can_create(session: Session | None) -> bool:
    """Posting a listing requires a logged-in session."""
    return session is not None


def can_moderate(session: Session | None) -> bool:
    """The moderation overview is limited to moderators and admins."""
    return session is not None and session.is_staff
