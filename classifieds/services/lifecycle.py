# classifieds/services/lifecycle.py

"""Listing lifecycle and moderation state machine.

A listing is ``ACTIVE`` until it reaches one of two terminal states:

* ``HARD_DELETED`` by its owner: the record is gone and later lookups
  report not-found.
* ``REDACTED`` by a moderator or admin: the record stays addressable
  but every piece of content is replaced with fixed placeholders.

Editing keeps a listing ``ACTIVE`` (the backend refreshes
``last_edited_at``).  Nothing leaves a terminal state.

The lifecycle also keeps the client-side view consistent with the
backend after each successful mutation, and allows at most one
in-flight mutating request per action and listing.
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum

from classifieds.client.errors import (
    ActionInProgress,
    ActionNotPermitted,
    InvalidTransition,
    NotFound,
    Unauthenticated,
)
from classifieds.client.listing_client import ListingClient
from classifieds.models.listing import (
    AnyListing,
    Listing,
    ListingDraft,
    ModerationState,
    RedactedListing,
)
from classifieds.models.user import Session
from classifieds.services.authorization import (
    Capability,
    resolve_capabilities,
)

logger = logging.getLogger("classifieds.lifecycle")

ListingKey = tuple[str, int]

DELETE_CONFIRMATION = (
    "Are you sure you want to delete this post? "
    "This action cannot be undone."
)
MODERATION_CONFIRMATION = (
    "Are you sure you want to delete this post? Its content will be "
    "redacted and the post marked as deleted by moderation; the post "
    "itself is not removed. This cannot be reversed."
)

_POST_ACTION = "post"


class ListingState(str, Enum):
    """Lifecycle state of a listing as seen by this client."""

    ACTIVE = "active"
    REDACTED = "redacted"
    HARD_DELETED = "hard_deleted"


# Transitions offered from each state, and where they lead.
TRANSITIONS: dict[ListingState, dict[Capability, ListingState]] = {
    ListingState.ACTIVE: {
        Capability.EDIT: ListingState.ACTIVE,
        Capability.DELETE: ListingState.HARD_DELETED,
        Capability.MODERATE_DELETE: ListingState.REDACTED,
    },
    ListingState.REDACTED: {},
    ListingState.HARD_DELETED: {},
}


def key_of(listing: AnyListing) -> ListingKey:
    return (listing.category, listing.id)


class ListingLifecycle:
    """Runs listing transitions for one session.

    Args:
        client: Listing repository client.
        session: The cached session, or ``None`` when anonymous.
        confirm: Asked before each destructive transition; returning
            ``False`` cancels it without contacting the backend.
    """

    def __init__(
        self,
        client: ListingClient,
        session: Session | None,
        confirm: Callable[[str], bool],
    ) -> None:
        self.client = client
        self.session = session
        self.confirm = confirm
        self.cache: dict[ListingKey, AnyListing] = {}
        self._hard_deleted: set[ListingKey] = set()
        self._in_flight: set[tuple[str, ListingKey]] = set()

    # ── State ────────────────────────────────────────────

    def state_of(self, listing: AnyListing) -> ListingState:
        if key_of(listing) in self._hard_deleted:
            return ListingState.HARD_DELETED
        if listing.moderation_state is ModerationState.REDACTED:
            return ListingState.REDACTED
        return ListingState.ACTIVE

    def offered_actions(self, listing: AnyListing) -> frozenset[Capability]:
        """Actions that are both permitted and offered by the state."""
        offered = TRANSITIONS[self.state_of(listing)].keys()
        return resolve_capabilities(self.session, listing) & frozenset(
            offered
        )

    def is_busy(self, action: Capability | str, key: ListingKey) -> bool:
        """True while the affordance for ``action`` must stay disabled."""
        return (_action_name(action), key) in self._in_flight

    @property
    def _credential(self) -> str | None:
        return self.session.credential if self.session else None

    def _authorize(
        self, listing: AnyListing, action: Capability
    ) -> None:
        state = self.state_of(listing)
        if state is ListingState.HARD_DELETED:
            raise NotFound()
        if action not in TRANSITIONS[state]:
            raise InvalidTransition()
        if action not in resolve_capabilities(self.session, listing):
            if self.session is None:
                raise Unauthenticated()
            raise ActionNotPermitted()

    @contextmanager
    def _in_flight_guard(
        self, action: Capability | str, key: ListingKey
    ) -> Iterator[None]:
        token = (_action_name(action), key)
        if token in self._in_flight:
            raise ActionInProgress()
        self._in_flight.add(token)
        try:
            yield
        finally:
            self._in_flight.discard(token)

    # ── Reads ────────────────────────────────────────────

    async def open(self, category: str, listing_id: int) -> AnyListing:
        """Fetch a listing and remember it as the current view."""
        key = (str(category or "").strip(), int(listing_id))
        if key in self._hard_deleted:
            raise NotFound()
        listing = await self.client.get_by_id(category, listing_id)
        self.cache[key_of(listing)] = listing
        return listing

    # ── Transitions ──────────────────────────────────────

    async def post(self, category: str, draft: ListingDraft) -> int:
        """Create a listing in ``category`` and return its id."""
        key = (str(category or "").strip(), 0)
        with self._in_flight_guard(_POST_ACTION, key):
            return await self.client.create(
                category, draft, self._credential
            )

    async def edit(self, listing: AnyListing, patch: ListingDraft) -> AnyListing:
        """Apply ``patch`` as the owner and return the refreshed listing.

        If the follow-up fetch fails the update has still been applied;
        the stale cache entry is dropped before the error propagates.
        """
        self._authorize(listing, Capability.EDIT)
        key = key_of(listing)
        with self._in_flight_guard(Capability.EDIT, key):
            await self.client.update(
                listing.category, listing.id, patch, self._credential
            )

        self.cache.pop(key, None)
        refreshed = await self.client.get_by_id(listing.category, listing.id)
        self.cache[key] = refreshed
        logger.info(
            "Listing %s/%d edited, last_edited_at=%s",
            listing.category,
            listing.id,
            refreshed.last_edited_at,
        )
        return refreshed

    async def delete(self, listing: AnyListing) -> bool:
        """Hard-delete an owned listing after confirmation.

        Returns:
            ``True`` once deleted, ``False`` if the user declined.
        """
        self._authorize(listing, Capability.DELETE)
        if not self.confirm(DELETE_CONFIRMATION):
            logger.info("Delete of %s/%d cancelled", *key_of(listing))
            return False

        key = key_of(listing)
        with self._in_flight_guard(Capability.DELETE, key):
            await self.client.delete(
                listing.category, listing.id, self._credential
            )

        self._hard_deleted.add(key)
        self.cache.pop(key, None)
        logger.info("Listing %s/%d hard-deleted", *key)
        return True

    async def moderate_delete(
        self, listing: AnyListing
    ) -> RedactedListing | None:
        """Redact a listing as staff after confirmation.

        Returns:
            The redacted variant, or ``None`` if the user declined.
        """
        self._authorize(listing, Capability.MODERATE_DELETE)
        if not isinstance(listing, Listing):
            raise InvalidTransition()
        if not self.confirm(MODERATION_CONFIRMATION):
            logger.info("Moderation of %s/%d cancelled", *key_of(listing))
            return None

        key = key_of(listing)
        with self._in_flight_guard(Capability.MODERATE_DELETE, key):
            await self.client.moderate_delete(
                listing.category, listing.id, self._credential
            )

        redacted = listing.redact()
        self.cache[key] = redacted
        logger.info("Listing %s/%d redacted by moderation", *key)
        return redacted


def _action_name(action: Capability | str) -> str:
    return action.value if isinstance(action, Capability) else action
