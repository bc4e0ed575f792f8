# classifieds/client/listing_client.py

"""Typed listing operations on top of the retry-governed transport.

Reads are idempotent and go through the full retry schedule.  Writes
(create, update, delete, moderation delete) are sent exactly once: a
blind retry of a non-idempotent write could post a listing twice.
"""

import logging
from urllib.parse import quote

from curl_cffi import requests as curl_requests

from classifieds.client.errors import (
    NotFound,
    RequestRejected,
    TransportError,
    Unauthenticated,
    ValidationError,
)
from classifieds.client.responses import (
    MALFORMED_RECORD,
    ensure_success,
    error_message,
    json_body,
    json_list,
)
from classifieds.client.transport import (
    ApiRequest,
    RetryTransport,
    accept_any,
)
from classifieds.config.settings import Settings
from classifieds.models.category import Category
from classifieds.models.listing import (
    AnyListing,
    ListingDraft,
    listing_from_api,
)

logger = logging.getLogger("classifieds.listings")


def _segment(value: object) -> str:
    """Quote an opaque path segment (category keys are not a closed set)."""
    return quote(str(value), safe="")


def _found_or_missing(resp: curl_requests.Response) -> bool:
    """A 404 on a single-listing fetch is an answer, not a failure."""
    return 200 <= resp.status_code < 300 or resp.status_code == 404


def parse_listings(
    records: list[object], category: str = ""
) -> list[AnyListing]:
    """Build listings from backend records, skipping malformed ones.

    ``category`` applies to records that do not name their own.
    """
    listings: list[AnyListing] = []
    for record in records:
        try:
            listings.append(
                listing_from_api(record, category)  # type: ignore[arg-type]
            )
        except MALFORMED_RECORD as exc:
            logger.warning(
                "Skipping malformed listing record in '%s': %r (%s)",
                category,
                exc,
                type(exc).__name__,
            )
    return listings


def _require_category(category: str | None, message: str) -> str:
    if not category or not str(category).strip():
        raise ValidationError(message)
    return str(category).strip()


def _require_credential(credential: str | None, action: str) -> str:
    if not credential:
        logger.info("Blocked %s: no cached credential", action)
        raise Unauthenticated(f"You must be logged in to {action}")
    return credential


class ListingClient:
    """Listing repository backed by the REST API."""

    def __init__(self, transport: RetryTransport) -> None:
        self.transport = transport

    # ── Reads ────────────────────────────────────────────

    async def list_categories(self) -> list[Category]:
        """Fetch categories, degrading to the static set when unreachable."""
        try:
            resp = await self.transport.send(
                ApiRequest("GET", "/categories")
            )
        except TransportError:
            logger.warning(
                "Categories unavailable, using %d fallback categories",
                len(Settings.FALLBACK_CATEGORIES),
            )
            return [
                Category(
                    key=c["key"],
                    display_name=c["name"],
                    listing_count=0,
                    fallback=True,
                )
                for c in Settings.FALLBACK_CATEGORIES
            ]

        body = json_list(resp)
        categories: list[Category] = []
        for item in body:
            try:
                categories.append(Category.from_api(item))
            except MALFORMED_RECORD as exc:
                logger.warning("Skipping malformed category record: %r", exc)
        logger.info("Loaded %d categories", len(categories))
        return categories

    async def list_by_category(self, category: str) -> list[AnyListing]:
        """Fetch every listing in ``category``; an empty list is valid."""
        key = _require_category(category, "No category specified")
        resp = await self.transport.send(
            ApiRequest("GET", f"/listings/{_segment(key)}")
        )
        listings = parse_listings(json_list(resp), key)
        logger.info("Loaded %d listings from '%s'", len(listings), key)
        return listings

    async def get_by_id(
        self, category: str, listing_id: int | str
    ) -> AnyListing:
        """Fetch one listing.

        Raises:
            ValidationError: If the category or id is missing.
            NotFound: If the backend reports no such listing.
            TransportError: If every attempt failed.
        """
        key = _require_category(category, "Invalid listing")
        if listing_id is None or str(listing_id).strip() == "":
            raise ValidationError("Invalid listing")

        resp = await self.transport.send(
            ApiRequest("GET", f"/{_segment(key)}/{_segment(listing_id)}"),
            is_success=_found_or_missing,
        )
        body = json_body(resp)
        if resp.status_code == 404 or not isinstance(body, dict):
            logger.info("Listing %s/%s not found", key, listing_id)
            raise NotFound()
        try:
            return listing_from_api(body, key)
        except MALFORMED_RECORD as exc:
            logger.warning(
                "Malformed listing record for %s/%s: %r", key, listing_id, exc
            )
            raise RequestRejected(
                "Invalid listing data from server", status=resp.status_code
            ) from exc

    # ── Writes (single attempt) ──────────────────────────

    async def _send_once(self, request: ApiRequest) -> dict[str, object]:
        resp = await self.transport.send(
            request, max_attempts=1, is_success=accept_any
        )
        if resp.status_code == 404:
            raise NotFound(error_message(resp))
        return ensure_success(resp)

    async def create(
        self,
        category: str,
        draft: ListingDraft,
        credential: str | None,
    ) -> int:
        """Post a new listing and return its id.

        The category is checked first, then the credential, so a form
        missing both reports the category problem without a request.
        """
        key = _require_category(category, "Please select a category")
        token = _require_credential(credential, "post a listing")
        payload = _validated_payload(draft)

        body = await self._send_once(
            ApiRequest(
                "POST",
                f"/listings/{_segment(key)}",
                json=payload,
                credential=token,
            )
        )
        try:
            listing_id = int(body["id"])  # type: ignore[call-overload]
        except MALFORMED_RECORD as exc:
            raise RequestRejected(
                "Backend did not return a listing id"
            ) from exc
        logger.info("Created listing %s/%d", key, listing_id)
        return listing_id

    async def update(
        self,
        category: str,
        listing_id: int,
        patch: ListingDraft,
        credential: str | None,
    ) -> None:
        """Replace a listing's content (owner only, enforced server-side)."""
        key = _require_category(category, "Invalid listing")
        token = _require_credential(credential, "edit posts")
        payload = _validated_payload(patch)

        body = await self._send_once(
            ApiRequest(
                "PUT",
                f"/posts/{_segment(key)}/{_segment(listing_id)}",
                json=payload,
                credential=token,
            )
        )
        _require_success_flag(body, "Failed to update post")
        logger.info("Updated listing %s/%s", key, listing_id)

    async def delete(
        self, category: str, listing_id: int, credential: str | None
    ) -> None:
        """Hard-delete an owned listing; irreversible."""
        key = _require_category(category, "Invalid listing")
        token = _require_credential(credential, "delete posts")

        body = await self._send_once(
            ApiRequest(
                "DELETE",
                f"/posts/{_segment(key)}/{_segment(listing_id)}",
                credential=token,
            )
        )
        _require_success_flag(body, "Failed to delete post")
        logger.info("Deleted listing %s/%s", key, listing_id)

    async def moderate_delete(
        self, category: str, listing_id: int, credential: str | None
    ) -> None:
        """Redact a listing as a moderator or admin; irreversible."""
        key = _require_category(category, "Invalid listing")
        token = _require_credential(credential, "moderate posts")

        body = await self._send_once(
            ApiRequest(
                "POST",
                "/admin/posts/delete",
                json={"category": key, "post_id": listing_id},
                credential=token,
            )
        )
        _require_success_flag(body, "Failed to delete post")
        logger.info("Redacted listing %s/%s by moderation", key, listing_id)


def _validated_payload(draft: ListingDraft) -> dict[str, object]:
    if not draft.title or not draft.title.strip():
        raise ValidationError("Please enter a title")
    try:
        return draft.to_payload()
    except ValueError as exc:
        raise ValidationError(
            "Price must be a non-negative number"
        ) from exc


def _require_success_flag(body: dict[str, object], fallback: str) -> None:
    if not body.get("success"):
        message = body.get("error") or fallback
        raise RequestRejected(str(message))
