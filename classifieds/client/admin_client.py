# classifieds/client/admin_client.py

"""Administrative overview: every user together with their posts."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from curl_cffi import requests as curl_requests

from classifieds.client.errors import RequestRejected, Unauthenticated
from classifieds.client.listing_client import parse_listings
from classifieds.client.responses import (
    MALFORMED_RECORD,
    ensure_success,
    json_list,
)
from classifieds.client.transport import ApiRequest, RetryTransport
from classifieds.models.listing import AnyListing, parse_timestamp
from classifieds.models.user import User

logger = logging.getLogger("classifieds.admin")


@dataclass
class UserPosts:
    """One account and the listings it has posted."""

    user: User
    joined_at: datetime | None = None
    posts: list[AnyListing] = field(
        default_factory=lambda: list[AnyListing]()
    )


def _below_server_error(resp: curl_requests.Response) -> bool:
    """Retry only 5xx; a 4xx (bad or missing rights) will not improve."""
    return resp.status_code < 500


def _user_posts_from_api(entry: dict[str, Any]) -> UserPosts:
    nested = entry.get("user")
    user_data = nested if isinstance(nested, dict) else entry
    # Each post names its own category.
    posts = parse_listings(list(entry.get("posts") or []))
    return UserPosts(
        user=User.from_api(user_data),
        joined_at=parse_timestamp(user_data.get("created_at")),
        posts=posts,
    )


class AdminClient:
    """Reads the moderator/admin overview endpoint."""

    def __init__(self, transport: RetryTransport) -> None:
        self.transport = transport

    async def list_users_with_posts(
        self, credential: str | None
    ) -> list[UserPosts]:
        """Fetch all users and their posts (admin or moderator token).

        Raises:
            Unauthenticated: Without a cached credential.
            RequestRejected: On a 4xx, or when a user record is malformed.
            TransportError: If every attempt hit a server error.
        """
        if not credential:
            raise Unauthenticated(
                "You must be logged in to access this page"
            )
        resp = await self.transport.send(
            ApiRequest("GET", "/admin/users", credential=credential),
            is_success=_below_server_error,
        )
        ensure_success(resp)
        try:
            users = [_user_posts_from_api(entry) for entry in json_list(resp)]
        except MALFORMED_RECORD as exc:
            logger.warning("Malformed user record from server: %r", exc)
            raise RequestRejected(
                "Invalid user data from server", status=resp.status_code
            ) from exc
        logger.info("Loaded %d users for moderation", len(users))
        return users
