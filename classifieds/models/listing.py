# classifieds/models/listing.py

"""Listing data models and their moderation variants."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

from classifieds.config.settings import Settings


class ModerationState(str, Enum):
    """Derived moderation state of a listing."""

    ACTIVE = "active"
    REDACTED = "redacted"


def parse_price(value: object) -> float:
    """Convert a submitted or stored price to a non-negative float.

    Missing or blank prices mean "free" and become ``0.0``.

    Raises:
        ValueError: If the value is not numeric or is negative.
    """
    if value is None:
        return 0.0
    if isinstance(value, str):
        value = value.strip().lstrip("$").replace(",", "")
        if not value:
            return 0.0
    price = float(value)  # type: ignore[arg-type]
    if price < 0 or price != price:
        raise ValueError(f"price must be a non-negative number, got {value!r}")
    return price


def parse_timestamp(value: object) -> datetime | None:
    """Parse a backend timestamp (ISO 8601 or ``YYYY-MM-DD HH:MM:SS``)."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


@dataclass(frozen=True)
class Listing:
    """An active classified post within a category."""

    id: int
    category: str
    title: str
    owner_user_id: int
    description: str = ""
    price: float = 0.0
    location: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    created_at: datetime | None = None
    last_edited_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError("Listing price must be >= 0")

    @property
    def moderation_state(self) -> ModerationState:
        return ModerationState.ACTIVE

    @property
    def deleted_by_moderation(self) -> bool:
        return False

    @property
    def is_free(self) -> bool:
        return self.price == 0

    def redact(self) -> "RedactedListing":
        """Produce the terminal moderation variant of this listing.

        Identity, ownership and timestamps survive; every piece of
        user-supplied content is replaced or dropped.
        """
        return RedactedListing(
            id=self.id,
            category=self.category,
            owner_user_id=self.owner_user_id,
            created_at=self.created_at,
            last_edited_at=self.last_edited_at,
        )


@dataclass(frozen=True)
class RedactedListing:
    """A listing removed by moderation: still addressable, content gone."""

    id: int
    category: str
    owner_user_id: int
    created_at: datetime | None = None
    last_edited_at: datetime | None = None
    title: str = field(default=Settings.REDACTED_TITLE, init=False)
    description: str = field(
        default=Settings.REDACTED_DESCRIPTION, init=False
    )
    price: float = field(default=0.0, init=False)
    location: str = field(default="", init=False)
    contact_email: None = field(default=None, init=False)
    contact_phone: None = field(default=None, init=False)

    @property
    def moderation_state(self) -> ModerationState:
        return ModerationState.REDACTED

    @property
    def deleted_by_moderation(self) -> bool:
        return True

    @property
    def is_free(self) -> bool:
        return True


AnyListing = Union[Listing, RedactedListing]


@dataclass
class ListingDraft:
    """Content submitted when creating or editing a listing."""

    title: str
    description: str = ""
    price: float | str | None = None
    location: str = ""
    contact_email: str = ""
    contact_phone: str = ""

    @classmethod
    def from_listing(cls, listing: Listing) -> "ListingDraft":
        """Pre-fill a draft with a listing's current content."""
        return cls(
            title=listing.title,
            description=listing.description,
            price=listing.price,
            location=listing.location,
            contact_email=listing.contact_email,
            contact_phone=listing.contact_phone,
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialise to the backend's request body.

        Raises:
            ValueError: If the price is not a non-negative number.
        """
        return {
            "title": self.title,
            "description": self.description,
            "price": parse_price(self.price),
            "location": self.location,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
        }


def _is_redacted_record(data: dict[str, Any]) -> bool:
    if data.get("deleted_by_moderation") or data.get("is_deleted"):
        return True
    return (
        data.get("title") == Settings.REDACTED_TITLE
        or data.get("description") == Settings.REDACTED_DESCRIPTION
    )


def listing_from_api(data: dict[str, Any], category: str) -> AnyListing:
    """Build the right listing variant from a backend record.

    Records carrying the moderation placeholders (or an explicit
    deleted-by-moderation flag) become :class:`RedactedListing`.
    ``category`` is used when the record does not name its own.
    """
    record_category = str(data.get("category") or category)
    owner = int(data.get("user_id") or data.get("owner_user_id") or 0)
    created_at = parse_timestamp(data.get("created_at"))
    last_edited_at = parse_timestamp(data.get("last_edited_at"))

    if _is_redacted_record(data):
        return RedactedListing(
            id=int(data["id"]),
            category=record_category,
            owner_user_id=owner,
            created_at=created_at,
            last_edited_at=last_edited_at,
        )

    return Listing(
        id=int(data["id"]),
        category=record_category,
        title=str(data.get("title") or ""),
        owner_user_id=owner,
        description=str(data.get("description") or ""),
        price=parse_price(data.get("price")),
        location=str(data.get("location") or ""),
        contact_email=str(data.get("contact_email") or ""),
        contact_phone=str(data.get("contact_phone") or ""),
        created_at=created_at,
        last_edited_at=last_edited_at,
    )
