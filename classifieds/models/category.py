# classifieds/models/category.py

"""Category data model."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Category:
    """A named partition of listings.

    ``fallback`` is set on the static categories substituted while the
    backend is unreachable; their ``listing_count`` is always 0 and is
    not authoritative.
    """

    key: str
    display_name: str
    listing_count: int = 0
    fallback: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Category":
        """Build a Category from a ``/categories`` record."""
        key = str(data.get("table_name") or data.get("key") or "")
        return cls(
            key=key,
            display_name=str(data.get("name") or key),
            listing_count=int(data.get("listing_count") or 0),
        )
