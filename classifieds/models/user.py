# classifieds/models/user.py

"""Identity and session models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Account role as reported by the backend."""

    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"

    @property
    def is_staff(self) -> bool:
        """Moderators and admins may redact any listing."""
        return self in (Role.MODERATOR, Role.ADMIN)

    @classmethod
    def parse(cls, value: object) -> "Role":
        """Map a backend role string to a Role, defaulting to USER."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.USER


@dataclass(frozen=True)
class User:
    """Authenticated identity of a marketplace account."""

    id: int
    email: str
    name: str
    role: Role = Role.USER

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "User":
        """Build a User from a backend record.

        The auth endpoints report ``role`` while the admin listing uses
        ``user_role``; both are accepted.
        """
        return cls(
            id=int(data["id"]),
            email=str(data.get("email", "")),
            name=str(data.get("name", "")),
            role=Role.parse(data.get("role", data.get("user_role"))),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise for the local identity file."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
        }


@dataclass(frozen=True)
class Session:
    """Cached identity plus the opaque bearer credential."""

    user: User
    credential: str

    @property
    def is_staff(self) -> bool:
        return self.user.role.is_staff
