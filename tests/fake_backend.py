# tests/fake_backend.py

"""In-memory stand-in for the classifieds REST API.

Plugs into :class:`RetryTransport` in place of the curl_cffi session and
answers the same routes the real backend serves, so lifecycle scenarios
can run end to end without a network.
"""

from datetime import datetime, timedelta
from typing import Any
from unittest.mock import MagicMock
from urllib.parse import unquote

BASE_URL = "http://api.test"


def make_response(status: int, body: Any = None) -> MagicMock:
    """Build a curl_cffi-like response with ``status_code`` and ``json()``."""
    resp = MagicMock()
    resp.status_code = status
    if body is None:
        resp.json.side_effect = ValueError("no JSON body")
        resp.text = ""
    else:
        resp.json.return_value = body
        resp.text = str(body)
    return resp


class FakeBackend:
    """Minimal backend with users, tokens and per-category listings."""

    def __init__(self) -> None:
        self.listings: dict[tuple[str, int], dict[str, Any]] = {}
        self.users: dict[int, dict[str, Any]] = {}
        self.passwords: dict[str, str] = {}
        self.tokens: dict[str, int] = {}
        self.calls: list[tuple[str, str]] = []
        self.categories = ["electronics", "furniture", "cars_trucks"]
        self._next_id = 1
        self._clock = datetime(2026, 1, 1, 12, 0, 0)

    # ── Setup helpers ────────────────────────────────────

    def add_user(
        self,
        user_id: int,
        role: str = "user",
        email: str | None = None,
        password: str = "secret1",
    ) -> str:
        """Register a user and return a valid token for them."""
        email = email or f"user{user_id}@example.com"
        self.users[user_id] = {
            "id": user_id,
            "email": email,
            "name": f"User {user_id}",
            "role": role,
            "created_at": self._now(),
        }
        self.passwords[email] = password
        token = f"token-{user_id}"
        self.tokens[token] = user_id
        return token

    def add_listing(
        self, category: str, owner_id: int, **fields: Any
    ) -> int:
        listing_id = self._next_id
        self._next_id += 1
        record = {
            "id": listing_id,
            "title": "Old bike",
            "description": "Rides fine",
            "price": "25.00",
            "location": "Rochester",
            "contact_email": "seller@example.com",
            "contact_phone": "555-0100",
            "user_id": owner_id,
            "created_at": self._now(),
            "last_edited_at": None,
        }
        record.update(fields)
        self.listings[(category, listing_id)] = record
        return listing_id

    def _now(self) -> str:
        self._clock += timedelta(minutes=1)
        return self._clock.isoformat(sep=" ")

    @property
    def network_calls(self) -> int:
        return len(self.calls)

    # ── Session protocol used by RetryTransport ──────────

    async def close(self) -> None:
        return None

    async def request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        timeout: int | None = None,
    ) -> MagicMock:
        path = url[len(BASE_URL):]
        self.calls.append((method, path))
        parts = [unquote(p) for p in path.strip("/").split("/")]
        user = self._user_for(headers or {})
        return self._route(method, parts, json or {}, user)

    def _user_for(self, headers: dict[str, str]) -> dict[str, Any] | None:
        auth = headers.get("Authorization", "")
        if not auth.startswith("Bearer "):
            return None
        user_id = self.tokens.get(auth[len("Bearer "):])
        return self.users.get(user_id) if user_id is not None else None

    def _route(
        self,
        method: str,
        parts: list[str],
        body: dict[str, Any],
        user: dict[str, Any] | None,
    ) -> MagicMock:
        if method == "GET" and parts == ["categories"]:
            return make_response(
                200,
                [
                    {
                        "name": c.replace("_", " & "),
                        "table_name": c,
                        "listing_count": sum(
                            1 for (cat, _) in self.listings if cat == c
                        ),
                    }
                    for c in self.categories
                ],
            )
        if method == "GET" and parts[0] == "listings" and len(parts) == 2:
            return make_response(
                200,
                [
                    dict(record)
                    for (cat, _), record in self.listings.items()
                    if cat == parts[1]
                ],
            )
        if method == "POST" and parts[0] == "listings" and len(parts) == 2:
            if user is None:
                return make_response(401, {"error": "Unauthorized"})
            listing_id = self.add_listing(parts[1], user["id"], **body)
            return make_response(201, {"id": listing_id})
        if parts[0] == "posts" and len(parts) == 3:
            return self._owner_mutation(method, parts, body, user)
        if method == "POST" and parts == ["admin", "posts", "delete"]:
            return self._moderate(body, user)
        if method == "GET" and parts == ["admin", "users"]:
            return self._admin_users(user)
        if method == "POST" and parts == ["auth", "login"]:
            return self._login(body)
        if method == "POST" and parts == ["auth", "signup"]:
            return self._signup(body)
        if method == "GET" and len(parts) == 2:
            record = self.listings.get((parts[0], int(parts[1])))
            if record is None:
                return make_response(404, {"error": "Post not found"})
            return make_response(200, dict(record))
        return make_response(404, {"error": "No such route"})

    def _owner_mutation(
        self,
        method: str,
        parts: list[str],
        body: dict[str, Any],
        user: dict[str, Any] | None,
    ) -> MagicMock:
        key = (parts[1], int(parts[2]))
        if user is None:
            return make_response(401, {"error": "Unauthorized"})
        record = self.listings.get(key)
        if record is None:
            return make_response(404, {"error": "Post not found"})
        if record["user_id"] != user["id"]:
            return make_response(
                403, {"error": "You can only modify your own posts"}
            )
        if method == "PUT":
            record.update(body)
            record["last_edited_at"] = self._now()
            return make_response(200, {"success": True})
        if method == "DELETE":
            del self.listings[key]
            return make_response(200, {"success": True})
        return make_response(405, {"error": "Method not allowed"})

    def _moderate(
        self, body: dict[str, Any], user: dict[str, Any] | None
    ) -> MagicMock:
        if user is None or user["role"] not in ("admin", "moderator"):
            return make_response(403, {"error": "Forbidden"})
        record = self.listings.get((body["category"], int(body["post_id"])))
        if record is None:
            return make_response(404, {"error": "Post not found"})
        record.update(
            title="[DELETED]",
            description="This post was deleted by moderation",
            price="0.00",
            location="",
            contact_email="",
            contact_phone="",
        )
        return make_response(200, {"success": True})

    def _admin_users(self, user: dict[str, Any] | None) -> MagicMock:
        if user is None:
            return make_response(401, {"error": "Unauthorized"})
        if user["role"] not in ("admin", "moderator"):
            return make_response(403, {"error": "Admin access required"})
        result = []
        for u in self.users.values():
            posts = [
                {**record, "category": cat}
                for (cat, _), record in self.listings.items()
                if record["user_id"] == u["id"]
            ]
            result.append(
                {
                    "id": u["id"],
                    "name": u["name"],
                    "email": u["email"],
                    "user_role": u["role"],
                    "created_at": u["created_at"],
                    "posts": posts,
                }
            )
        return make_response(200, result)

    def _login(self, body: dict[str, Any]) -> MagicMock:
        email = body.get("email")
        if self.passwords.get(email) != body.get("password"):
            return make_response(401, {"error": "Invalid credentials"})
        user = next(u for u in self.users.values() if u["email"] == email)
        token = f"token-{user['id']}"
        return make_response(200, {"user": dict(user), "token": token})

    def _signup(self, body: dict[str, Any]) -> MagicMock:
        if body["email"] in self.passwords:
            return make_response(400, {"error": "Email already registered"})
        user_id = max(self.users, default=0) + 1
        self.add_user(user_id, email=body["email"], password=body["password"])
        self.users[user_id]["name"] = body["name"]
        return make_response(201, {"user": dict(self.users[user_id])})
