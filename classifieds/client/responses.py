# classifieds/client/responses.py

"""Helpers for reading backend response bodies."""

import logging
from typing import Any

from curl_cffi import requests as curl_requests

from classifieds.client.errors import RequestRejected

logger = logging.getLogger("classifieds.client")

# Raised by the model constructors on records missing fields or holding
# values of the wrong type.
MALFORMED_RECORD = (AttributeError, KeyError, TypeError, ValueError)


def json_body(resp: curl_requests.Response) -> Any:
    """Decode a JSON body, returning ``None`` for empty or non-JSON bodies."""
    try:
        return resp.json()
    except ValueError:
        logger.debug(
            "Non-JSON body with HTTP %d: %.80s",
            resp.status_code,
            resp.text,
        )
        return None


def error_message(resp: curl_requests.Response) -> str | None:
    """Extract the ``{error: message}`` text from a failed response."""
    body = json_body(resp)
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return None


def ensure_success(resp: curl_requests.Response) -> dict[str, Any]:
    """Return the body of a 2xx response, else raise RequestRejected.

    The backend's own error text is passed through verbatim.
    """
    if 200 <= resp.status_code < 300:
        body = json_body(resp)
        return body if isinstance(body, dict) else {}
    message = error_message(resp) or f"HTTP {resp.status_code}"
    logger.warning(
        "Request rejected with HTTP %d: %s", resp.status_code, message
    )
    raise RequestRejected(message, status=resp.status_code)


def json_list(resp: curl_requests.Response) -> list[Any]:
    """Return a JSON array body; an empty body reads as no records.

    Raises:
        RequestRejected: If the backend sent something other than an array.
    """
    body = json_body(resp)
    if body is None:
        return []
    if not isinstance(body, list):
        logger.warning(
            "Expected a JSON array with HTTP %d, got %s",
            resp.status_code,
            type(body).__name__,
        )
        raise RequestRejected(
            "Invalid data from server", status=resp.status_code
        )
    return body
