# classifieds/client/transport.py

"""Retry-governed HTTP transport for the classifieds backend."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from types import TracebackType
from typing import Any

from curl_cffi import requests as curl_requests

from classifieds.client.errors import TransportError
from classifieds.config.settings import Settings

logger = logging.getLogger("classifieds.transport")

SuccessCheck = Callable[[curl_requests.Response], bool]


def is_2xx(resp: curl_requests.Response) -> bool:
    """Default success check: any 2xx status."""
    return 200 <= resp.status_code < 300


def accept_any(resp: curl_requests.Response) -> bool:
    """Treat every HTTP answer as a completed exchange.

    Used by single-shot mutations, whose callers inspect the status
    themselves.
    """
    return True


def backoff_delay(
    attempt: int,
    base_ms: int = Settings.BACKOFF_BASE_MS,
    cap_ms: int = Settings.BACKOFF_CAP_MS,
) -> float:
    """Seconds to wait after failed attempt ``attempt`` (1-based).

    ``min(base * 2^(attempt-1), cap)``, so 1s, 2s, 4s, 5s, 5s with
    the default settings.  No jitter.
    """
    return min(base_ms * 2 ** (attempt - 1), cap_ms) / 1000


@dataclass
class ApiRequest:
    """One backend call, described independently of its payload."""

    method: str
    path: str
    json: dict[str, Any] | None = None
    credential: str | None = None

    def headers(self) -> dict[str, str]:
        """Default headers plus the bearer credential when present."""
        headers = dict(Settings.DEFAULT_HEADERS)
        if self.credential:
            headers["Authorization"] = f"Bearer {self.credential}"
        return headers

    def describe(self) -> str:
        """Short label for log lines; never includes the credential."""
        return f"{self.method} {self.path}"


class RetryTransport:
    """Sends requests with bounded retry and exponential backoff.

    Both a network-level exception and a response rejected by the
    caller's success check count as a failed attempt.  After the last
    attempt the failure surfaces as :class:`TransportError`, chained to
    the last exception when there was one.
    """

    def __init__(
        self,
        base_url: str | None = None,
        max_attempts: int | None = None,
        backoff_base_ms: int | None = None,
        backoff_cap_ms: int | None = None,
        session: curl_requests.AsyncSession | None = None,
    ) -> None:
        self.base_url = (base_url or Settings.API_URL).rstrip("/")
        self.max_attempts = max_attempts or Settings.MAX_ATTEMPTS
        self.backoff_base_ms = (
            backoff_base_ms or Settings.BACKOFF_BASE_MS
        )
        self.backoff_cap_ms = backoff_cap_ms or Settings.BACKOFF_CAP_MS
        self.session = session
        self._owns_session = session is None
        self._request_timeout: int = Settings.REQUEST_TIMEOUT

    async def __aenter__(self) -> "RetryTransport":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _get_session(self) -> curl_requests.AsyncSession:
        """Get or create the HTTP session."""
        if self.session is None:
            self.session = curl_requests.AsyncSession()
            self._owns_session = True
        return self.session

    async def close(self) -> None:
        """Close the HTTP session if we own it."""
        if self._owns_session and self.session is not None:
            await self.session.close()
            self.session = None

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def send(
        self,
        request: ApiRequest,
        max_attempts: int | None = None,
        is_success: SuccessCheck = is_2xx,
    ) -> curl_requests.Response:
        """Send ``request``, retrying failed attempts with backoff.

        Args:
            request: The call to make.
            max_attempts: Total attempts, including the first one.
                Defaults to the transport's configured value.
            is_success: Decides which HTTP answers end the sequence.

        Returns:
            The first response accepted by ``is_success``.

        Raises:
            TransportError: When every attempt failed.
            ValueError: If ``max_attempts`` is below 1.
        """
        attempts = (
            self.max_attempts if max_attempts is None else max_attempts
        )
        if attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        session = self._get_session()
        url = self.url_for(request.path)
        last_exc: Exception | None = None
        last_status: int | None = None

        for attempt in range(1, attempts + 1):
            try:
                resp = await session.request(
                    request.method,
                    url,
                    headers=request.headers(),
                    json=request.json,
                    timeout=self._request_timeout,
                )
            except Exception as exc:
                last_exc, last_status = exc, None
                logger.warning(
                    "[transport] %s request error on attempt %d/%d: %s",
                    request.describe(),
                    attempt,
                    attempts,
                    exc,
                )
            else:
                if is_success(resp):
                    if attempt > 1:
                        logger.info(
                            "[transport] %s succeeded on attempt %d",
                            request.describe(),
                            attempt,
                        )
                    return resp
                last_exc, last_status = None, resp.status_code
                logger.warning(
                    "[transport] %s HTTP %d on attempt %d/%d",
                    request.describe(),
                    resp.status_code,
                    attempt,
                    attempts,
                )

            if attempt < attempts:
                delay = backoff_delay(
                    attempt, self.backoff_base_ms, self.backoff_cap_ms
                )
                logger.debug(
                    "[transport] backing off %.1fs before attempt %d",
                    delay,
                    attempt + 1,
                )
                await asyncio.sleep(delay)

        logger.error(
            "[transport] %s failed after %d attempt(s)",
            request.describe(),
            attempts,
        )
        raise TransportError(
            attempts=attempts, last_status=last_status
        ) from last_exc
