# tests/test_transport.py

"""Tests for the retry-governed transport."""

import unittest
from unittest.mock import AsyncMock, MagicMock, call, patch

from classifieds.client.errors import TransportError
from classifieds.client.transport import (
    ApiRequest,
    RetryTransport,
    accept_any,
    backoff_delay,
)
from tests.fake_backend import BASE_URL, make_response


def _session(*outcomes: object) -> MagicMock:
    """Session whose request() yields each outcome in turn."""
    session = MagicMock()
    session.request = AsyncMock(side_effect=list(outcomes))
    session.close = AsyncMock()
    return session


class TestBackoffDelay(unittest.TestCase):
    """Verify the exponential backoff schedule."""

    def test_default_schedule(self) -> None:
        """Delays double from 1s and are capped at 5s."""
        delays = [backoff_delay(k) for k in range(1, 7)]
        self.assertEqual(delays, [1.0, 2.0, 4.0, 5.0, 5.0, 5.0])

    def test_custom_base_and_cap(self) -> None:
        """Base and cap are honoured."""
        self.assertEqual(backoff_delay(1, 200, 1000), 0.2)
        self.assertEqual(backoff_delay(4, 200, 1000), 1.0)


class TestApiRequest(unittest.TestCase):
    """Verify request header construction."""

    def test_bearer_header_added(self) -> None:
        """A credential becomes an Authorization bearer header."""
        headers = ApiRequest("GET", "/x", credential="abc").headers()
        self.assertEqual(headers["Authorization"], "Bearer abc")
        self.assertEqual(headers["Accept"], "application/json")

    def test_no_credential_no_header(self) -> None:
        """Anonymous requests carry no Authorization header."""
        self.assertNotIn("Authorization", ApiRequest("GET", "/x").headers())

    def test_describe_hides_credential(self) -> None:
        """The log label never contains the token."""
        label = ApiRequest("GET", "/x", credential="secret").describe()
        self.assertEqual(label, "GET /x")


class TestRetryTransport(unittest.IsolatedAsyncioTestCase):
    """Verify attempt counting and backoff behaviour."""

    async def test_success_first_attempt(self) -> None:
        """A 2xx on the first attempt returns immediately."""
        session = _session(make_response(200, {"ok": True}))
        transport = RetryTransport(base_url=BASE_URL, session=session)

        resp = await transport.send(ApiRequest("GET", "/categories"))

        self.assertEqual(resp.status_code, 200)
        session.request.assert_awaited_once()
        args, kwargs = session.request.call_args
        self.assertEqual(args, ("GET", f"{BASE_URL}/categories"))
        self.assertIsNone(kwargs["json"])

    @patch(
        "classifieds.client.transport.asyncio.sleep",
        new_callable=AsyncMock,
    )
    async def test_always_failing_makes_exactly_n_attempts(
        self, mock_sleep: AsyncMock
    ) -> None:
        """N attempts, N-1 sleeps on the 1,2,4,5 schedule, then an error."""
        session = _session(*[make_response(503, None) for _ in range(5)])
        transport = RetryTransport(
            base_url=BASE_URL, max_attempts=5, session=session
        )

        with self.assertRaises(TransportError) as ctx:
            await transport.send(ApiRequest("GET", "/categories"))

        self.assertEqual(session.request.await_count, 5)
        self.assertEqual(ctx.exception.attempts, 5)
        self.assertEqual(ctx.exception.last_status, 503)
        self.assertEqual(
            mock_sleep.await_args_list,
            [call(1.0), call(2.0), call(4.0), call(5.0)],
        )

    async def test_network_errors_are_retried(self) -> None:
        """Exceptions count as failed attempts and chain on the error."""
        boom = ConnectionError("refused")
        session = _session(boom, boom, boom)
        transport = RetryTransport(
            base_url=BASE_URL, max_attempts=3, session=session
        )

        with self.assertRaises(TransportError) as ctx:
            await transport.send(ApiRequest("GET", "/categories"))

        self.assertEqual(session.request.await_count, 3)
        self.assertIs(ctx.exception.__cause__, boom)
        self.assertIsNone(ctx.exception.last_status)

    async def test_recovers_after_failures(self) -> None:
        """A later 2xx ends the sequence early."""
        session = _session(
            ConnectionError("refused"),
            make_response(500, {"error": "db"}),
            make_response(200, []),
            make_response(200, []),
        )
        transport = RetryTransport(base_url=BASE_URL, session=session)

        resp = await transport.send(ApiRequest("GET", "/categories"))

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(session.request.await_count, 3)

    async def test_per_call_override(self) -> None:
        """max_attempts=1 sends exactly once."""
        session = _session(make_response(500, None), make_response(200, {}))
        transport = RetryTransport(base_url=BASE_URL, session=session)

        with self.assertRaises(TransportError):
            await transport.send(ApiRequest("POST", "/x"), max_attempts=1)
        self.assertEqual(session.request.await_count, 1)

    async def test_accept_any_returns_error_status(self) -> None:
        """A caller-owned success check can accept a 4xx answer."""
        session = _session(make_response(403, {"error": "Forbidden"}))
        transport = RetryTransport(base_url=BASE_URL, session=session)

        resp = await transport.send(
            ApiRequest("POST", "/x"), max_attempts=1, is_success=accept_any
        )
        self.assertEqual(resp.status_code, 403)

    async def test_rejects_zero_attempts(self) -> None:
        """max_attempts below 1 is a programming error."""
        transport = RetryTransport(base_url=BASE_URL, session=_session())
        with self.assertRaises(ValueError):
            await transport.send(ApiRequest("GET", "/x"), max_attempts=0)

    async def test_injected_session_not_closed(self) -> None:
        """A caller-supplied session is left open on exit."""
        session = _session()
        async with RetryTransport(base_url=BASE_URL, session=session):
            pass
        session.close.assert_not_awaited()

    @patch("classifieds.client.transport.curl_requests.AsyncSession")
    async def test_owned_session_closed(self, mock_cls: MagicMock) -> None:
        """A lazily created session is closed with the transport."""
        owned = _session(make_response(200, []))
        mock_cls.return_value = owned
        async with RetryTransport(base_url=BASE_URL) as transport:
            await transport.send(ApiRequest("GET", "/categories"))
        owned.close.assert_awaited_once()

    def test_url_for_joins_cleanly(self) -> None:
        """Slashes between base URL and path are normalised."""
        transport = RetryTransport(base_url=f"{BASE_URL}/")
        self.assertEqual(
            transport.url_for("/listings/books"),
            f"{BASE_URL}/listings/books",
        )


if __name__ == "__main__":
    unittest.main()
