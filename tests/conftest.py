# tests/conftest.py

"""Shared pytest fixtures for all client tests."""

from collections.abc import Generator
from unittest.mock import AsyncMock, patch

import pytest


@pytest.fixture(autouse=True)
def mock_backoff_sleep() -> Generator[AsyncMock, None, None]:
    """Patch the transport's backoff sleep so retry loops run instantly."""
    with patch(
        "classifieds.client.transport.asyncio.sleep",
        new_callable=AsyncMock,
    ) as mock_sleep:
        yield mock_sleep
