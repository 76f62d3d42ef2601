"""
Shared test fixtures and configuration.
"""

import pytest
import pytest_asyncio
import os
from unittest.mock import AsyncMock, MagicMock

# Set test environment variables before importing app modules
os.environ.setdefault("DEBUG", "true")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_API_REQUESTS", "false")

from chatbroker.storage import Database, Stores  # noqa: E402

MEMORY_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def database():
    """Fresh in-memory database with the schema created."""
    db = Database(MEMORY_DB_URL)
    await db.init_schema()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def stores(database):
    """Stores over the in-memory database, default settings seeded, no env keys."""
    registry = Stores.create(database, {"openai": None, "anthropic": None})
    await registry.settings.seed_defaults()
    return registry


def mock_http_client(mock_client, json_body=None, post_side_effect=None):
    """
    Configure a patched ``httpx.AsyncClient`` class to return ``json_body``.

    Returns the client instance so tests can inspect ``post.call_args``.
    """
    mock_response = MagicMock()
    mock_response.json.return_value = json_body
    mock_response.raise_for_status = MagicMock()

    mock_instance = AsyncMock()
    if post_side_effect is not None:
        mock_instance.post.side_effect = post_side_effect
    else:
        mock_instance.post.return_value = mock_response
    mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_instance.__aexit__ = AsyncMock(return_value=False)
    mock_client.return_value = mock_instance
    return mock_instance


@pytest.fixture
def mock_http():
    """The ``mock_http_client`` helper, for use with ``patch("httpx.AsyncClient")``."""
    return mock_http_client
