"""
Pytest configuration and fixtures for Anchor tests.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import pytest
import pytest_asyncio

from anchor.database.database import Database
from anchor.database.db_connection import MEMORY_PATH

from fakes import chat_response, moderation_response


@pytest_asyncio.fixture
async def database():
    """Fresh in-memory database with the full schema."""
    db = Database(MEMORY_PATH)
    assert await db.initialize()
    yield db
    await db.shutdown()


@pytest.fixture
def openai_client() -> MagicMock:
    """OpenAI client double: classifier says clean, filter says ALLOW."""
    client = MagicMock()
    client.moderations.create = AsyncMock(return_value=moderation_response(flagged=False))
    client.chat.completions.create = AsyncMock(return_value=chat_response("ALLOW"))
    client.close = AsyncMock()
    return client
