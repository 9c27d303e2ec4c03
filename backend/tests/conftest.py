"""Shared test fixtures and configuration."""
import os

import pytest

# Settings are validated on first access; tests never reach a real server.
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./campaign_admin_test.db")


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
