"""Root conftest: shared test configuration."""

import os

import pytest

# Ensure tests never reach a real node or mirror by accident
os.environ.setdefault("MIRROR_BASE_URL", "http://mirror.test/api")
os.environ.setdefault("RPC_URL", "http://rpc.test")
os.environ.setdefault("LOG_FORMAT", "text")

from donatechain.config import get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
