"""API test fixtures: in-process HTTP client over the ASGI app.

Design Decisions:
    - httpx ASGITransport: no socket, no server process; lifespan not run (logging left to pytest)
"""

import pytest
from httpx import ASGITransport, AsyncClient

from donatechain.main import app


@pytest.fixture
async def client():
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://mirror.test",
    ) as ac:
        yield ac
