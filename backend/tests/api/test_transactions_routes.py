"""Integration Tests: mirror routes: listing, lookup, 404 shapes, banner, health.

Invariants:
    - GET /api/transactions returns five records in id order with an exact summary
    - GET /api/transactions/{id} returns one record, or 404 {success:false, error, id}
    - Unknown paths return 404 {success:false, error, path}
    - The MirrorClient parses what the routes serve (shared wire contract)
"""

import httpx
import pytest

from donatechain.core.domain_types import SourceId
from donatechain.core.errors import ResourceNotFoundError
from donatechain.infrastructure.mirror_client import MirrorClient
from donatechain.main import app


async def test_list_transactions(client):
    response = await client.get("/api/transactions")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    transactions = body["data"]["transactions"]
    assert [t["id"] for t in transactions] == [1, 2, 3, 4, 5]
    assert transactions[0]["amount"] == "0.5"
    assert "txHash" in transactions[0]
    assert transactions[0]["timestamp"].startswith("2026-01-25T10:30:00")


async def test_summary_is_exact(client):
    body = (await client.get("/api/transactions")).json()
    summary = body["data"]["summary"]
    assert summary == {"totalTransactions": 5, "totalAmount": "2.60", "currency": "ETH"}


async def test_get_transaction(client):
    response = await client.get("/api/transactions/3")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["id"] == 3
    assert body["data"]["amount"] == "1.0"


@pytest.mark.parametrize("tx_id", ["99", "abc", "0"])
async def test_get_transaction_not_found(client, tx_id):
    response = await client.get(f"/api/transactions/{tx_id}")
    assert response.status_code == 404
    assert response.json() == {
        "success": False, "error": "Transaction not found", "id": tx_id,
    }


async def test_unknown_path(client):
    response = await client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {
        "success": False, "error": "Endpoint not found", "path": "/api/nothing-here",
    }


async def test_service_banner(client):
    body = (await client.get("/")).json()
    assert body["success"] is True
    assert body["endpoints"]["transactions"] == "/api/transactions"


async def test_health(client):
    response = await client.get("/api/v1/health/")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_mirror_client_reads_served_routes():
    http = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://mirror.test/api",
    )
    async with MirrorClient("http://mirror.test/api", client=http) as mirror:
        records = await mirror.list_donations()
        assert len(records) == 5
        assert records[0].source is SourceId.MIRROR
        assert sum(r.amount_wei for r in records) == 2_600_000_000_000_000_000

        tx = await mirror.get_transaction(2)
        assert tx.amount == "0.25"

        with pytest.raises(ResourceNotFoundError):
            await mirror.get_transaction(42)
