import pytest
from httpx import AsyncClient

from friction_intel.errors import TransientServiceError


async def _ingest(client: AsyncClient, account_id, texts: list[str]) -> None:
    response = await client.post(
        f"/api/v1/accounts/{account_id}/cases",
        json={"cases": [{"source_id": f"500{i}", "text_content": t} for i, t in enumerate(texts)]},
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_analyze_batch(client: AsyncClient, account):
    await _ingest(client, account.id, ["Dashboard timeout again", "Please update my billing email to new@x.com"])

    response = await client.post("/api/v1/friction/analyze", json={"account_id": str(account.id)})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "completed"
    assert data["analyzed"] == 2
    assert data["friction_count"] == 1
    assert data["normal_support_count"] == 1
    assert data["remaining"] == 0


@pytest.mark.asyncio
async def test_analyze_distinguishes_needs_sync_and_caught_up(client: AsyncClient, account):
    response = await client.post("/api/v1/friction/analyze", json={"account_id": str(account.id)})
    assert response.json()["status"] == "needs_sync"

    await _ingest(client, account.id, ["hello"])
    await client.post("/api/v1/friction/analyze", json={"account_id": str(account.id)})

    response = await client.post("/api/v1/friction/analyze", json={"account_id": str(account.id)})
    assert response.status_code == 200
    assert response.json()["status"] == "caught_up"
    assert response.json()["analyzed"] == 0


@pytest.mark.asyncio
async def test_analyze_unknown_account(client: AsyncClient):
    response = await client.post(
        "/api/v1/friction/analyze",
        json={"account_id": "00000000-0000-0000-0000-000000000000"},
    )
    assert response.status_code == 404
    assert response.json()["error"] == "account_not_found"


@pytest.mark.asyncio
async def test_analyze_rejects_oversized_batch(client: AsyncClient, account):
    response = await client.post(
        "/api/v1/friction/analyze",
        json={"account_id": str(account.id), "batch_size": 500},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_analyze_misconfigured_service(client: AsyncClient, account, fake_classifier):
    await _ingest(client, account.id, ["crash"])
    fake_classifier.configured = False

    response = await client.post("/api/v1/friction/analyze", json={"account_id": str(account.id)})
    assert response.status_code == 503
    assert response.json()["error"] == "service_misconfigured"


@pytest.mark.asyncio
async def test_analyze_degraded_service(client: AsyncClient, account, fake_classifier):
    await _ingest(client, account.id, ["crash", "error"])
    fake_classifier.script.append(TransientServiceError("API busy (529)", status=529))

    response = await client.post("/api/v1/friction/analyze", json={"account_id": str(account.id)})
    assert response.status_code == 503
    body = response.json()
    assert body["error"] == "service_degraded"
    assert body["context"]["account_id"] == str(account.id)


@pytest.mark.asyncio
async def test_analyze_while_account_busy(client: AsyncClient, account, lock_registry):
    await _ingest(client, account.id, ["crash"])

    async with lock_registry.hold("batch", account.id):
        response = await client.post("/api/v1/friction/analyze", json={"account_id": str(account.id)})

    assert response.status_code == 409
    assert response.json()["error"] == "account_busy"


@pytest.mark.asyncio
async def test_bulk_analyze(client: AsyncClient, account):
    await _ingest(client, account.id, [f"sync error {i}" for i in range(7)])

    response = await client.post(
        "/api/v1/friction/bulk-analyze",
        json={"account_id": str(account.id), "batch_size": 3},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["batches"] == 3
    assert data["analyzed"] == 7
    assert data["friction_count"] == 7
    assert data["remaining"] == 0


@pytest.mark.asyncio
async def test_list_records_filters_by_friction(client: AsyncClient, account):
    await _ingest(client, account.id, ["export crash", "slow reports", "thank you!"])
    await client.post("/api/v1/friction/analyze", json={"account_id": str(account.id)})

    response = await client.get("/api/v1/friction/records", params={"account_id": str(account.id)})
    assert response.status_code == 200
    assert response.json()["total"] == 3

    response = await client.get(
        "/api/v1/friction/records",
        params={"account_id": str(account.id), "is_friction": "false"},
    )
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["theme_key"] == "normal_support"
    assert data["items"][0]["severity"] == 1
