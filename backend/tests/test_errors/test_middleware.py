import pytest
from fastapi import APIRouter
from httpx import ASGITransport, AsyncClient

from friction_intel.errors import AccountBusyError, BatchTimeoutError, FrictionIntelError, ParseError
from friction_intel.main import create_app


@pytest.mark.parametrize(
    "error, status, code",
    [
        (AccountBusyError("busy"), 409, "account_busy"),
        (BatchTimeoutError("slow"), 504, "batch_timeout"),
        (ParseError("bad json"), 422, "parse_error"),
        (FrictionIntelError("boom"), 500, "internal_error"),
    ],
)
def test_error_codes(error, status, code):
    assert error.status_code == status
    assert error.to_dict()["error"] == code


@pytest.mark.asyncio
async def test_domain_and_unexpected_errors_are_rendered():
    app = create_app()
    router = APIRouter()

    @router.get("/boom/domain")
    async def domain_error():
        raise BatchTimeoutError("Batch did not finish", {"account_id": "abc"})

    @router.get("/boom/unexpected")
    async def unexpected_error():
        raise RuntimeError("kaboom")

    app.include_router(router)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/boom/domain")
        assert response.status_code == 504
        assert response.json() == {
            "error": "batch_timeout",
            "detail": "Batch did not finish",
            "context": {"account_id": "abc"},
        }

        response = await client.get("/boom/unexpected")
        assert response.status_code == 500
        assert response.json()["error"] == "internal_error"


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
