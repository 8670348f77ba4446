import pytest
from httpx import ASGITransport, AsyncClient

from coldwatch.main import app


@pytest.mark.asyncio
async def test_health_endpoint_returns_ok():
    """Test health endpoint returns ok status."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_cors_allows_dashboard_origin():
    """Test CORS preflight from the dashboard origin is allowed."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.options(
            "/api/alerts",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "PUT",
            },
        )
    assert response.status_code == 200
    assert "http://localhost:3000" in response.headers.get("access-control-allow-origin", "")
