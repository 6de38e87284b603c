"""
Tests for GET /health and the GET / endpoint map.

The credential flags read the process-wide settings, which carry no
credentials under test, so they are only checked for type here.
"""


async def test_health_returns_200(client):
    """Health endpoint must always return 200 if the API process is alive."""
    response = await client.get("/health")
    assert response.status_code == 200


async def test_health_response_schema(client):
    data = (await client.get("/health")).json()

    assert data["status"] == "ok"
    assert data["version"] == "0.1.0"
    assert "environment" in data
    assert isinstance(data["scoring_configured"], bool)
    assert isinstance(data["storage_configured"], bool)


async def test_root_endpoint(client):
    """Root / must report the service as running and list the endpoints."""
    response = await client.get("/")
    assert response.status_code == 200
    data = response.json()

    assert data["message"] == "Deepfake Detector API is running"
    assert data["status"] == "healthy"
    assert data["endpoints"] == {
        "analyze": "POST /analyze",
        "analyzeVideo": "POST /analyze-video",
        "analyzeVideoUrl": "POST /analyze-video-url",
        "proxy": "GET /proxy",
    }


async def test_cors_allows_any_origin(client):
    response = await client.get("/health", headers={"Origin": "https://app.example"})
    assert response.headers.get("access-control-allow-origin") == "*"
