from gh_access.main import create_app


def test_app_creates_successfully():
    """Verify the FastAPI app factory produces a valid app instance."""
    app = create_app()
    assert app is not None
    assert app.title == "GitHub App Access API"


def test_routes_registered():
    paths = {route.path for route in create_app().routes}
    assert {"/health", "/github-app-auth", "/github-app-webhook", "/github-create-issue"} <= paths


async def test_health_endpoint(client):
    """Verify the health endpoint returns 200 with expected payload."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
