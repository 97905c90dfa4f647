"""Tests for the HTTP transport's informational endpoints."""
from fastapi.testclient import TestClient

from devkit_mcp import __version__
from devkit_mcp.dispatcher import Dispatcher
from devkit_mcp.http_app import create_app
from devkit_mcp.tools import build_registry


def make_client(settings):
    return TestClient(create_app(Dispatcher(build_registry(settings))))


class TestHttpApp:
    """Test /health and / endpoints."""

    def test_health_counts_listed_tools(self, bare_settings):
        with make_client(bare_settings) as client:
            response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "tools": 1}

    def test_health_in_read_only_mode(self, bare_settings):
        settings = bare_settings.model_copy(update={"read_only_mode": True})
        with make_client(settings) as client:
            assert client.get("/health").json()["tools"] == 0

    def test_root_describes_server(self, settings):
        with make_client(settings) as client:
            data = client.get("/").json()
        assert data["name"] == "devkit-mcp"
        assert data["version"] == __version__
        assert data["endpoints"]["sse"] == "/sse"
        assert data["readOnly"] is False
