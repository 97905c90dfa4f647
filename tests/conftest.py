"""Shared fixtures: settings and a recording stub for remote REST services."""
import json as jsonlib
from typing import Any, Optional

import httpx
import pytest

from devkit_mcp.config import Settings

SETTINGS_ENV = (
    "PORT",
    "ENABLE_TOOLS",
    "READ_ONLY_MODE",
    "GITLAB_READ_ONLY_MODE",
    "PROXY_URL",
    "HTTP_TIMEOUT",
    "LOG_LEVEL",
    "ATLASSIAN_HOST",
    "ATLASSIAN_EMAIL",
    "ATLASSIAN_TOKEN",
    "GITHUB_TOKEN",
    "GITHUB_API_URL",
    "GITLAB_HOST",
    "GITLAB_API_URL",
    "GITLAB_TOKEN",
    "GITLAB_PERSONAL_ACCESS_TOKEN",
    "SCRIPT_MAX_OUTPUT_BYTES",
)


class StubRemote:
    """Callable for ``httpx.MockTransport`` that answers from a route table.

    Routes are keyed by ``(method, raw_path)`` where ``raw_path`` is the
    still-encoded path without the query string (``prefix`` removed). Every
    request is recorded so tests can assert call order and count.
    Unrouted requests answer 404.
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix
        self.routes: dict[tuple[str, str], list[tuple[int, Any]]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, json: Any = None) -> "StubRemote":
        self.routes.setdefault((method, path), []).append((status, json))
        return self

    def _path(self, request: httpx.Request) -> str:
        path = request.url.raw_path.decode("ascii").split("?", 1)[0]
        if self.prefix and path.startswith(self.prefix):
            path = path[len(self.prefix):]
        return path

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responses = self.routes.get((request.method, self._path(request)))
        if not responses:
            return httpx.Response(404, json={"message": "404 Not Found"})
        # the last queued response is sticky
        status, body = responses.pop(0) if len(responses) > 1 else responses[0]
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def calls(self) -> list[tuple[str, str]]:
        return [(r.method, self._path(r)) for r in self.requests]

    def body(self, index: int) -> Optional[Any]:
        content = self.requests[index].content
        return jsonlib.loads(content) if content else None

    def params(self, index: int) -> dict[str, str]:
        return dict(self.requests[index].url.params)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep the developer's environment and any local .env file out of Settings."""
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def settings():
    """Settings with every tool group configured."""
    return Settings(
        atlassian_host="example.atlassian.net",
        atlassian_email="dev@example.com",
        atlassian_token="atlassian-token",
        github_token="github-token",
        gitlab_host="gitlab.example.com",
        gitlab_token="gitlab-token",
    )


@pytest.fixture
def bare_settings():
    """Settings with no remote credentials at all."""
    return Settings()


@pytest.fixture
def stub():
    return StubRemote()


@pytest.fixture
def gitlab_stub():
    return StubRemote(prefix="/api/v4")
