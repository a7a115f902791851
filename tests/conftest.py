"""Shared test fixtures for the GitHub App access test suite.

GitHub itself is replaced by `FakeGitHub`, an in-memory stand-in served to
the code under test through `httpx.MockTransport`. Tests configure which
installations exist and how each one answers, then assert on the recorded
requests.

One RSA key is generated per session; generating 2048-bit keys per test is
slow and buys nothing.
"""

import re
from collections.abc import AsyncGenerator
from typing import Any, Optional

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient

from gh_access.core.config import Settings, get_settings
from gh_access.github.auth import AppIdentity
from gh_access.github.router import get_github_client
from gh_access.main import create_app

TEST_APP_ID = "12345"
GITHUB_API_BASE = "https://api.github.com"

TEST_PRIVATE_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)

TEST_PRIVATE_KEY_PEM = TEST_PRIVATE_KEY.private_bytes(
    serialization.Encoding.PEM,
    serialization.PrivateFormat.PKCS8,
    serialization.NoEncryption(),
).decode()


def pem_body(pem: str) -> list[str]:
    """The base64 lines of a PEM document, without armor."""
    return [line for line in pem.strip().splitlines() if not line.startswith("-----")]


# Single-line env value with literal "\n" escapes, as stored by most secret managers.
TEST_PRIVATE_KEY_BASE64 = "\\n".join(pem_body(TEST_PRIVATE_KEY_PEM))


# ---------------------------------------------------------------------------
# Fake GitHub API
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(r"/app/installations/(\d+)/access_tokens")
_REPO_RE = re.compile(r"/repos/([^/]+/[^/]+)")
_REPO_RESOURCE_RE = re.compile(r"/repos/([^/]+/[^/]+)/(.+)")


class FakeGitHub:
    """Answers the handful of GitHub endpoints this service calls.

    Installation tokens are minted as ``tok-<installation_id>`` so later
    requests can be attributed to the installation whose token they carry.

    - token_status[iid]        status for the access_tokens POST (default 201)
    - repo_status[iid]         status for GET /repos/{full} (default 404)
    - resources[(iid, path)]   (status, json) for /repos/{full}/{path} (default 204)
    - repositories[iid]        list for GET /installation/repositories
    """

    def __init__(self, installation_ids: Optional[list[int]] = None) -> None:
        self.installations: list[dict[str, Any]] = [
            _installation(iid) for iid in installation_ids or []
        ]
        self.token_status: dict[int, int] = {}
        self.repo_status: dict[int, int] = {}
        self.resources: dict[tuple[int, str], tuple[int, Any]] = {}
        self.repositories: dict[int, list[dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []

    def set_installations(self, *installation_ids: int) -> None:
        self.installations = [_installation(iid) for iid in installation_ids]

    # -- request handling ---------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/app/installations":
            return httpx.Response(200, json=self.installations)

        match = _TOKEN_RE.fullmatch(path)
        if match:
            iid = int(match.group(1))
            status = self.token_status.get(iid, 201)
            if status >= 400:
                return httpx.Response(status, json={"message": "token refused"})
            return httpx.Response(
                201,
                json={"token": f"tok-{iid}", "expires_at": "2030-01-01T00:00:00Z"},
            )

        iid = self._installation_for(request)

        if path == "/installation/repositories":
            repos = self.repositories.get(iid, [])
            return httpx.Response(200, json={"total_count": len(repos), "repositories": repos})

        match = _REPO_RE.fullmatch(path)
        if match:
            status = self.repo_status.get(iid, 404)
            if status >= 300:
                return httpx.Response(status, json={"message": "Not Found"})
            return httpx.Response(
                status, json={"id": 1000 + iid, "full_name": match.group(1)}
            )

        match = _REPO_RESOURCE_RE.fullmatch(path)
        if match:
            status, body = self.resources.get((iid, match.group(2)), (204, None))
            if body is None:
                return httpx.Response(status)
            return httpx.Response(status, json=body)

        return httpx.Response(404, json={"message": "Not Found"})

    @staticmethod
    def _installation_for(request: httpx.Request) -> int:
        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        return int(token.removeprefix("tok-")) if token.startswith("tok-") else -1

    # -- assertions helpers -------------------------------------------------

    def minted_for(self) -> list[int]:
        """Installation IDs a token was requested for, in order."""
        return [
            int(m.group(1))
            for r in self.requests
            if (m := _TOKEN_RE.fullmatch(r.url.path))
        ]

    def paths_for(self, installation_id: int) -> list[str]:
        """Paths requested with a given installation's token."""
        return [
            r.url.path for r in self.requests if self._installation_for(r) == installation_id
        ]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            base_url=GITHUB_API_BASE,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )


def _installation(iid: int) -> dict[str, Any]:
    return {
        "id": iid,
        "account": {
            "login": f"account-{iid}",
            "avatar_url": f"https://avatars.example/{iid}",
            "type": "Organization",
        },
        "app_id": int(TEST_APP_ID),
        "target_type": "Organization",
        "permissions": {"metadata": "read"},
        "events": [],
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def private_key() -> rsa.RSAPrivateKey:
    return TEST_PRIVATE_KEY


@pytest.fixture
def private_key_pem() -> str:
    return TEST_PRIVATE_KEY_PEM


@pytest.fixture
def private_key_base64() -> str:
    return TEST_PRIVATE_KEY_BASE64


@pytest.fixture
def identity() -> AppIdentity:
    return AppIdentity(app_id=TEST_APP_ID, private_key=TEST_PRIVATE_KEY)


@pytest.fixture
def github_api() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
async def github_http(github_api: FakeGitHub) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with github_api.client() as http:
        yield http


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "github_app_id": TEST_APP_ID,
        "github_app_private_key": TEST_PRIVATE_KEY_PEM,
        "github_app_private_key_base64": "",
        "github_webhook_secret": "",
        "sentry_dsn": "",
        "debug": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(settings: Settings, github_api: FakeGitHub):
    """A FastAPI app with settings and the upstream HTTP client overridden."""
    test_app = create_app()

    async def override_get_github_client() -> AsyncGenerator[httpx.AsyncClient, None]:
        async with github_api.client() as http:
            yield http

    test_app.dependency_overrides[get_settings] = lambda: settings
    test_app.dependency_overrides[get_github_client] = override_get_github_client
    return test_app


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """An async HTTP client wired to the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
