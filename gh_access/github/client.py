"""GitHub API client for App- and installation-scoped operations.

Uses httpx for async HTTP calls. Every function takes the request's
`httpx.AsyncClient` (built by `github_http_client`) so one inbound request
reuses a single connection pool across all the installations it probes.

Authentication is per call: App-level endpoints get a freshly signed App JWT,
installation-level endpoints get the installation token passed in. Neither is
cached here.

Transport failures are converted to `TransportError` and non-2xx responses to
`UpstreamError` at this boundary, except for the probe calls
(`fetch_repository`, `fetch_repository_resource`) whose status codes the
caller needs to classify itself.
"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from gh_access.core.config import Settings
from gh_access.github.auth import AppIdentity, create_app_jwt
from gh_access.github.errors import TransportError, UpstreamError

# GitHub caps list endpoints at 100 items per page.
PAGE_SIZE = 100


@dataclass(frozen=True)
class InstallationToken:
    token: str
    expires_at: str


def github_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.github_api_base,
        headers={
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": settings.github_api_version,
        },
    )


async def github_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    token: str,
    **kwargs: Any,
) -> httpx.Response:
    """Send one authenticated request; wrap transport failures."""
    try:
        return await client.request(
            method,
            url,
            headers={"Authorization": f"Bearer {token}"},
            **kwargs,
        )
    except httpx.TransportError as exc:
        raise TransportError(f"GitHub request failed: {exc}") from exc


def raise_for_upstream(response: httpx.Response, context: str) -> None:
    if not response.is_success:
        raise UpstreamError(response.status_code, response.text, context)


def decode_json(response: httpx.Response, context: str) -> Any:
    """Decode a 2xx body, or raise UpstreamError if it is not JSON."""
    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamError(
            response.status_code, response.text, f"{context} (invalid JSON)"
        ) from exc


async def _paginate(
    client: httpx.AsyncClient,
    url: str,
    *,
    token: str,
    context: str,
    per_page: int,
    items_key: Optional[str] = None,
) -> list[dict]:
    """Collect every page of a list endpoint by following Link rel="next"."""
    items: list[dict] = []
    next_url: Optional[str] = url
    params: Optional[dict[str, int]] = {"per_page": per_page}

    while next_url:
        response = await github_request(client, "GET", next_url, token=token, params=params)
        raise_for_upstream(response, context)
        data = decode_json(response, context)
        if items_key and isinstance(data, dict):
            data = data.get(items_key) or []
        if not isinstance(data, list):
            raise UpstreamError(
                response.status_code, response.text, f"{context} (unexpected body)"
            )
        items.extend(data)

        # The next link already carries the query string.
        next_url = response.links.get("next", {}).get("url")
        params = None

    return items


async def list_installations(
    client: httpx.AsyncClient,
    identity: AppIdentity,
) -> list[dict]:
    """GET /app/installations: every installation of this App, in listed order."""
    return await _paginate(
        client,
        "/app/installations",
        token=create_app_jwt(identity),
        context="Failed to list installations",
        per_page=PAGE_SIZE,
    )


async def mint_installation_token(
    client: httpx.AsyncClient,
    identity: AppIdentity,
    installation_id: int,
) -> InstallationToken:
    """Exchange a fresh App JWT for an installation access token.

    Installation tokens are scoped to the repos and permissions the account
    granted and expire after 1 hour. The caller must not use one past
    `expires_at`; nothing here enforces that.
    """
    response = await github_request(
        client,
        "POST",
        f"/app/installations/{installation_id}/access_tokens",
        token=create_app_jwt(identity),
    )
    context = "Failed to get installation token"
    raise_for_upstream(response, context)
    data = decode_json(response, context)
    try:
        return InstallationToken(token=data["token"], expires_at=data["expires_at"])
    except (KeyError, TypeError) as exc:
        raise UpstreamError(
            response.status_code, response.text, f"{context} (unexpected body)"
        ) from exc


async def list_installation_repositories(
    client: httpx.AsyncClient,
    token: str,
) -> list[dict]:
    """GET /installation/repositories: repos granted to one installation."""
    return await _paginate(
        client,
        "/installation/repositories",
        token=token,
        context="Failed to get repos",
        per_page=PAGE_SIZE,
        items_key="repositories",
    )


async def fetch_repository(
    client: httpx.AsyncClient,
    token: str,
    full_name: str,
) -> httpx.Response:
    """GET /repos/{owner}/{repo}. The raw response is returned for probing."""
    return await github_request(client, "GET", f"/repos/{full_name}", token=token)


async def fetch_repository_resource(
    client: httpx.AsyncClient,
    token: str,
    full_name: str,
    path: str,
) -> httpx.Response:
    """GET /repos/{owner}/{repo}/{path}. The raw response is returned for probing."""
    return await github_request(client, "GET", f"/repos/{full_name}/{path}", token=token)
