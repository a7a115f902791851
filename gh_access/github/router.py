"""GitHub App action endpoint.

A single GET endpoint routed by the `action` query parameter. This is the
interface the dashboard calls; every action is stateless and builds its App
identity, JWTs and installation tokens from scratch.

    ?action=test                                   config diagnostics
    ?action=list-installations
    ?action=get-token&installation_id=N
    ?action=list-repos&installation_id=N
    ?action=get-repo&owner=O&repo=R
    ?action=list-environments&repo=O/R
    ?action=list-dependabot-alerts&repo=O/R

Failures are raised as `GitHubAppError` and turned into JSON by
`github_app_error_handler`, registered on the app in `create_app()`. Any
other exception becomes a 500 through `unhandled_error_handler`.
"""

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Optional, Union

import httpx
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from starlette.datastructures import QueryParams

from gh_access.core.config import Settings, get_settings
from gh_access.core.middleware import cors_headers
from gh_access.github import client as github_client
from gh_access.github import resolver, scoped
from gh_access.github.auth import load_app_identity
from gh_access.github.errors import (
    ErrorKind,
    GitHubAppError,
    MissingParameterError,
    PermissionMissingError,
)
from gh_access.github.schemas import (
    DependabotAlertListResponse,
    DiagnosticResponse,
    EnvironmentListResponse,
    ErrorResponse,
    InstallationListResponse,
    InstallationTokenResponse,
    InvalidActionResponse,
    PermissionErrorResponse,
    RepositoryListResponse,
    RepositoryResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["github-app"])


async def get_github_client(
    settings: Settings = Depends(get_settings),
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """One upstream connection pool per inbound request."""
    async with github_client.github_http_client(settings) as client:
        yield client


# ---------------------------------------------------------------------------
# Parameter helpers
# ---------------------------------------------------------------------------


def _require(params: QueryParams, *names: str, message: str) -> list[str]:
    values = [params.get(name) for name in names]
    if not all(values):
        raise MissingParameterError(message)
    return values


def _installation_id(params: QueryParams) -> int:
    (raw,) = _require(params, "installation_id", message="installation_id is required")
    try:
        return int(raw)
    except ValueError:
        raise MissingParameterError("installation_id must be an integer") from None


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


async def _test(params: QueryParams, settings: Settings, client: httpx.AsyncClient) -> Response:
    diagnostics = DiagnosticResponse(
        status="ok",
        appId=settings.github_app_id or None,
        keyLength=len(settings.github_app_private_key),
        keyBase64Length=len(settings.github_app_private_key_base64),
    )
    # An unset App ID is left out of the payload rather than sent as null.
    return JSONResponse(content=diagnostics.model_dump(exclude_none=True))


async def _list_installations(
    params: QueryParams, settings: Settings, client: httpx.AsyncClient
) -> BaseModel:
    identity = load_app_identity(settings)
    installations = await github_client.list_installations(client, identity)
    return InstallationListResponse(installations=installations)


async def _get_token(params: QueryParams, settings: Settings, client: httpx.AsyncClient) -> BaseModel:
    installation_id = _installation_id(params)
    identity = load_app_identity(settings)
    token = await github_client.mint_installation_token(client, identity, installation_id)
    return InstallationTokenResponse(token=token.token, expires_at=token.expires_at)


async def _list_repos(params: QueryParams, settings: Settings, client: httpx.AsyncClient) -> BaseModel:
    installation_id = _installation_id(params)
    identity = load_app_identity(settings)
    token = await github_client.mint_installation_token(client, identity, installation_id)
    repositories = await github_client.list_installation_repositories(client, token.token)
    return RepositoryListResponse(repositories=repositories)


async def _get_repo(params: QueryParams, settings: Settings, client: httpx.AsyncClient) -> BaseModel:
    owner, repo = _require(
        params, "owner", "repo", message="owner and repo parameters are required"
    )
    identity = load_app_identity(settings)
    repository = await resolver.resolve_repository(client, identity, owner, repo)
    return RepositoryResponse(repository=repository)


async def _list_environments(
    params: QueryParams, settings: Settings, client: httpx.AsyncClient
) -> BaseModel:
    (full_name,) = _require(
        params, "repo", message="repo parameter is required (format: owner/repo)"
    )
    identity = load_app_identity(settings)
    return EnvironmentListResponse(
        **await scoped.list_environments(client, identity, full_name)
    )


async def _list_dependabot_alerts(
    params: QueryParams, settings: Settings, client: httpx.AsyncClient
) -> BaseModel:
    (full_name,) = _require(
        params, "repo", message="repo parameter is required (format: owner/repo)"
    )
    identity = load_app_identity(settings)
    alerts = await scoped.list_dependabot_alerts(client, identity, full_name)
    return DependabotAlertListResponse(alerts=alerts)


ActionHandler = Callable[
    [QueryParams, Settings, httpx.AsyncClient], Awaitable[Union[BaseModel, Response]]
]

ACTIONS: dict[str, ActionHandler] = {
    "test": _test,
    "list-installations": _list_installations,
    "get-token": _get_token,
    "list-repos": _list_repos,
    "get-repo": _get_repo,
    "list-environments": _list_environments,
    "list-dependabot-alerts": _list_dependabot_alerts,
}


@router.get("/github-app-auth")
async def github_app_auth(
    request: Request,
    action: Optional[str] = None,
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_github_client),
):
    """Dispatch one GitHub App action and return its JSON payload."""
    handler = ACTIONS.get(action or "")
    if handler is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=InvalidActionResponse(
                error="Invalid action",
                available_actions=list(ACTIONS),
            ).model_dump(),
        )

    return await handler(request.query_params, settings, client)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.BAD_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PERMISSION: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFIG: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.UPSTREAM: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.TRANSPORT: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def github_app_error_handler(request: Request, exc: GitHubAppError) -> JSONResponse:
    """Convert a tagged GitHubAppError into its JSON error response."""
    status_code = _STATUS_BY_KIND[exc.kind]

    if isinstance(exc, PermissionMissingError):
        logger.warning("%s %s: %s", request.method, request.url.path, exc.error_code)
        body: BaseModel = PermissionErrorResponse(
            error="Missing GitHub App permission",
            errorCode=exc.error_code,
            message=exc.message,
        )
    else:
        if status_code >= 500:
            logger.error("GitHub App error (%s): %s", exc.kind, exc.message)
        else:
            logger.info("GitHub App request rejected (%s): %s", exc.kind, exc.message)
        body = ErrorResponse(error=exc.message)

    return JSONResponse(status_code=status_code, content=body.model_dump())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort 500 for failures that are not a GitHubAppError.

    Starlette runs this handler outside every user middleware, so the CORS
    headers are set here.
    """
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    allow_origin = getattr(request.app.state, "cors_allow_origin", "*")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=str(exc) or type(exc).__name__).model_dump(),
        headers=cors_headers(allow_origin),
    )
