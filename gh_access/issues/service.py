"""Write operations on a repository through whichever installation can see it.

Both operations resolve the repository with the same probe loop as the
read actions and then act with the winning installation's token.
"""

import logging

import httpx

from gh_access.github.auth import AppIdentity
from gh_access.github.client import decode_json, github_request, raise_for_upstream
from gh_access.github.errors import ISSUES_SCOPE, PermissionMissingError
from gh_access.github.resolver import RepositoryRef, resolve_repository_access
from gh_access.issues.schemas import DEFAULT_ISSUE_LABELS, CreatedIssue, CreateIssueRequest

logger = logging.getLogger(__name__)

# GitHub's message when an App token lacks the scope for an endpoint.
RESOURCE_NOT_ACCESSIBLE = "Resource not accessible"


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return ""
    return str(data.get("message", "")) if isinstance(data, dict) else ""


async def create_issue(
    client: httpx.AsyncClient,
    identity: AppIdentity,
    request: CreateIssueRequest,
) -> CreatedIssue:
    """Open an issue on the repository.

    Raises PermissionMissingError (MISSING_ISSUES_PERMISSION) when GitHub
    reports the App cannot write issues.
    """
    ref = RepositoryRef.parse(request.repo_full_name)
    access = await resolve_repository_access(client, identity, ref.full_name)

    response = await github_request(
        client,
        "POST",
        f"/repos/{ref.full_name}/issues",
        token=access.token.token,
        json={
            "title": request.title,
            "body": request.body,
            "labels": request.labels or DEFAULT_ISSUE_LABELS,
        },
    )
    if response.status_code == 403 and RESOURCE_NOT_ACCESSIBLE in _error_message(response):
        raise PermissionMissingError(ISSUES_SCOPE)
    raise_for_upstream(response, "Failed to create issue")

    issue = decode_json(response, "Failed to create issue")
    logger.info("Created issue #%s on %s", issue["number"], ref.full_name)
    return CreatedIssue(number=issue["number"], url=issue["html_url"], title=issue["title"])


async def enable_dependabot_security_updates(
    client: httpx.AsyncClient,
    identity: AppIdentity,
    full_name: str,
) -> None:
    """Turn on vulnerability alerts, then automated security fixes.

    GitHub refuses automated security fixes while vulnerability alerts are
    off, hence the order.
    """
    ref = RepositoryRef.parse(full_name)
    access = await resolve_repository_access(client, identity, ref.full_name)

    for path, context in (
        ("vulnerability-alerts", "Failed to enable vulnerability alerts"),
        ("automated-security-fixes", "Failed to enable automated security fixes"),
    ):
        response = await github_request(
            client, "PUT", f"/repos/{ref.full_name}/{path}", token=access.token.token
        )
        raise_for_upstream(response, context)

    logger.info("Enabled Dependabot security updates on %s", ref.full_name)
