"""Issue creation and Dependabot enablement endpoint.

POST /github-create-issue?action=create-issue        {repoFullName, title, body?, labels?}
POST /github-create-issue?action=trigger-dependabot  {repoFullName}
"""

import json
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from gh_access.core.config import Settings, get_settings
from gh_access.github.auth import load_app_identity
from gh_access.github.errors import MissingParameterError
from gh_access.github.router import get_github_client
from gh_access.issues import service
from gh_access.issues.schemas import (
    CreateIssueRequest,
    CreateIssueResponse,
    TriggerDependabotRequest,
    TriggerDependabotResponse,
)

router = APIRouter(tags=["issues"])

DEPENDABOT_ENABLED_MESSAGE = (
    "Dependabot security updates enabled. Dependabot will automatically "
    "create PRs for vulnerable dependencies."
)


async def _read_json(request: Request) -> dict:
    try:
        payload = json.loads(await request.body() or b"{}")
    except ValueError:
        raise MissingParameterError("Invalid JSON body") from None
    if not isinstance(payload, dict):
        raise MissingParameterError("Invalid JSON body")
    return payload


@router.post("/github-create-issue")
async def github_create_issue(
    request: Request,
    action: Optional[str] = None,
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_github_client),
):
    payload = await _read_json(request)

    if action == "create-issue":
        try:
            body = CreateIssueRequest.model_validate(payload)
        except ValidationError as exc:
            raise MissingParameterError(
                f"Invalid request body: {exc.error_count()} error(s)"
            ) from exc
        if not body.repo_full_name or not body.title:
            raise MissingParameterError("Missing required fields: repoFullName, title")

        identity = load_app_identity(settings)
        issue = await service.create_issue(client, identity, body)
        return CreateIssueResponse(issue=issue)

    if action == "trigger-dependabot":
        try:
            body = TriggerDependabotRequest.model_validate(payload)
        except ValidationError as exc:
            raise MissingParameterError(
                f"Invalid request body: {exc.error_count()} error(s)"
            ) from exc
        if not body.repo_full_name:
            raise MissingParameterError("Missing required field: repoFullName")

        identity = load_app_identity(settings)
        await service.enable_dependabot_security_updates(client, identity, body.repo_full_name)
        return TriggerDependabotResponse(message=DEPENDABOT_ENABLED_MESSAGE)

    raise MissingParameterError("Invalid action. Use 'create-issue' or 'trigger-dependabot'")
