"""GitHub App webhook endpoint.

Public (no auth dependency) but verifies X-Hub-Signature-256 whenever a
webhook secret is configured. Installation lifecycle events are only logged:
installation lists are always read live from GitHub, so there is nothing to
keep in sync here.
"""

import json
import logging

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse

from gh_access.core.config import Settings, get_settings
from gh_access.github.errors import MissingParameterError
from gh_access.github.schemas import ErrorResponse
from gh_access.webhooks.events import (
    parse_installation_event,
    parse_installation_repositories_event,
    verify_webhook_signature,
)
from gh_access.webhooks.schemas import InstallationWebhookResponse, WebhookAckResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])

_INSTALLATION_ACTIONS = {
    "created": "New installation created",
    "deleted": "Installation deleted",
    "suspend": "Installation suspended",
    "unsuspend": "Installation unsuspended",
}


@router.post("/github-app-webhook")
async def handle_webhook(
    request: Request,
    x_github_event: str = Header(default=""),
    x_github_delivery: str = Header(default=""),
    x_hub_signature_256: str = Header(default=""),
    settings: Settings = Depends(get_settings),
):
    """Receive a GitHub App webhook delivery.

    - installation: created / deleted / suspend / unsuspend
    - installation_repositories: repositories added to or removed from an installation
    - anything else is acknowledged and ignored
    """
    logger.info("Received webhook: %s (delivery: %s)", x_github_event, x_github_delivery)
    body = await request.body()

    if settings.github_webhook_secret:
        if not verify_webhook_signature(
            body, x_hub_signature_256, settings.github_webhook_secret
        ):
            logger.error("Invalid webhook signature (delivery: %s)", x_github_delivery)
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content=ErrorResponse(error="Invalid signature").model_dump(),
            )
    else:
        logger.warning(
            "GITHUB_WEBHOOK_SECRET not set - webhook signature verification disabled"
        )

    try:
        payload = json.loads(body)
    except ValueError:
        raise MissingParameterError("Invalid JSON payload") from None
    if not isinstance(payload, dict):
        raise MissingParameterError("Invalid JSON payload")

    if x_github_event == "installation":
        event = parse_installation_event(payload)
        description = _INSTALLATION_ACTIONS.get(event["action"])
        if description:
            logger.info(
                "%s: %s (account: %s)",
                description,
                event["installation_id"],
                event["account_login"],
            )
        else:
            logger.info("Unhandled installation action: %s", event["action"])
        return InstallationWebhookResponse(
            action=event["action"],
            installation_id=event["installation_id"],
        )

    if x_github_event == "installation_repositories":
        event = parse_installation_repositories_event(payload)
        logger.info(
            "Installation repositories %s for %s: +%s -%s",
            event["action"],
            event["installation_id"],
            event["repositories_added"],
            event["repositories_removed"],
        )
        return InstallationWebhookResponse(
            action=event["action"],
            installation_id=event["installation_id"],
        )

    logger.info("Unhandled event type: %s", x_github_event)
    return WebhookAckResponse(event=x_github_event or None)
