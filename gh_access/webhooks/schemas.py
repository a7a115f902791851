"""Pydantic schemas for the webhook endpoint."""

from typing import Optional

from pydantic import BaseModel


class InstallationWebhookResponse(BaseModel):
    """Acknowledgement for installation and installation_repositories events."""

    received: bool = True
    action: str
    installation_id: Optional[int] = None


class WebhookAckResponse(BaseModel):
    """Acknowledgement for events this service does not act on."""

    received: bool = True
    event: Optional[str] = None
