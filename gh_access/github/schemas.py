"""Pydantic schemas for the GitHub App action endpoint.

Field names mirror the JSON the dashboard already consumes, including the
camelCase keys of the diagnostic and permission-error payloads.
"""

from typing import Any, Optional

from pydantic import BaseModel


class DiagnosticResponse(BaseModel):
    status: str = "ok"
    appId: Optional[str] = None
    keyLength: int = 0
    keyBase64Length: int = 0


class InstallationListResponse(BaseModel):
    installations: list[dict[str, Any]]


class InstallationTokenResponse(BaseModel):
    token: str
    expires_at: str


class RepositoryListResponse(BaseModel):
    repositories: list[dict[str, Any]]


class RepositoryResponse(BaseModel):
    repository: dict[str, Any]


class EnvironmentListResponse(BaseModel):
    environments: list[dict[str, Any]]
    total_count: int


class DependabotAlertListResponse(BaseModel):
    alerts: list[dict[str, Any]]


class ErrorResponse(BaseModel):
    error: str


class InvalidActionResponse(ErrorResponse):
    available_actions: list[str]


class PermissionErrorResponse(ErrorResponse):
    errorCode: str
    message: str
