"""Failure taxonomy for GitHub App operations.

Every failure an operation can surface is a `GitHubAppError` tagged with an
`ErrorKind`. The dispatcher chooses the HTTP status from the kind alone, so
adding a subclass never requires touching the response mapping as long as it
reuses an existing kind.

    CONFIG       missing / unparseable App ID or key material      → 500
    BAD_REQUEST  missing or malformed caller parameters            → 400
    UPSTREAM     GitHub answered with an unexpected status         → 500
    TRANSPORT    DNS / TLS / connection failure talking to GitHub  → 500
    PERMISSION   repo visible but App lacks the sub-resource scope → 403
    NOT_FOUND    no installation can see the repository            → 404
"""

from dataclasses import dataclass
from enum import StrEnum


class ErrorKind(StrEnum):
    CONFIG = "config"
    BAD_REQUEST = "bad_request"
    UPSTREAM = "upstream"
    TRANSPORT = "transport"
    PERMISSION = "permission"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class PermissionScope:
    """A named App permission guarding one family of repository endpoints."""

    resource: str
    error_code: str
    permission: str  # as labelled in the GitHub App settings page
    purpose: str

    @property
    def message(self) -> str:
        return f"The GitHub App needs '{self.permission}' permission to {self.purpose}."


ENVIRONMENTS_SCOPE = PermissionScope(
    resource="environments",
    error_code="MISSING_ENVIRONMENTS_PERMISSION",
    permission="Environments: Read",
    purpose="view environments",
)
DEPENDABOT_SCOPE = PermissionScope(
    resource="dependabot_alerts",
    error_code="MISSING_DEPENDABOT_PERMISSION",
    permission="Security events: Read",
    purpose="view Dependabot alerts",
)
ISSUES_SCOPE = PermissionScope(
    resource="issues",
    error_code="MISSING_ISSUES_PERMISSION",
    permission="Issues: Read and write",
    purpose="create issues",
)


class GitHubAppError(Exception):
    kind: ErrorKind = ErrorKind.UPSTREAM

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigError(GitHubAppError):
    kind = ErrorKind.CONFIG


class MissingParameterError(GitHubAppError):
    kind = ErrorKind.BAD_REQUEST


class UpstreamError(GitHubAppError):
    """Non-2xx response from GitHub. `body` is the raw response text."""

    kind = ErrorKind.UPSTREAM

    def __init__(self, status: int, body: str, context: str = "GitHub API error") -> None:
        super().__init__(f"{context}: {status} - {body}")
        self.status = status
        self.body = body


class TransportError(GitHubAppError):
    kind = ErrorKind.TRANSPORT


class PermissionMissingError(GitHubAppError):
    kind = ErrorKind.PERMISSION

    def __init__(self, scope: PermissionScope) -> None:
        super().__init__(scope.message)
        self.scope = scope

    @property
    def error_code(self) -> str:
        return self.scope.error_code


class NotFoundAcrossInstallations(GitHubAppError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, full_name: str) -> None:
        super().__init__("No installation found with access to this repository")
        self.full_name = full_name
