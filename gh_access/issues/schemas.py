"""Pydantic schemas for the issue / Dependabot endpoint."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ISSUE_LABELS = ["security", "automated"]


class CreateIssueRequest(BaseModel):
    """Body of ?action=create-issue. Keys are camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    repo_full_name: str = Field(default="", alias="repoFullName")
    title: str = ""
    body: str = ""
    labels: Optional[list[str]] = None


class TriggerDependabotRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    repo_full_name: str = Field(default="", alias="repoFullName")


class CreatedIssue(BaseModel):
    number: int
    url: str
    title: str


class CreateIssueResponse(BaseModel):
    success: bool = True
    issue: CreatedIssue


class TriggerDependabotResponse(BaseModel):
    success: bool = True
    message: str
