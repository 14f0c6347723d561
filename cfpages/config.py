"""Application configuration via pydantic-settings, plus validated action inputs."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from cfpages.errors import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Cloudflare credentials (accepted under the action-input names too)
    cloudflare_api_token: str = Field(
        default="",
        validation_alias=AliasChoices("cloudflare_api_token", "input_cloudflare_api_token"),
    )
    cloudflare_account_id: str = Field(
        default="",
        validation_alias=AliasChoices("cloudflare_account_id", "input_cloudflare_account_id"),
    )
    cloudflare_api_url: str = "https://api.cloudflare.com/client/v4"

    # GitHub
    github_token: str = Field(
        default="",
        validation_alias=AliasChoices("github_token", "input_github_token"),
    )
    github_repository: str = ""
    github_api_url: str = "https://api.github.com"
    github_event_path: str = ""
    github_event_name: str = ""
    github_output: str = ""
    github_sha: str = ""

    # Deploy primitive
    wrangler_command: str = "npx wrangler@3"

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    @property
    def has_cloudflare_credentials(self) -> bool:
        return bool(self.cloudflare_api_token and self.cloudflare_account_id)

    @property
    def has_github(self) -> bool:
        return bool(self.github_token and self.github_repository)

    def secrets(self) -> list[str]:
        """Values that must never appear in CI logs."""
        return [s for s in (self.cloudflare_api_token, self.github_token) if s]


class Operation(StrEnum):
    DEPLOY = "deploy"
    DELETE_DEPLOYMENT = "delete-deployment"
    DELETE_PROJECT = "delete-project"


class ActionInputs(BaseModel):
    """Invocation parameters, validated once and passed to every component."""

    model_config = ConfigDict(frozen=True)

    project_name: str
    dist_folder: Path | None = None
    branch: str = "main"
    operation: Operation = Operation.DEPLOY
    headers: str = "{}"
    environment_name: str = "preview"
    auto_create_project: bool = True
    cleanup_old_deployments: bool = False
    comment_on_deploy: bool = False
    comment_on_cleanup: bool = False
    deployment_prefix: str | None = None
    deployment_id: str | None = None
    keep_count: int = Field(default=5, ge=0)
    delete_delay: float = Field(default=0.0, ge=0.0)
    pr_number: int | None = None

    @field_validator("project_name")
    @classmethod
    def _project_name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("PROJECT_NAME is required")
        return value

    @field_validator("branch", "environment_name")
    @classmethod
    def _default_when_blank(cls, value: str, info: ValidationInfo) -> str:
        value = value.strip()
        if value:
            return value
        return "main" if info.field_name == "branch" else "preview"

    @field_validator(
        "dist_folder", "deployment_prefix", "deployment_id", "pr_number", mode="before"
    )
    @classmethod
    def _blank_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def parse(cls, **raw: object) -> ActionInputs:
        """Build inputs from raw option values, raising ConfigurationError on bad input."""
        operation = raw.get("operation")
        if isinstance(operation, str):
            valid = [op.value for op in Operation]
            if operation.strip() not in valid:
                raise ConfigurationError(
                    f"EVENT must be one of {', '.join(valid)} (got {operation!r})"
                )
            raw["operation"] = operation.strip()
        try:
            inputs = cls.model_validate(raw)
        except ValidationError as exc:
            messages = "; ".join(str(err["msg"]) for err in exc.errors())
            raise ConfigurationError(f"Invalid action inputs: {messages}") from exc
        if inputs.operation == Operation.DEPLOY and inputs.dist_folder is None:
            raise ConfigurationError("DIST_FOLDER is required when EVENT is deploy")
        return inputs
