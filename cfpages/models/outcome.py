"""Per-step outcomes and the report a flow hands back to the CLI."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from cfpages.config import Operation


class Step(StrEnum):
    VALIDATE_ARTIFACT = "validate_artifact"
    CHECK_PROJECT = "check_project"
    CREATE_PROJECT = "create_project"
    WRITE_HEADERS = "write_headers"
    UPLOAD = "upload"
    EXTRACT_URL = "extract_url"
    CLEANUP = "cleanup"
    LINK_PR = "link_pr"
    LOCATE = "locate"
    DELETE = "delete"
    DELETE_PROJECT = "delete_project"
    UNLINK_PR = "unlink_pr"
    COMMENT = "comment"


class Severity(StrEnum):
    FATAL = "fatal"
    WARNING = "warning"


class StepStatus(StrEnum):
    OK = "ok"
    WARNING = "warning"
    FATAL = "fatal"
    SKIPPED = "skipped"


class StepOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: Step
    status: StepStatus
    reason: str = ""


class DeletionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    deployment_id: str
    ok: bool
    error: str = ""


class FlowReport(BaseModel):
    """Everything a flow did, in order."""

    operation: Operation
    project: str
    url: str | None = None
    url_was_guessed: bool = False
    outcomes: list[StepOutcome] = Field(default_factory=list)
    deletions: list[DeletionResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for d in self.deletions if d.ok)

    @property
    def failed(self) -> int:
        return sum(1 for d in self.deletions if not d.ok)

    @property
    def fatal(self) -> bool:
        return any(o.status == StepStatus.FATAL for o in self.outcomes)

    @property
    def warnings(self) -> list[StepOutcome]:
        return [o for o in self.outcomes if o.status == StepStatus.WARNING]

    def outcome(self, step: Step) -> StepOutcome | None:
        """Last recorded outcome for *step*."""
        for recorded in reversed(self.outcomes):
            if recorded.step == step:
                return recorded
        return None
