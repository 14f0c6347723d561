"""Tests for Pydantic domain models."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from cfpages.config import Operation
from cfpages.models.deployment import (
    AliasPrefix,
    DeploymentRecord,
    DeployOutcome,
    MatchCriterion,
)
from cfpages.models.outcome import (
    DeletionResult,
    FlowReport,
    Step,
    StepOutcome,
    StepStatus,
)


class TestDeploymentRecord:
    def test_from_api(self, api):
        record = DeploymentRecord.from_api(
            api.deployment("d1", branch="main", aliases=["https://main.demo.pages.dev"])
        )
        assert record.id == "d1"
        assert record.branch == "main"
        assert record.created_at.year == 2025
        assert record.is_production is False

    def test_from_api_tolerates_missing_optional_fields(self):
        record = DeploymentRecord.from_api(
            {"id": "d1", "created_on": "2025-01-01T00:00:00Z", "aliases": None}
        )
        assert record.branch is None
        assert record.url is None
        assert record.aliases == []

    def test_from_api_requires_id(self):
        with pytest.raises(KeyError):
            DeploymentRecord.from_api({"created_on": "2025-01-01T00:00:00Z"})

    def test_hosts_strip_scheme(self, make_record):
        record = make_record(
            "d1", url="https://d1.demo.pages.dev", aliases=["https://x.demo.pages.dev"]
        )
        assert record.hosts() == ["d1.demo.pages.dev", "x.demo.pages.dev"]

    def test_frozen(self, make_record):
        record = make_record("d1")
        with pytest.raises(ValidationError):
            record.id = "d2"


class TestMatchCriterion:
    def test_discriminated_by_kind(self):
        criterion = TypeAdapter(MatchCriterion).validate_python(
            {"kind": "alias_prefix", "prefix": "pr-"}
        )
        assert criterion == AliasPrefix(prefix="pr-")

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            TypeAdapter(MatchCriterion).validate_python({"kind": "regex", "pattern": ".*"})


class TestDeployOutcome:
    def test_defaults_to_extracted(self):
        assert DeployOutcome(url="https://x.test").was_guessed is False


class TestFlowReport:
    def test_counts_and_status(self):
        report = FlowReport(
            operation=Operation.DELETE_DEPLOYMENT,
            project="demo",
            outcomes=[
                StepOutcome(step=Step.LOCATE, status=StepStatus.OK),
                StepOutcome(step=Step.DELETE, status=StepStatus.WARNING, reason="1 of 3"),
            ],
            deletions=[
                DeletionResult(deployment_id="a", ok=True),
                DeletionResult(deployment_id="b", ok=True),
                DeletionResult(deployment_id="c", ok=False, error="HTTP 500"),
            ],
        )
        assert report.succeeded == 2
        assert report.failed == 1
        assert report.fatal is False
        assert [o.step for o in report.warnings] == [Step.DELETE]

    def test_outcome_returns_latest(self):
        report = FlowReport(operation=Operation.DEPLOY, project="demo")
        report.outcomes.append(StepOutcome(step=Step.COMMENT, status=StepStatus.SKIPPED))
        report.outcomes.append(StepOutcome(step=Step.COMMENT, status=StepStatus.OK))
        assert report.outcome(Step.COMMENT).status == StepStatus.OK
        assert report.outcome(Step.UPLOAD) is None

    def test_fatal(self):
        report = FlowReport(
            operation=Operation.DEPLOY,
            project="demo",
            outcomes=[StepOutcome(step=Step.UPLOAD, status=StepStatus.FATAL)],
        )
        assert report.fatal is True
