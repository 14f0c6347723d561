"""Re-exports all Pydantic models."""

from cfpages.models.deployment import (
    AliasPrefix,
    DeploymentRecord,
    DeployOutcome,
    ExactBranch,
    MatchCriterion,
    PrLinkage,
    UrlPattern,
    normalize_branch,
)
from cfpages.models.outcome import (
    DeletionResult,
    FlowReport,
    Severity,
    Step,
    StepOutcome,
    StepStatus,
)

__all__ = [
    "AliasPrefix",
    "DeletionResult",
    "DeployOutcome",
    "DeploymentRecord",
    "ExactBranch",
    "FlowReport",
    "MatchCriterion",
    "PrLinkage",
    "Severity",
    "Step",
    "StepOutcome",
    "StepStatus",
    "UrlPattern",
    "normalize_branch",
]
