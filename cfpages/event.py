"""Reconstruct the pull request a run belongs to from the trigger context."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog

from cfpages.models.deployment import PrLinkage

logger = structlog.get_logger()


def environment_for(environment: str, pr_number: int) -> str:
    """GitHub environment name grouping a PR's deployments, e.g. ``preview/pr-42``."""
    return f"{environment}/pr-{pr_number}"


def load_event(event_path: str) -> dict[str, Any]:
    """Read the webhook payload GitHub Actions stores at ``GITHUB_EVENT_PATH``.

    A missing or unreadable payload is not an error: runs outside Actions
    (or triggered by events without a payload) simply have no PR context.
    """
    if not event_path:
        return {}
    try:
        data = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Could not read event payload", path=event_path, error=str(exc))
        return {}
    return data if isinstance(data, dict) else {}


def _payload_pr(event: dict[str, Any]) -> tuple[int | None, str | None]:
    pull = event.get("pull_request")
    if isinstance(pull, dict) and isinstance(pull.get("number"), int):
        head = pull.get("head")
        sha = head.get("sha") if isinstance(head, dict) else None
        return pull["number"], str(sha) if sha else None
    # issue_comment events on PRs carry the number on the issue
    issue = event.get("issue")
    if isinstance(issue, dict) and "pull_request" in issue and isinstance(issue.get("number"), int):
        return issue["number"], None
    return None, None


def resolve_linkage(
    environment: str,
    explicit_pr: int | None = None,
    event: dict[str, Any] | None = None,
) -> PrLinkage | None:
    """Build the PR linkage from the explicit input, else from the event payload."""
    payload_number, payload_sha = _payload_pr(event or {})
    if explicit_pr is not None:
        sha = payload_sha if payload_number == explicit_pr else None
        return PrLinkage(
            pr_number=explicit_pr,
            environment_name=environment_for(environment, explicit_pr),
            sha=sha,
        )
    if payload_number is None:
        return None
    return PrLinkage(
        pr_number=payload_number,
        environment_name=environment_for(environment, payload_number),
        sha=payload_sha,
    )
