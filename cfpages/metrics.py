"""Prometheus metric definitions for cfpages runs."""

from __future__ import annotations

from prometheus_client import REGISTRY, Counter, Histogram, write_to_textfile

# --- Remote APIs ---

api_requests_total = Counter(
    "cfpages_api_requests_total",
    "Requests issued to remote management APIs",
    labelnames=["api", "status"],
)

# --- Orchestrator steps ---

step_outcomes_total = Counter(
    "cfpages_step_outcomes_total",
    "Orchestrator step outcomes",
    labelnames=["step", "status"],
)

step_duration_seconds = Histogram(
    "cfpages_step_duration_seconds",
    "Time spent executing an orchestrator step",
    labelnames=["step"],
    buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60, 120, 300),
)

# --- Deletions ---

deployments_deleted_total = Counter(
    "cfpages_deployments_deleted_total",
    "Deployment deletions by outcome",
    labelnames=["outcome"],
)


def write_metrics(path: str) -> None:
    """Dump the default registry in textfile-collector format."""
    write_to_textfile(path, REGISTRY)
