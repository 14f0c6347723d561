"""Tests for the GitHub Actions log renderer."""

from __future__ import annotations

from cfpages.logging import GitHubActionsRenderer


def _render(level: str, event: str, **kw: object) -> str:
    event_dict = {"level": level, "event": event, "timestamp": "2025-01-01T00:00:00Z", **kw}
    return GitHubActionsRenderer()(None, level, event_dict)


def test_info_is_plain() -> None:
    assert _render("info", "Deployment successful", url="https://x.test") == (
        "Deployment successful url=https://x.test"
    )


def test_warning_becomes_annotation() -> None:
    assert _render("warning", "Step failed, continuing", step="link_pr") == (
        "::warning::Step failed, continuing step=link_pr"
    )


def test_error_newlines_are_encoded() -> None:
    rendered = _render("error", "Action failed", error="line one\nline two 100%")
    assert rendered == "::error::Action failed error=line one%0Aline two 100%25"


def test_debug_and_sorted_context() -> None:
    assert _render("debug", "wrangler", b=2, a=1) == "::debug::wrangler a=1 b=2"
