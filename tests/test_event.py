"""Tests for pull request linkage resolution from the trigger context."""

from __future__ import annotations

import json

from cfpages.event import environment_for, load_event, resolve_linkage

PR_EVENT = {"pull_request": {"number": 42, "head": {"sha": "deadbeef"}}}


def test_environment_name() -> None:
    assert environment_for("preview", 42) == "preview/pr-42"


class TestLoadEvent:
    def test_reads_payload(self, tmp_path) -> None:
        path = tmp_path / "event.json"
        path.write_text(json.dumps(PR_EVENT))
        assert load_event(str(path)) == PR_EVENT

    def test_missing_file_is_empty(self, tmp_path) -> None:
        assert load_event(str(tmp_path / "nope.json")) == {}

    def test_invalid_json_is_empty(self, tmp_path) -> None:
        path = tmp_path / "event.json"
        path.write_text("{not json")
        assert load_event(str(path)) == {}

    def test_no_path(self) -> None:
        assert load_event("") == {}


class TestResolveLinkage:
    def test_from_pull_request_payload(self) -> None:
        linkage = resolve_linkage("preview", event=PR_EVENT)
        assert linkage is not None
        assert linkage.pr_number == 42
        assert linkage.sha == "deadbeef"
        assert linkage.environment_name == "preview/pr-42"

    def test_explicit_number_wins(self) -> None:
        linkage = resolve_linkage("staging", explicit_pr=9, event=PR_EVENT)
        assert linkage is not None
        assert linkage.pr_number == 9
        assert linkage.sha is None
        assert linkage.environment_name == "staging/pr-9"

    def test_explicit_number_keeps_matching_sha(self) -> None:
        linkage = resolve_linkage("preview", explicit_pr=42, event=PR_EVENT)
        assert linkage is not None
        assert linkage.sha == "deadbeef"

    def test_issue_comment_on_pull_request(self) -> None:
        event = {"issue": {"number": 5, "pull_request": {"url": "x"}}}
        linkage = resolve_linkage("preview", event=event)
        assert linkage is not None
        assert linkage.pr_number == 5

    def test_plain_issue_is_not_a_pull_request(self) -> None:
        assert resolve_linkage("preview", event={"issue": {"number": 5}}) is None

    def test_push_event_has_no_linkage(self) -> None:
        assert resolve_linkage("preview", event={"ref": "refs/heads/main"}) is None
