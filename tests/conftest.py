"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from cfpages.clients.cloudflare import CloudflareClient
from cfpages.clients.github import GitHubClient
from cfpages.config import ActionInputs, Settings
from cfpages.models.deployment import DeploymentRecord
from cfpages.wrangler import CommandResult

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

CF_BASE = "https://cf.test/client/v4"
CF_ACCOUNT = "acc-123"
CF_PROJECTS = f"{CF_BASE}/accounts/{CF_ACCOUNT}/pages/projects"
GH_BASE = "https://gh.test"
GH_REPO = f"{GH_BASE}/repos/octo/site"

BASE_TIME = datetime(2025, 1, 1, tzinfo=UTC)


class FakeDeployer:
    """Stands in for wrangler; records calls instead of spawning a process."""

    def __init__(self, output: str = "", error: Exception | None = None) -> None:
        self.output = output
        self.error = error
        self.calls: list[tuple[Path, str, str]] = []

    async def deploy(self, directory: Path, project: str, branch: str) -> CommandResult:
        self.calls.append((directory, project, branch))
        if self.error is not None:
            raise self.error
        return CommandResult(returncode=0, output=self.output)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        cloudflare_api_token="cf-token",
        cloudflare_account_id=CF_ACCOUNT,
        cloudflare_api_url=CF_BASE,
        github_token="gh-token",
        github_repository="octo/site",
        github_api_url=GH_BASE,
        github_event_path="",
        github_output=str(tmp_path / "github_output"),
        wrangler_command="wrangler",
        log_level="DEBUG",
        log_format="console",
        _env_file=None,
    )


@pytest.fixture()
def cloudflare() -> CloudflareClient:
    return CloudflareClient(api_token="cf-token", account_id=CF_ACCOUNT, base_url=CF_BASE)


@pytest.fixture()
def github() -> GitHubClient:
    return GitHubClient(token="gh-token", repository="octo/site", base_url=GH_BASE)


@pytest.fixture()
def make_deployer() -> type[FakeDeployer]:
    return FakeDeployer


@pytest.fixture()
def dist(tmp_path: Path) -> Path:
    folder = tmp_path / "dist"
    folder.mkdir()
    (folder / "index.html").write_text("<html></html>")
    return folder


@pytest.fixture()
def make_inputs(dist: Path) -> Callable[..., ActionInputs]:
    def _make(**overrides: object) -> ActionInputs:
        raw: dict[str, object] = {
            "project_name": "demo",
            "dist_folder": str(dist),
            "branch": "feature-x",
        }
        raw.update(overrides)
        return ActionInputs.parse(**raw)

    return _make


@pytest.fixture()
def make_record() -> Callable[..., DeploymentRecord]:
    def _make(
        deployment_id: str,
        minutes: int = 0,
        branch: str | None = None,
        url: str | None = None,
        aliases: list[str] | None = None,
        production: bool = False,
    ) -> DeploymentRecord:
        return DeploymentRecord(
            id=deployment_id,
            created_at=BASE_TIME + timedelta(minutes=minutes),
            branch=branch,
            url=url,
            aliases=aliases or [],
            is_production=production,
        )

    return _make


def api_deployment(
    deployment_id: str,
    minutes: int = 0,
    branch: str = "feature-x",
    aliases: list[str] | None = None,
    environment: str = "preview",
) -> dict[str, object]:
    """A deployment object shaped like the Pages API returns it."""
    return {
        "id": deployment_id,
        "url": f"https://{deployment_id}.demo.pages.dev",
        "environment": environment,
        "created_on": (BASE_TIME + timedelta(minutes=minutes)).isoformat(),
        "aliases": aliases,
        "deployment_trigger": {"type": "ad_hoc", "metadata": {"branch": branch}},
    }


def cf_envelope(result: object, **result_info: int) -> dict[str, object]:
    body: dict[str, object] = {"success": True, "errors": [], "messages": [], "result": result}
    if result_info:
        body["result_info"] = result_info
    return body


def cf_error(code: int, message: str) -> dict[str, object]:
    return {"success": False, "errors": [{"code": code, "message": message}], "result": None}


@pytest.fixture()
def api() -> object:
    """Namespace of wire-format builders, so tests need not import conftest."""

    class _Api:
        deployment = staticmethod(api_deployment)
        envelope = staticmethod(cf_envelope)
        error = staticmethod(cf_error)
        projects = CF_PROJECTS
        repo = GH_REPO

    return _Api
