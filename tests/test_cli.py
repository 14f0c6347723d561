"""Tests for the click CLI entry points."""

from __future__ import annotations

import httpx
import pytest
import respx
from click.testing import CliRunner

from cfpages import cli as cli_module
from cfpages.cli import cli

CF_ENV_NAMES = (
    "CLOUDFLARE_API_TOKEN",
    "INPUT_CLOUDFLARE_API_TOKEN",
    "CLOUDFLARE_ACCOUNT_ID",
    "INPUT_CLOUDFLARE_ACCOUNT_ID",
    "GITHUB_EVENT_PATH",
    "INPUT_PR_NUMBER",
    "INPUT_EVENT",
)


@pytest.fixture()
def env(monkeypatch, tmp_path, api):
    """Environment of a GitHub Actions run, minus anything leaking from the host."""
    for name in CF_ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    # configure_logging caches loggers, which would defeat capture_logs elsewhere
    monkeypatch.setattr(cli_module, "configure_logging", lambda **_: None)
    return {
        "CLOUDFLARE_API_TOKEN": "cf-token",
        "CLOUDFLARE_ACCOUNT_ID": "acc-123",
        "CLOUDFLARE_API_URL": api.projects.split("/accounts/")[0],
        "GITHUB_TOKEN": "",
        "GITHUB_REPOSITORY": "octo/site",
        "GITHUB_OUTPUT": str(tmp_path / "github_output"),
    }


@pytest.fixture()
def fake_wrangler(monkeypatch, make_deployer):
    deployer = make_deployer("✨ Deployment alias URL: https://feature-x.demo.pages.dev\n")
    monkeypatch.setattr(cli_module, "WranglerDeployer", lambda _settings: deployer)
    return deployer


class TestRun:
    def test_unknown_event_exits_1(self, env):
        result = CliRunner().invoke(
            cli, ["run", "--project-name", "demo", "--event", "redeploy"], env=env
        )
        assert result.exit_code == 1

    def test_missing_credentials_exits_1(self, env, dist):
        env["CLOUDFLARE_API_TOKEN"] = ""
        result = CliRunner().invoke(
            cli, ["run", "--project-name", "demo", "--dist-folder", str(dist)], env=env
        )
        assert result.exit_code == 1

    def test_masks_secrets(self, env):
        result = CliRunner().invoke(cli, ["run", "--event", "nope"], env=env)
        assert "::add-mask::cf-token" in result.output

    @respx.mock
    def test_deploy_writes_url_output(self, env, dist, api, fake_wrangler, tmp_path):
        respx.get(f"{api.projects}/demo").mock(
            return_value=httpx.Response(200, json=api.envelope({"name": "demo"}))
        )
        result = CliRunner().invoke(
            cli,
            ["run", "--project-name", "demo", "--dist-folder", str(dist), "--branch", "feature-x"],
            env=env,
        )

        assert result.exit_code == 0, result.output
        assert fake_wrangler.calls == [(dist, "demo", "feature-x")]
        output = (tmp_path / "github_output").read_text()
        assert output == "url=https://feature-x.demo.pages.dev\n"

    @respx.mock
    def test_inputs_read_from_action_env(self, env, dist, api, fake_wrangler):
        respx.get(f"{api.projects}/demo").mock(return_value=httpx.Response(404, json={}))
        env.update(
            {
                "INPUT_PROJECT_NAME": "demo",
                "INPUT_DIST_FOLDER": str(dist),
                "INPUT_BRANCH": "main",
                "INPUT_AUTO_CREATE_PROJECT": "false",
            }
        )
        result = CliRunner().invoke(cli, ["run"], env=env)

        assert result.exit_code == 1
        assert fake_wrangler.calls == []

    @respx.mock
    def test_delete_project(self, env, api):
        route = respx.delete(f"{api.projects}/demo").mock(
            return_value=httpx.Response(200, json=api.envelope(None))
        )
        result = CliRunner().invoke(
            cli, ["run", "--project-name", "demo", "--event", "delete-project"], env=env
        )
        assert result.exit_code == 0, result.output
        assert route.called


class TestCleanup:
    @respx.mock
    def test_dry_run(self, env, api):
        respx.get(f"{api.projects}/demo/deployments").mock(
            return_value=httpx.Response(
                200, json=api.envelope([api.deployment(f"d{i}", minutes=i) for i in range(3)])
            )
        )
        result = CliRunner().invoke(cli, ["cleanup", "demo", "--keep", "1", "--dry-run"], env=env)
        assert result.exit_code == 0, result.output
        assert "Deleted 0, failed 0" in result.output

    @respx.mock
    def test_failures_exit_2(self, env, api):
        respx.get(f"{api.projects}/demo/deployments").mock(
            return_value=httpx.Response(
                200, json=api.envelope([api.deployment(f"d{i}", minutes=i) for i in range(2)])
            )
        )
        respx.delete(f"{api.projects}/demo/deployments/d0").mock(
            return_value=httpx.Response(500, json=api.error(8000000, "Internal error"))
        )
        result = CliRunner().invoke(
            cli, ["cleanup", "demo", "--keep", "1", "--delay", "0"], env=env
        )
        assert result.exit_code == 2
        assert "Deleted 0, failed 1" in result.output

    @respx.mock
    def test_listing_failure_exits_1(self, env, api):
        respx.get(f"{api.projects}/demo/deployments").mock(
            return_value=httpx.Response(500, json=api.error(8000000, "Internal error"))
        )
        result = CliRunner().invoke(cli, ["cleanup", "demo", "--keep", "1"], env=env)
        assert result.exit_code == 1
        assert "Deleted 0, failed 0" not in result.output

    def test_metrics_file_written(self, env, tmp_path):
        env["CLOUDFLARE_ACCOUNT_ID"] = ""
        metrics = tmp_path / "metrics.prom"
        result = CliRunner().invoke(
            cli, ["--metrics-file", str(metrics), "cleanup", "demo"], env=env
        )
        assert result.exit_code == 1
        assert "cfpages_api_requests_total" in metrics.read_text()
