"""Click CLI entry point for cfpages."""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING

import click
import structlog

from cfpages.actions import mask, set_output
from cfpages.clients.cloudflare import CloudflareClient
from cfpages.clients.github import GitHubClient
from cfpages.config import ActionInputs, Operation, Settings
from cfpages.errors import CfPagesError, ConfigurationError
from cfpages.event import load_event, resolve_linkage
from cfpages.logging import configure_logging
from cfpages.metrics import write_metrics
from cfpages.orchestrator import LifecycleOrchestrator
from cfpages.wrangler import WranglerDeployer

if TYPE_CHECKING:
    from cfpages.models.outcome import FlowReport

logger = structlog.get_logger()


def _build_orchestrator(settings: Settings, inputs: ActionInputs) -> LifecycleOrchestrator:
    if not settings.has_cloudflare_credentials:
        raise ConfigurationError("CLOUDFLARE_API_TOKEN and CLOUDFLARE_ACCOUNT_ID are required")
    cloudflare = CloudflareClient(
        api_token=settings.cloudflare_api_token,
        account_id=settings.cloudflare_account_id,
        base_url=settings.cloudflare_api_url,
    )
    github = GitHubClient(
        token=settings.github_token,
        repository=settings.github_repository,
        base_url=settings.github_api_url,
    )
    linkage = resolve_linkage(
        inputs.environment_name,
        explicit_pr=inputs.pr_number,
        event=load_event(settings.github_event_path),
    )
    return LifecycleOrchestrator(
        inputs=inputs,
        cloudflare=cloudflare,
        github=github,
        deployer=WranglerDeployer(settings),
        linkage=linkage,
    )


def _summarize(report: FlowReport) -> None:
    for outcome in report.warnings:
        logger.debug("Step degraded", step=outcome.step.value, reason=outcome.reason)
    logger.info(
        "Run complete",
        url=report.url,
        deleted=report.succeeded,
        failed=report.failed,
        warnings=len(report.warnings),
    )


def _finish(ctx: click.Context) -> None:
    metrics_file = ctx.obj.get("metrics_file")
    if metrics_file:
        write_metrics(metrics_file)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--metrics-file",
    envvar="CFPAGES_METRICS_FILE",
    default=None,
    help="Write Prometheus metrics to this file after the run",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, metrics_file: str | None) -> None:
    """cfpages — deploy static builds to Cloudflare Pages."""
    ctx.ensure_object(dict)
    settings = Settings()
    log_level = "DEBUG" if verbose else settings.log_level
    configure_logging(log_level=log_level, log_format=settings.log_format)
    for secret in settings.secrets():
        mask(secret)
    ctx.obj["settings"] = settings
    ctx.obj["metrics_file"] = metrics_file


@cli.command()
@click.option("--project-name", envvar="INPUT_PROJECT_NAME", default="", help="Pages project")
@click.option("--dist-folder", envvar="INPUT_DIST_FOLDER", default="", help="Asset directory")
@click.option("--branch", envvar="INPUT_BRANCH", default="main", show_default=True)
@click.option(
    "--event",
    "operation",
    envvar="INPUT_EVENT",
    default=Operation.DEPLOY.value,
    show_default=True,
    help="deploy, delete-deployment or delete-project",
)
@click.option("--headers", envvar="INPUT_HEADERS", default="{}", help="Custom headers JSON")
@click.option("--environment-name", envvar="INPUT_ENVIRONMENT_NAME", default="preview")
@click.option("--auto-create-project", envvar="INPUT_AUTO_CREATE_PROJECT", type=bool, default=True)
@click.option(
    "--cleanup-old-deployments", envvar="INPUT_CLEANUP_OLD_DEPLOYMENTS", type=bool, default=False
)
@click.option("--comment-on-pr", envvar="INPUT_COMMENT_ON_PR", type=bool, default=False)
@click.option(
    "--comment-on-pr-cleanup", envvar="INPUT_COMMENT_ON_PR_CLEANUP", type=bool, default=False
)
@click.option("--deployment-prefix", envvar="INPUT_DEPLOYMENT_PREFIX", default="")
@click.option("--deployment-id", envvar="INPUT_DEPLOYMENT_ID", default="")
@click.option("--keep-deployments", envvar="INPUT_KEEP_DEPLOYMENTS", type=int, default=5)
@click.option("--delete-delay", envvar="INPUT_DELETE_DELAY", type=float, default=0.0)
@click.option("--pr-number", envvar="INPUT_PR_NUMBER", default="")
@click.pass_context
def run(
    ctx: click.Context,
    project_name: str,
    dist_folder: str,
    branch: str,
    operation: str,
    headers: str,
    environment_name: str,
    auto_create_project: bool,
    cleanup_old_deployments: bool,
    comment_on_pr: bool,
    comment_on_pr_cleanup: bool,
    deployment_prefix: str,
    deployment_id: str,
    keep_deployments: int,
    delete_delay: float,
    pr_number: str,
) -> None:
    """Deploy to, or delete from, Cloudflare Pages (GitHub Action entry point)."""
    settings: Settings = ctx.obj["settings"]
    try:
        inputs = ActionInputs.parse(
            project_name=project_name,
            dist_folder=dist_folder,
            branch=branch,
            operation=operation,
            headers=headers or "{}",
            environment_name=environment_name,
            auto_create_project=auto_create_project,
            cleanup_old_deployments=cleanup_old_deployments,
            comment_on_deploy=comment_on_pr,
            comment_on_cleanup=comment_on_pr_cleanup,
            deployment_prefix=deployment_prefix,
            deployment_id=deployment_id,
            keep_count=keep_deployments,
            delete_delay=delete_delay,
            pr_number=pr_number,
        )
        orchestrator = _build_orchestrator(settings, inputs)
        report = asyncio.run(orchestrator.run())
    except CfPagesError as exc:
        logger.error("Action failed", error=str(exc))
        _finish(ctx)
        sys.exit(1)

    if report.operation == Operation.DEPLOY and report.url:
        set_output("url", report.url, settings.github_output)
    _summarize(report)
    _finish(ctx)


@cli.command()
@click.argument("project_name")
@click.option("--keep", "keep_count", type=int, default=5, show_default=True)
@click.option(
    "--protect-production/--no-protect-production",
    default=True,
    show_default=True,
    help="Never delete production deployments",
)
@click.option("--delay", type=float, default=0.15, show_default=True, help="Seconds between deletes")
@click.option("--dry-run", is_flag=True, help="Only report what would be deleted")
@click.pass_context
def cleanup(
    ctx: click.Context,
    project_name: str,
    keep_count: int,
    protect_production: bool,
    delay: float,
    dry_run: bool,
) -> None:
    """Delete all but the newest KEEP deployments of PROJECT_NAME.

    Exits 1 when the deployments cannot be listed and 2 when some deletions failed.
    """
    settings: Settings = ctx.obj["settings"]
    try:
        inputs = ActionInputs.parse(
            project_name=project_name,
            operation=Operation.DELETE_DEPLOYMENT.value,
            keep_count=keep_count,
            delete_delay=delay,
        )
        orchestrator = _build_orchestrator(settings, inputs)
        report = asyncio.run(
            orchestrator.cleanup(protect_production=protect_production, dry_run=dry_run)
        )
    except CfPagesError as exc:
        logger.error("Cleanup failed", error=str(exc))
        _finish(ctx)
        sys.exit(1)

    click.echo(f"Deleted {report.succeeded}, failed {report.failed}")
    _finish(ctx)
    if report.failed:
        sys.exit(2)


if __name__ == "__main__":
    cli()
