"""Lifecycle orchestrator: sequences the deploy and delete flows.

Each flow is a fixed sequence of steps. Whether a failing step aborts the run
or merely degrades it is decided by ``FAILURE_POLICY``, not by the step
itself: steps raise, ``_run_step`` classifies.
"""

from __future__ import annotations

import asyncio
import inspect
import time as time_mod
from typing import TYPE_CHECKING, TypeVar

import structlog

from cfpages.annotator import PrAnnotator, format_cleanup_comment, format_deploy_comment
from cfpages.assets import ensure_artifact_dir, write_headers_sidecar
from cfpages.clients.http import ApiError
from cfpages.config import ActionInputs, Operation
from cfpages.errors import CfPagesError, FatalStepError
from cfpages.extractor import extract
from cfpages.locator import (
    DeploymentLocator,
    criteria_for,
    exclude_protected,
    resolve,
    select_for_retention,
)
from cfpages.metrics import deployments_deleted_total, step_duration_seconds, step_outcomes_total
from cfpages.models.outcome import (
    DeletionResult,
    FlowReport,
    Severity,
    Step,
    StepOutcome,
    StepStatus,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from cfpages.clients.cloudflare import CloudflareClient
    from cfpages.clients.github import GitHubClient
    from cfpages.models.deployment import DeploymentRecord, DeployOutcome, PrLinkage
    from cfpages.wrangler import CommandResult, Deployer

logger = structlog.get_logger()

T = TypeVar("T")

FAILURE_POLICY: dict[Step, Severity] = {
    Step.VALIDATE_ARTIFACT: Severity.FATAL,
    Step.CHECK_PROJECT: Severity.FATAL,
    Step.CREATE_PROJECT: Severity.FATAL,
    Step.WRITE_HEADERS: Severity.WARNING,
    Step.UPLOAD: Severity.FATAL,
    Step.EXTRACT_URL: Severity.WARNING,
    Step.CLEANUP: Severity.WARNING,
    Step.LINK_PR: Severity.WARNING,
    Step.LOCATE: Severity.WARNING,
    Step.DELETE: Severity.WARNING,
    Step.DELETE_PROJECT: Severity.FATAL,
    Step.UNLINK_PR: Severity.WARNING,
    Step.COMMENT: Severity.WARNING,
}


class ProjectMissingError(CfPagesError):
    """The Pages project does not exist and may not be created."""


class LifecycleOrchestrator:
    """Runs one flow per invocation. Holds no state between runs."""

    def __init__(
        self,
        inputs: ActionInputs,
        cloudflare: CloudflareClient,
        github: GitHubClient,
        deployer: Deployer,
        linkage: PrLinkage | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.inputs = inputs
        self.cloudflare = cloudflare
        self.deployer = deployer
        self.linkage = linkage
        self.locator = DeploymentLocator(cloudflare)
        self.annotator = PrAnnotator(github)
        self._sleep = sleep

    async def run(self) -> FlowReport:
        """Dispatch to the flow selected by the ``EVENT`` input."""
        with structlog.contextvars.bound_contextvars(
            operation=self.inputs.operation.value,
            project=self.inputs.project_name,
        ):
            if self.inputs.operation == Operation.DEPLOY:
                return await self.deploy()
            if self.inputs.operation == Operation.DELETE_DEPLOYMENT:
                return await self.delete_deployment()
            return await self.delete_project()

    # ------------------------------------------------------------------
    # Step plumbing
    # ------------------------------------------------------------------

    def _record(
        self,
        report: FlowReport,
        step: Step,
        status: StepStatus,
        reason: str = "",
    ) -> None:
        report.outcomes.append(StepOutcome(step=step, status=status, reason=reason))
        step_outcomes_total.labels(step=step.value, status=status.value).inc()

    async def _run_step(
        self,
        report: FlowReport,
        step: Step,
        fn: Callable[[], T | Awaitable[T]],
    ) -> T | None:
        """Run *fn* as *step*, classifying any failure through FAILURE_POLICY.

        Returns the step's result, or None after a non-fatal failure.

        Raises:
            FatalStepError: if the step failed and its policy is fatal.
        """
        t0 = time_mod.monotonic()
        try:
            result = fn()
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            reason = str(exc) or exc.__class__.__name__
            if FAILURE_POLICY[step] == Severity.FATAL:
                self._record(report, step, StepStatus.FATAL, reason)
                logger.error("Step failed", step=step.value, error=reason)
                raise FatalStepError(step.value, reason) from exc
            self._record(report, step, StepStatus.WARNING, reason)
            logger.warning("Step failed, continuing", step=step.value, error=reason)
            return None
        finally:
            step_duration_seconds.labels(step=step.value).observe(time_mod.monotonic() - t0)
        self._record(report, step, StepStatus.OK)
        return result  # type: ignore[return-value]

    def _record_deletions(self, report: FlowReport) -> None:
        """Deletion failures degrade the run; they never abort it."""
        if report.failed:
            reason = f"{report.failed} of {len(report.deletions)} deletions failed"
            logger.warning("Some deletions failed", failed=report.failed, ok=report.succeeded)
            self._record(report, Step.DELETE, StepStatus.WARNING, reason)
        else:
            self._record(report, Step.DELETE, StepStatus.OK)

    def _skip(self, report: FlowReport, step: Step, reason: str) -> None:
        logger.debug("Step skipped", step=step.value, reason=reason)
        self._record(report, step, StepStatus.SKIPPED, reason)

    async def _annotate(
        self,
        report: FlowReport,
        step: Step,
        fn: Callable[[], Awaitable[object]],
    ) -> None:
        """Run a pull request step, or record it skipped when there is nothing to annotate."""
        if self.linkage is None:
            self._skip(report, step, "not a pull request")
        elif not self.annotator.is_available:
            self._skip(report, step, "GitHub token or repository not configured")
        else:
            await self._run_step(report, step, fn)

    # ------------------------------------------------------------------
    # Deploy flow
    # ------------------------------------------------------------------

    async def deploy(self) -> FlowReport:
        inputs = self.inputs
        report = FlowReport(operation=Operation.DEPLOY, project=inputs.project_name)
        dist = inputs.dist_folder
        if dist is None:
            self._record(report, Step.VALIDATE_ARTIFACT, StepStatus.FATAL, "DIST_FOLDER not set")
            raise FatalStepError(Step.VALIDATE_ARTIFACT.value, "DIST_FOLDER not set")

        logger.info(
            "Deploying to Cloudflare Pages",
            dist_folder=str(dist),
            branch=inputs.branch,
        )
        # No network call happens before the artifact directory is known good.
        await self._run_step(report, Step.VALIDATE_ARTIFACT, lambda: ensure_artifact_dir(dist))

        exists = await self._run_step(report, Step.CHECK_PROJECT, self._check_project)
        if exists:
            self._skip(report, Step.CREATE_PROJECT, "project exists")
        else:
            await self._run_step(
                report,
                Step.CREATE_PROJECT,
                lambda: self.cloudflare.create_project(inputs.project_name),
            )

        await self._run_step(
            report, Step.WRITE_HEADERS, lambda: write_headers_sidecar(dist, inputs.headers)
        )
        result: CommandResult = await self._run_step(  # type: ignore[assignment]
            report,
            Step.UPLOAD,
            lambda: self.deployer.deploy(dist, inputs.project_name, inputs.branch),
        )

        outcome: DeployOutcome = extract(result.output, inputs.branch, inputs.project_name)
        report.url = outcome.url
        report.url_was_guessed = outcome.was_guessed
        if outcome.was_guessed:
            self._record(
                report,
                Step.EXTRACT_URL,
                StepStatus.WARNING,
                f"URL not found in deploy output; using {outcome.url}",
            )
            logger.warning("Could not extract deployment URL from output", guessed_url=outcome.url)
        else:
            self._record(report, Step.EXTRACT_URL, StepStatus.OK)
        logger.info("Deployment successful", url=outcome.url)

        if inputs.cleanup_old_deployments:
            await self._run_step(report, Step.CLEANUP, lambda: self._cleanup_branch(report))
        else:
            self._skip(report, Step.CLEANUP, "cleanup disabled")

        await self._annotate(
            report, Step.LINK_PR, lambda: self.annotator.link_deployment(self.linkage, outcome.url)
        )

        if inputs.comment_on_deploy:
            sha = self.linkage.sha if self.linkage else None
            text = format_deploy_comment(outcome.url, outcome.was_guessed, sha)
            await self._annotate(
                report, Step.COMMENT, lambda: self.annotator.post_comment(self.linkage, text)
            )
        else:
            self._skip(report, Step.COMMENT, "commenting disabled")
        return report

    async def _check_project(self) -> bool:
        name = self.inputs.project_name
        project = await self.cloudflare.get_project(name)
        if project is not None:
            logger.debug("Project exists", project=name)
            return True
        if not self.inputs.auto_create_project:
            raise ProjectMissingError(
                f'Cloudflare Pages project "{name}" does not exist and auto-create is disabled'
            )
        logger.info("Project does not exist, creating it", project=name)
        return False

    async def _cleanup_branch(self, report: FlowReport) -> None:
        """Retention pass over this branch's deployments after a deploy."""
        records = await self.locator.list_deployments(self.inputs.project_name)
        matches, _ = resolve(
            records, criteria_for(self.inputs.branch, self.inputs.deployment_prefix)
        )
        _, to_delete = select_for_retention(
            matches, self.inputs.keep_count, protect_production=True
        )
        to_delete = exclude_protected(to_delete)
        if not to_delete:
            logger.info("No old deployments to clean up", kept=len(matches))
            return
        logger.info("Cleaning up old deployments", count=len(to_delete))
        report.deletions.extend(await self._delete_concurrently(to_delete))

    # ------------------------------------------------------------------
    # Delete flows
    # ------------------------------------------------------------------

    async def delete_deployment(self) -> FlowReport:
        inputs = self.inputs
        report = FlowReport(operation=Operation.DELETE_DEPLOYMENT, project=inputs.project_name)
        logger.info("Deleting deployments", branch=inputs.branch)

        matches = await self._run_step(report, Step.LOCATE, self._locate)
        if matches:
            report.deletions.extend(await self._delete_concurrently(matches))
            self._record_deletions(report)
        elif matches is None:
            self._skip(report, Step.DELETE, "deployments could not be listed")
        else:
            logger.info("No matching deployments found", branch=inputs.branch)
            self._skip(report, Step.DELETE, "no matching deployments")

        await self._pr_cleanup(report)
        return report

    async def _locate(self) -> list[DeploymentRecord]:
        try:
            records = await self.locator.list_deployments(self.inputs.project_name)
        except ApiError as exc:
            if not exc.is_not_found:
                raise
            logger.info("Project not found, nothing to delete", project=self.inputs.project_name)
            return []
        explicit_id = self.inputs.deployment_id
        if explicit_id:
            matches = [r for r in records if r.id == explicit_id]
        else:
            matches, _ = resolve(
                records, criteria_for(self.inputs.branch, self.inputs.deployment_prefix)
            )
        return exclude_protected(matches, explicit_id)

    async def delete_project(self) -> FlowReport:
        report = FlowReport(operation=Operation.DELETE_PROJECT, project=self.inputs.project_name)
        logger.info("Deleting Pages project")
        await self._run_step(report, Step.DELETE_PROJECT, lambda: self._delete_project(report))
        await self._pr_cleanup(report)
        return report

    async def _delete_project(self, report: FlowReport) -> None:
        name = self.inputs.project_name
        try:
            await self.cloudflare.delete_project(name)
        except ApiError as exc:
            if exc.is_not_found:
                logger.info("Project not found, nothing to delete", project=name)
                return
            if not exc.is_too_many_deployments:
                raise
            logger.warning("Project has too many deployments to delete, cleaning up first")
            await self._bulk_cleanup(report)
            try:
                await self.cloudflare.delete_project(name)
            except ApiError as retry_exc:
                if not retry_exc.is_not_found:
                    raise
        logger.info("Deleted project", project=name)

    async def _bulk_cleanup(self, report: FlowReport) -> None:
        records = await self.locator.list_deployments(self.inputs.project_name)
        _, to_delete = select_for_retention(records, self.inputs.keep_count)
        to_delete = exclude_protected(to_delete)
        logger.info("Bulk cleanup", total=len(records), deleting=len(to_delete))
        # oldest first
        report.deletions.extend(await self.delete_sequentially(list(reversed(to_delete))))

    async def _pr_cleanup(self, report: FlowReport) -> None:
        await self._annotate(
            report, Step.UNLINK_PR, lambda: self.annotator.unlink_deployment(self.linkage)
        )

        if self.inputs.comment_on_cleanup:
            text = format_cleanup_comment(report.project, report.succeeded, report.failed)
            await self._annotate(
                report, Step.COMMENT, lambda: self.annotator.post_comment(self.linkage, text)
            )
        else:
            self._skip(report, Step.COMMENT, "commenting disabled")

    # ------------------------------------------------------------------
    # Deletion primitives
    # ------------------------------------------------------------------

    async def _delete_one(self, record: DeploymentRecord) -> DeletionResult:
        try:
            await self.cloudflare.delete_deployment(self.inputs.project_name, record.id)
        except ApiError as exc:
            if exc.is_not_found:
                logger.info("Deployment already gone", deployment_id=record.id)
                deployments_deleted_total.labels(outcome="absent").inc()
                return DeletionResult(deployment_id=record.id, ok=True)
            logger.warning("Failed to delete deployment", deployment_id=record.id, error=str(exc))
            deployments_deleted_total.labels(outcome="failed").inc()
            return DeletionResult(deployment_id=record.id, ok=False, error=str(exc))
        logger.info("Deleted deployment", deployment_id=record.id)
        deployments_deleted_total.labels(outcome="deleted").inc()
        return DeletionResult(deployment_id=record.id, ok=True)

    async def _delete_concurrently(
        self, records: Sequence[DeploymentRecord]
    ) -> list[DeletionResult]:
        """Fan out one deletion per record; one failure never hides the others."""
        results = await asyncio.gather(
            *(self._delete_one(r) for r in records), return_exceptions=True
        )
        collected: list[DeletionResult] = []
        for record, result in zip(records, results, strict=True):
            if isinstance(result, BaseException):
                deployments_deleted_total.labels(outcome="failed").inc()
                collected.append(
                    DeletionResult(deployment_id=record.id, ok=False, error=str(result))
                )
            else:
                collected.append(result)
        return collected

    async def delete_sequentially(
        self, records: Sequence[DeploymentRecord]
    ) -> list[DeletionResult]:
        """Delete in order, pausing ``delete_delay`` seconds between requests."""
        results: list[DeletionResult] = []
        for index, record in enumerate(records):
            if index and self.inputs.delete_delay:
                await self._sleep(self.inputs.delete_delay)
            results.append(await self._delete_one(record))
        return results

    # ------------------------------------------------------------------
    # Scheduled cleanup
    # ------------------------------------------------------------------

    async def cleanup(self, protect_production: bool = True, dry_run: bool = False) -> FlowReport:
        """Keep the newest ``keep_count`` deployments of the project, delete the rest.

        With *protect_production* no production deployment is deleted at all.

        Raises:
            FatalStepError: if the deployments could not be listed.
        """
        project = self.inputs.project_name
        report = FlowReport(operation=Operation.DELETE_DEPLOYMENT, project=project)
        records = await self._run_step(
            report,
            Step.LOCATE,
            lambda: self.locator.list_deployments(project),
        )
        if records is None:
            failure = report.outcome(Step.LOCATE)
            reason = failure.reason if failure else "deployments could not be listed"
            raise FatalStepError(Step.LOCATE.value, reason)
        to_keep, to_delete = select_for_retention(
            records, self.inputs.keep_count, protect_production=protect_production
        )
        if protect_production:
            to_delete = exclude_protected(to_delete)
        logger.info("Retention plan", keep=len(to_keep), delete=len(to_delete))
        if dry_run:
            for record in to_delete:
                logger.info("Would delete", deployment_id=record.id, created_at=record.created_at)
            self._skip(report, Step.DELETE, "dry run")
            return report
        report.deletions.extend(await self.delete_sequentially(list(reversed(to_delete))))
        self._record_deletions(report)
        return report
