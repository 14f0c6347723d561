"""Reflect deployment state on a pull request: GitHub deployments and comments.

Every operation is a logged no-op when there is no pull request to annotate
or no GitHub credentials. Comments are not deduplicated; posting the same
text twice yields two comments.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from cfpages.clients.github import GitHubClient
    from cfpages.models.deployment import PrLinkage

logger = structlog.get_logger()


def format_deploy_comment(url: str, was_guessed: bool = False, sha: str | None = None) -> str:
    lines = [
        "### Cloudflare Pages deployment",
        "",
        f"| Preview | {url} |",
        "|---|---|",
    ]
    if sha:
        lines.append(f"| Commit | `{sha[:7]}` |")
    if was_guessed:
        lines += [
            "",
            "_The URL could not be read from the deploy output and was derived "
            "from the branch name; it may not be live yet._",
        ]
    return "\n".join(lines)


def format_cleanup_comment(project: str, deleted: int, failed: int = 0) -> str:
    text = f"### Cloudflare Pages cleanup\n\nRemoved {deleted} deployment(s) of `{project}`."
    if failed:
        text += f" {failed} deletion(s) failed and may need manual cleanup."
    return text


class PrAnnotator:
    def __init__(self, client: GitHubClient) -> None:
        self.client = client

    @property
    def is_available(self) -> bool:
        return self.client.is_available

    def _skip(self, action: str, linkage: PrLinkage | None) -> bool:
        if linkage is None:
            logger.info("Not a pull request run, skipping", action=action)
            return True
        if not self.is_available:
            logger.info("GitHub token or repository not configured, skipping", action=action)
            return True
        return False

    async def _head_sha(self, linkage: PrLinkage) -> str:
        if linkage.sha:
            return linkage.sha
        pull = await self.client.get_pull_request(linkage.pr_number)
        head = pull.get("head") if isinstance(pull, dict) else None
        sha = head.get("sha") if isinstance(head, dict) else None
        if not sha:
            raise ValueError(f"Pull request #{linkage.pr_number} has no head commit")
        return str(sha)

    async def link_deployment(self, linkage: PrLinkage | None, url: str) -> None:
        """Create a GitHub deployment on the PR head and mark it live at *url*."""
        if self._skip("link_deployment", linkage):
            return
        assert linkage is not None
        sha = await self._head_sha(linkage)
        deployment = await self.client.create_deployment(
            ref=sha,
            environment=linkage.environment_name,
            description=f"Cloudflare Pages preview for PR #{linkage.pr_number}",
        )
        await self.client.create_deployment_status(
            deployment["id"], state="success", environment_url=url
        )
        logger.info(
            "Linked deployment to pull request",
            pr=linkage.pr_number,
            environment=linkage.environment_name,
            url=url,
        )

    async def unlink_deployment(self, linkage: PrLinkage | None) -> int:
        """Mark every GitHub deployment in the PR's environment inactive."""
        if self._skip("unlink_deployment", linkage):
            return 0
        assert linkage is not None
        deployments = await self.client.list_deployments(linkage.environment_name)
        for deployment in deployments:
            await self.client.create_deployment_status(deployment["id"], state="inactive")
        logger.info(
            "Deactivated pull request deployments",
            pr=linkage.pr_number,
            environment=linkage.environment_name,
            count=len(deployments),
        )
        return len(deployments)

    async def post_comment(self, linkage: PrLinkage | None, text: str) -> None:
        if self._skip("post_comment", linkage):
            return
        assert linkage is not None
        await self.client.create_issue_comment(linkage.pr_number, text)
        logger.info("Commented on pull request", pr=linkage.pr_number)
