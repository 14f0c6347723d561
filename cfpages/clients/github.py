"""Client for the GitHub REST API: deployments, deployment statuses, PR comments."""

from __future__ import annotations

from typing import Any

import structlog

from cfpages.clients.http import RemoteClient

logger = structlog.get_logger()


class GitHubClient(RemoteClient):
    """Repository-scoped GitHub client (``owner/repo``)."""

    api_name = "github"

    def __init__(
        self,
        token: str = "",
        repository: str = "",
        base_url: str = "https://api.github.com",
    ) -> None:
        super().__init__(base_url, token)
        self.repository = repository

    @property
    def is_available(self) -> bool:
        return bool(self.auth_token and self.repository)

    def _headers(self, auth_token: str) -> dict[str, str]:
        headers = super()._headers(auth_token)
        headers["Accept"] = "application/vnd.github+json"
        headers["X-GitHub-Api-Version"] = "2022-11-28"
        return headers

    def _repo_path(self, *parts: str) -> str:
        return "/".join([f"repos/{self.repository}", *parts])

    async def create_deployment(
        self,
        ref: str,
        environment: str,
        description: str = "",
    ) -> dict[str, Any]:
        """Create a deployment record for *ref* in *environment*.

        Status checks are bypassed (``required_contexts: []``) since the
        deploy has already happened by the time this is called.
        """
        return await self.request(
            "POST",
            self._repo_path("deployments"),
            body={
                "ref": ref,
                "environment": environment,
                "description": description,
                "auto_merge": False,
                "required_contexts": [],
                "transient_environment": True,
            },
        )

    async def create_deployment_status(
        self,
        deployment_id: int,
        state: str,
        environment_url: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"state": state}
        if environment_url:
            body["environment_url"] = environment_url
            body["log_url"] = environment_url
        return await self.request(
            "POST",
            self._repo_path("deployments", str(deployment_id), "statuses"),
            body=body,
        )

    async def list_deployments(self, environment: str) -> list[dict[str, Any]]:
        data = await self.request(
            "GET",
            self._repo_path("deployments"),
            params={"environment": environment, "per_page": 100},
        )
        return [d for d in data if isinstance(d, dict)] if isinstance(data, list) else []

    async def get_pull_request(self, number: int) -> dict[str, Any]:
        return await self.request("GET", self._repo_path("pulls", str(number)))

    async def create_issue_comment(self, number: int, body: str) -> dict[str, Any]:
        return await self.request(
            "POST",
            self._repo_path("issues", str(number), "comments"),
            body={"body": body},
        )
