"""Client for the Cloudflare Pages management API.

Covers project lifecycle (get/create/delete) and deployment listing and
deletion. Uploads go through wrangler instead (see ``cfpages.wrangler``).
API docs: https://developers.cloudflare.com/api/resources/pages/
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from typing_extensions import TypedDict

from cfpages.clients.http import ApiError, RemoteClient

logger = structlog.get_logger()


class PagesProject(TypedDict):
    name: str
    subdomain: str
    id: str
    created_on: str
    production_branch: str


class DeploymentPage(TypedDict):
    deployments: list[dict[str, Any]]
    page: int
    total_pages: int


class CloudflareClient(RemoteClient):
    """Account-scoped Cloudflare Pages client."""

    api_name = "cloudflare"

    def __init__(
        self,
        api_token: str = "",
        account_id: str = "",
        base_url: str = "https://api.cloudflare.com/client/v4",
    ) -> None:
        super().__init__(base_url, api_token)
        self.account_id = account_id

    @property
    def is_available(self) -> bool:
        return bool(self.auth_token and self.account_id)

    def _projects_path(self, *parts: str) -> str:
        return "/".join([f"accounts/{self.account_id}/pages/projects", *parts])

    async def _call(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, str | int] | None = None,
    ) -> dict[str, Any]:
        """Request and unwrap the ``{"success", "result", "errors"}`` envelope."""
        data = await self.request(method, path, body=body, params=params)
        if not isinstance(data, dict):
            return {}
        if data.get("success") is False:
            raise ApiError(
                f"{method} {path} reported success=false",
                status_code=200,
                raw_body=json.dumps(data),
            )
        return data

    async def get_project(self, name: str) -> PagesProject | None:
        """Fetch a Pages project, or None when it does not exist."""
        try:
            data = await self._call("GET", self._projects_path(name))
        except ApiError as exc:
            if exc.is_not_found:
                return None
            raise
        result = data.get("result") or {}
        return _project(result)

    async def create_project(self, name: str, production_branch: str = "main") -> PagesProject:
        """Create a new Pages project served at ``{name}.pages.dev``."""
        data = await self._call(
            "POST",
            self._projects_path(),
            body={"name": name, "production_branch": production_branch},
        )
        logger.info("Created Pages project", project=name)
        return _project(data.get("result") or {})

    async def delete_project(self, name: str) -> None:
        await self._call("DELETE", self._projects_path(name))

    async def list_deployments(self, project: str, page: int = 1) -> DeploymentPage:
        """Fetch one page of deployments, newest first.

        Only ``page`` is sent: passing ``per_page`` makes the endpoint reject
        the request for some accounts.
        """
        data = await self._call(
            "GET",
            self._projects_path(project, "deployments"),
            params={"page": page},
        )
        raw = data.get("result")
        deployments = [d for d in raw if isinstance(d, dict)] if isinstance(raw, list) else []
        info = data.get("result_info")
        total_pages = page
        if isinstance(info, dict):
            if isinstance(info.get("total_pages"), int):
                total_pages = info["total_pages"]
            elif isinstance(info.get("total_count"), int) and isinstance(info.get("per_page"), int):
                per_page = max(info["per_page"], 1)
                total_pages = -(-info["total_count"] // per_page)
        return {"deployments": deployments, "page": page, "total_pages": total_pages}

    async def delete_deployment(self, project: str, deployment_id: str) -> None:
        """Delete one deployment. ``force`` allows removing aliased deployments."""
        await self._call(
            "DELETE",
            self._projects_path(project, "deployments", deployment_id),
            params={"force": "true"},
        )


def _project(result: dict[str, Any]) -> PagesProject:
    return {
        "name": str(result.get("name", "")),
        "subdomain": str(result.get("subdomain", "")),
        "id": str(result.get("id", "")),
        "created_on": str(result.get("created_on", "")),
        "production_branch": str(result.get("production_branch", "")),
    }
