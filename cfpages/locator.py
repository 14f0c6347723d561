"""Find the deployments a run should act on.

Listing talks to the Pages API; everything else here is pure and works on
``DeploymentRecord`` snapshots. Deployment ids are the only stable key: URLs
and aliases are used for matching, never for identity.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from cfpages.models.deployment import (
    AliasPrefix,
    DeploymentRecord,
    ExactBranch,
    MatchCriterion,
    UrlPattern,
    normalize_branch,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cfpages.clients.cloudflare import CloudflareClient

logger = structlog.get_logger()


class DeploymentLocator:
    """Reads a project's deployment history from Cloudflare."""

    def __init__(self, client: CloudflareClient) -> None:
        self.client = client

    async def list_deployments(self, project: str) -> list[DeploymentRecord]:
        """Fetch every page of deployments for *project*, sequentially.

        Pages are never fetched in parallel: new deployments shift the
        page boundaries while we read.
        """
        records: list[DeploymentRecord] = []
        seen: set[str] = set()
        page = 1
        while True:
            result = await self.client.list_deployments(project, page=page)
            for raw in result["deployments"]:
                try:
                    record = DeploymentRecord.from_api(raw)
                except (KeyError, ValidationError) as exc:
                    logger.warning("Skipping undecodable deployment", error=str(exc))
                    continue
                if record.id not in seen:
                    seen.add(record.id)
                    records.append(record)
            if not result["deployments"] or page >= result["total_pages"]:
                break
            page += 1
        logger.debug("Listed deployments", project=project, count=len(records), pages=page)
        return records


def criteria_for(branch: str, prefix: str | None = None) -> list[MatchCriterion]:
    """Priority chain used to find a branch's deployments."""
    normalized = normalize_branch(branch)
    return [
        ExactBranch(branch=branch),
        UrlPattern(normalized_branch=normalized),
        AliasPrefix(prefix=prefix or normalized),
    ]


def find_matching(
    deployments: Sequence[DeploymentRecord],
    criterion: MatchCriterion,
) -> list[DeploymentRecord]:
    """Records selected by a single criterion, in input order."""
    if isinstance(criterion, ExactBranch):
        return [d for d in deployments if d.branch == criterion.branch]
    if isinstance(criterion, UrlPattern):
        needle = criterion.normalized_branch
        if not needle:
            return []
        # only the branch label; the project name and pages.dev suffix are shared
        return [
            d for d in deployments if any(needle in _branch_label(host) for host in d.hosts())
        ]
    if isinstance(criterion, AliasPrefix):
        prefix = criterion.prefix
        if not prefix:
            return []
        return [
            d
            for d in deployments
            if any(alias.split("://", 1)[-1].startswith(prefix) for alias in d.aliases)
        ]
    raise TypeError(f"Unknown match criterion: {criterion!r}")


def _branch_label(host: str) -> str:
    """First DNS label of *host*: ``feature-x`` for ``feature-x.demo.pages.dev``."""
    return host.split("/", 1)[0].split(".", 1)[0]


def resolve(
    deployments: Sequence[DeploymentRecord],
    criteria: Sequence[MatchCriterion],
) -> tuple[list[DeploymentRecord], MatchCriterion | None]:
    """Apply *criteria* in order; the first non-empty selection wins."""
    for criterion in criteria:
        matches = find_matching(deployments, criterion)
        if matches:
            logger.info("Deployments matched", criterion=criterion.kind, count=len(matches))
            return matches, criterion
    return [], None


def exclude_protected(
    matches: Sequence[DeploymentRecord],
    explicit_id: str | None = None,
) -> list[DeploymentRecord]:
    """Drop production deployments from a delete set.

    A production deployment survives the filter only when it is the sole
    match and its id was requested explicitly.
    """
    if len(matches) == 1 and matches[0].is_production and matches[0].id == explicit_id:
        return list(matches)
    kept: list[DeploymentRecord] = []
    for record in matches:
        if record.is_production:
            logger.warning("Refusing to delete production deployment", deployment_id=record.id)
            continue
        kept.append(record)
    return kept


def select_for_retention(
    deployments: Sequence[DeploymentRecord],
    keep_count: int,
    protect_production: bool = True,
) -> tuple[list[DeploymentRecord], list[DeploymentRecord]]:
    """Split *deployments* into ``(to_keep, to_delete)``, both newest first.

    Ordering is ``created_at`` descending with ties broken by ``id``
    ascending, so identical input always yields identical output. With
    *protect_production*, the newest production deployment is kept even when
    it falls outside the ``keep_count`` window.
    """
    by_id = sorted(deployments, key=lambda d: d.id)
    ordered = sorted(by_id, key=lambda d: d.created_at, reverse=True)

    keep_count = max(keep_count, 0)
    to_keep = ordered[:keep_count]
    to_delete = ordered[keep_count:]

    if protect_production:
        newest_prod = next((d for d in ordered if d.is_production), None)
        if newest_prod is not None and newest_prod in to_delete:
            to_delete = [d for d in to_delete if d.id != newest_prod.id]
            to_keep = [*to_keep, newest_prod]
    return to_keep, to_delete
