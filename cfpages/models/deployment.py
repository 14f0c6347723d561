"""Models for Cloudflare Pages deployments and their selection criteria."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_ALIAS_MAX_LEN = 28


def normalize_branch(branch: str) -> str:
    """Return the subdomain label Cloudflare Pages uses as a branch alias.

    >>> normalize_branch("Feature/Login_Page")
    'feature-login-page'
    """
    label = _NON_ALNUM.sub("-", branch.lower())
    return label[:_ALIAS_MAX_LEN].strip("-")


class DeploymentRecord(BaseModel):
    """One remote deployment snapshot at query time."""

    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime
    branch: str | None = None
    url: str | None = None
    aliases: list[str] = Field(default_factory=list)
    is_production: bool = False

    @classmethod
    def from_api(cls, data: dict[str, object]) -> DeploymentRecord:
        """Decode a deployment object from the Pages API."""
        trigger = data.get("deployment_trigger")
        metadata = trigger.get("metadata") if isinstance(trigger, dict) else None
        branch = metadata.get("branch") if isinstance(metadata, dict) else None
        aliases = data.get("aliases")
        return cls(
            id=str(data["id"]),
            created_at=data["created_on"],  # type: ignore[arg-type]
            branch=str(branch) if branch else None,
            url=str(data["url"]) if data.get("url") else None,
            aliases=[str(a) for a in aliases] if isinstance(aliases, list) else [],
            is_production=data.get("environment") == "production",
        )

    def hosts(self) -> list[str]:
        """URL and aliases, scheme stripped, in that order."""
        urls = [self.url, *self.aliases] if self.url else list(self.aliases)
        return [u.split("://", 1)[-1] for u in urls]


class ExactBranch(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["exact_branch"] = "exact_branch"
    branch: str


class UrlPattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["url_pattern"] = "url_pattern"
    normalized_branch: str


class AliasPrefix(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["alias_prefix"] = "alias_prefix"
    prefix: str


MatchCriterion = Annotated[
    ExactBranch | UrlPattern | AliasPrefix,
    Field(discriminator="kind"),
]


class DeployOutcome(BaseModel):
    """Resolved live URL of a deploy. ``was_guessed`` URLs are advisory only."""

    model_config = ConfigDict(frozen=True)

    url: str
    was_guessed: bool = False


class PrLinkage(BaseModel):
    """Pull request a run is acting on, rebuilt from the trigger context each run."""

    model_config = ConfigDict(frozen=True)

    pr_number: int
    environment_name: str
    sha: str | None = None
