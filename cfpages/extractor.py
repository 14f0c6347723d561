"""Recover the live deployment URL from wrangler output.

wrangler has changed its completion message several times across releases,
and a single run can print more than one URL. Matchers are tried in priority
order; the first hit wins. New message formats are appended with a new
priority rather than by reordering existing entries.
"""

from __future__ import annotations

import re
from typing import NamedTuple

import structlog

from cfpages.models.deployment import DeployOutcome, normalize_branch

logger = structlog.get_logger()

PLATFORM_SUFFIX = "pages.dev"
PRODUCTION_BRANCH = "main"

# Decorative characters (emoji, colons, arrows) between phrase and URL.
_GAP = r"[^\w]*?"
_URL = r"(https?://[^\s'\"<>]+)"


class UrlMatcher(NamedTuple):
    priority: int
    name: str
    pattern: re.Pattern[str]


def _matcher(priority: int, name: str, phrase: str) -> UrlMatcher:
    return UrlMatcher(priority, name, re.compile(phrase + _GAP + _URL, re.IGNORECASE))


MATCHERS: tuple[UrlMatcher, ...] = tuple(
    sorted(
        (
            _matcher(10, "alias_url", r"Deployment alias URL"),
            _matcher(20, "take_a_peek", r"Take a peek over at"),
            _matcher(30, "deployment_complete", r"Deployment complete!.*?"),
            _matcher(40, "successfully_deployed", r"Successfully deployed to"),
            _matcher(50, "published_to", r"(?:Published|Deployed) to"),
        ),
        key=lambda m: m.priority,
    )
)


def guess_url(branch: str, project: str) -> str:
    """Build the URL Cloudflare assigns to *branch* of *project*."""
    prefix = "" if branch == PRODUCTION_BRANCH else f"{normalize_branch(branch)}."
    return f"https://{prefix}{project}.{PLATFORM_SUFFIX}"


def match_url(
    raw_text: str,
    matchers: tuple[UrlMatcher, ...] = MATCHERS,
) -> tuple[str, str] | None:
    """Return ``(matcher name, url)`` for the first matcher that hits, else None."""
    for matcher in matchers:
        found = matcher.pattern.search(raw_text)
        if found:
            return matcher.name, found.group(1).strip().rstrip(".,;)")
    return None


def extract(raw_text: str, branch: str, project: str) -> DeployOutcome:
    """Resolve the deployment URL, falling back to a constructed guess. Never raises."""
    hit = match_url(raw_text or "")
    if hit is not None:
        name, url = hit
        logger.debug("Deployment URL parsed", matcher=name, url=url)
        return DeployOutcome(url=url, was_guessed=False)
    url = guess_url(branch, project)
    logger.debug("No deployment URL in output, using constructed URL", url=url)
    return DeployOutcome(url=url, was_guessed=True)
