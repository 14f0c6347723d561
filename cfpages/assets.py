"""Checks and sidecar files for the build artifact directory."""

from __future__ import annotations

import json
import os
from pathlib import Path

import structlog

from cfpages.errors import ArtifactError

logger = structlog.get_logger()

HEADERS_SIDECAR = "_headers.json"


def ensure_artifact_dir(path: Path) -> Path:
    """Fail fast if *path* is not a readable directory."""
    if not path.exists():
        raise ArtifactError(f'Distribution folder "{path}" does not exist')
    if not path.is_dir():
        raise ArtifactError(f'Distribution folder "{path}" is not a directory')
    if not os.access(path, os.R_OK | os.X_OK):
        raise ArtifactError(f'Distribution folder "{path}" is not readable')
    return path


def write_headers_sidecar(directory: Path, raw: str) -> Path | None:
    """Write the custom header rules verbatim next to the assets.

    *raw* must be a JSON object mapping asset paths to header settings. An
    empty object writes nothing and returns None.

    Raises:
        ValueError: if *raw* is not a JSON object.
        OSError: if the sidecar cannot be written.
    """
    rules = json.loads(raw or "{}")
    if not isinstance(rules, dict):
        raise ValueError("HEADERS must be a JSON object")
    if not rules:
        return None
    target = directory / HEADERS_SIDECAR
    target.write_text(raw, encoding="utf-8")
    logger.info("Custom headers written", path=str(target), rules=len(rules))
    return target
