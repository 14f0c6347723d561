"""GitHub Actions runner I/O: step outputs and secret masking."""

from __future__ import annotations

import uuid
from pathlib import Path

import click
import structlog

logger = structlog.get_logger()


def mask(value: str) -> None:
    """Ask the runner to redact *value* from all subsequent log output."""
    if value:
        click.echo(f"::add-mask::{value}")


def set_output(name: str, value: str, output_path: str = "") -> None:
    """Append a step output to the ``$GITHUB_OUTPUT`` file.

    Outside Actions (no output file) the value is only logged.
    """
    if not output_path:
        logger.info("Step output", name=name, value=value)
        return
    with Path(output_path).open("a", encoding="utf-8") as fh:
        if "\n" in value:
            delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
            fh.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
        else:
            fh.write(f"{name}={value}\n")
