"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys

import structlog

# structlog level name -> GitHub Actions workflow command
_WORKFLOW_COMMANDS = {
    "debug": "debug",
    "warning": "warning",
    "error": "error",
    "critical": "error",
}


class GitHubActionsRenderer:
    """Render events as GitHub Actions workflow commands.

    Warnings and errors become ``::warning::`` / ``::error::`` annotations so they
    surface on the run summary; info lines are printed as-is.
    """

    def __call__(
        self,
        _logger: object,
        _method_name: str,
        event_dict: structlog.types.EventDict,
    ) -> str:
        level = str(event_dict.pop("level", "info"))
        event_dict.pop("timestamp", None)
        event = str(event_dict.pop("event", ""))
        exc = event_dict.pop("exception", None)
        context = " ".join(f"{key}={value}" for key, value in sorted(event_dict.items()))
        message = f"{event} {context}".strip()
        if exc:
            message = f"{message}\n{exc}"
        command = _WORKFLOW_COMMANDS.get(level)
        if command is None:
            return message
        # Workflow commands are single-line; newlines must be URL-encoded.
        encoded = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
        return f"::{command}::{encoded}"


def configure_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Configure structlog and stdlib logging.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        log_format: "console" for human-readable, "json" for machine-readable,
            "github" for GitHub Actions workflow commands.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    elif log_format == "github":
        renderer = GitHubActionsRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route stdlib logging (httpx) through the same renderer.
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *shared_processors,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level.upper())
    # httpx logs every request at INFO; keep CI output focused.
    logging.getLogger("httpx").setLevel(logging.WARNING)
