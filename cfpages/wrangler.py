"""Deploy primitive: run ``wrangler pages deploy`` against an asset folder."""

from __future__ import annotations

import asyncio
import os
import shlex
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import structlog

from cfpages.errors import DeployCommandError

if TYPE_CHECKING:
    from pathlib import Path

    from cfpages.config import Settings

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class CommandResult:
    returncode: int
    output: str


class Deployer(Protocol):
    async def deploy(self, directory: Path, project: str, branch: str) -> CommandResult: ...


class WranglerDeployer:
    """Runs wrangler as a subprocess with credentials passed through its env only."""

    def __init__(self, settings: Settings) -> None:
        self.command = shlex.split(settings.wrangler_command)
        self._secrets = settings.secrets()
        self._env = {
            **os.environ,
            "CLOUDFLARE_API_TOKEN": settings.cloudflare_api_token,
            "CLOUDFLARE_ACCOUNT_ID": settings.cloudflare_account_id,
        }

    def build_command(self, directory: Path, project: str, branch: str) -> list[str]:
        return [
            *self.command,
            "pages",
            "deploy",
            str(directory),
            "--project-name",
            project,
            "--branch",
            branch,
        ]

    async def deploy(self, directory: Path, project: str, branch: str) -> CommandResult:
        """Run the deploy and return its combined stdout/stderr.

        Raises:
            DeployCommandError: if the executable is missing or exits non-zero.
        """
        cmd = self.build_command(directory, project, branch)
        logger.info("Running deploy", command=" ".join(cmd))
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                env=self._env,
            )
        except FileNotFoundError as exc:
            raise DeployCommandError(
                f"Deploy command not found: {cmd[0]} (is Node.js installed?)"
            ) from exc

        stdout, _ = await process.communicate()
        output = self._redact(stdout.decode(errors="replace") if stdout else "")
        for line in output.splitlines():
            logger.debug("wrangler", line=line)

        returncode = process.returncode if process.returncode is not None else -1
        if returncode != 0:
            tail = output.strip()[-500:]
            raise DeployCommandError(
                f"wrangler exited with status {returncode}: {tail}",
                returncode=returncode,
                output=output,
            )
        return CommandResult(returncode=returncode, output=output)

    def _redact(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, "***")
        return text
