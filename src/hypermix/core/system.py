"""Subprocess execution for the extraction tool.

Provides:
    - CommandResult: exit status plus captured output
    - CommandRunner: protocol the mix executor depends on
    - LocalRunner: asyncio subprocess implementation
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from hypermix.core.console import get_logger
from hypermix.core.result import Err, ExecutionError, Ok, Result

logger = get_logger(__name__)


@dataclass(slots=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Most useful captured text for a failure message."""
        return self.stderr.strip() or self.stdout.strip()


class CommandRunner(Protocol):
    async def run(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
    ) -> Result[CommandResult, ExecutionError]: ...


class LocalRunner:
    """Run commands on the host with asyncio subprocesses."""

    def __init__(self, env: dict[str, str] | None = None) -> None:
        self.env = env

    async def run(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
    ) -> Result[CommandResult, ExecutionError]:
        tokens = list(args)
        logger.debug("Running command: %s", " ".join(tokens))
        try:
            proc = await asyncio.create_subprocess_exec(
                *tokens,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL,
                env=self.env,
            )
        except FileNotFoundError as exc:
            return Err(
                ExecutionError("Command not found", context={"error": str(exc), "cmd": tokens[0]})
            )
        except (OSError, ValueError) as exc:
            # ValueError covers arguments the OS cannot take, such as embedded NUL bytes.
            return Err(
                ExecutionError("Failed to start command", context={"error": str(exc), "cmd": tokens[0]})
            )

        stdout_bytes, stderr_bytes = await proc.communicate()
        return Ok(
            CommandResult(
                returncode=proc.returncode if proc.returncode is not None else 0,
                stdout=stdout_bytes.decode(errors="replace"),
                stderr=stderr_bytes.decode(errors="replace"),
            )
        )


__all__ = ["CommandResult", "CommandRunner", "LocalRunner"]
