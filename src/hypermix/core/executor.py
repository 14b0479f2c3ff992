"""Per-mix execution of the extraction tool.

Each mix walks ``PENDING -> VALIDATING -> RUNNING -> VERIFYING`` and ends in
``SUCCEEDED`` or ``FAILED``. Every failure is converted into a failed
BuildOutcome at this boundary so the next mix always runs.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from hypermix.constants import REPOMIX_BINARY
from hypermix.core.arguments import RepomixInvocation, build_arguments
from hypermix.core.config import MixDescriptor
from hypermix.core.console import get_logger
from hypermix.core.paths import anchor_path, expand_remote
from hypermix.core.result import (
    ConfigurationError,
    Err,
    ExecutionError,
    HypermixError,
    Ok,
    OutputIntegrityError,
)
from hypermix.core.system import CommandRunner, LocalRunner

LOCAL_LABEL = "local codebase"


class MixState(str, Enum):
    PENDING = "pending"
    VALIDATING = "validating"
    RUNNING = "running"
    VERIFYING = "verifying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class BuildOutcome:
    """Result of one mix in one run. Never mutated after creation."""

    label: str
    output_path: Path | None
    succeeded: bool
    state: MixState
    failed_at: MixState | None = None
    error: HypermixError | None = None
    remote_url: str | None = None
    index: int = 0


def mix_label(remote_url: str | None) -> str:
    """Human label for a mix: repo name for GitHub remotes, else the URL."""
    if not remote_url:
        return LOCAL_LABEL
    if "github.com" in remote_url:
        name = remote_url.rstrip("/").split("/")[-1].removesuffix(".git")
        return name or "unknown"
    return remote_url


class MixExecutor:
    """Run repomix for one mix at a time and verify what it produced."""

    def __init__(
        self,
        output_root: Path,
        *,
        runner: CommandRunner | None = None,
        binary: str = REPOMIX_BINARY,
        cwd: Path | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.output_root = output_root
        self.runner: CommandRunner = runner or LocalRunner()
        self.binary = binary
        self.cwd = cwd
        self.logger = logger or get_logger(__name__)

    async def execute(self, mix: MixDescriptor, index: int = 0) -> BuildOutcome:
        remote_url = expand_remote(mix.remote)
        label = mix_label(remote_url)
        self.logger.debug("Mix %d (%s): %s", index, label, MixState.PENDING.value)

        # VALIDATING
        try:
            invocation = await asyncio.to_thread(self._validate, mix)
        except HypermixError as exc:
            self.logger.error("Skipping %s: %s", label, exc)
            return self._failed(label, None, MixState.VALIDATING, exc, remote_url, index)
        except Exception as exc:
            error = ConfigurationError(
                f"Unexpected error while preparing mix: {exc}",
                context={"type": type(exc).__name__},
            )
            self.logger.error("Skipping %s: %s", label, error)
            return self._failed(label, None, MixState.VALIDATING, error, remote_url, index)

        # RUNNING
        output_path = invocation.output_path
        self.logger.debug("Running repomix command: %s", invocation.command_line)
        try:
            await asyncio.to_thread(output_path.parent.mkdir, parents=True, exist_ok=True)
            run_result = await self.runner.run(invocation.args, cwd=self.cwd)
        except Exception as exc:
            error = ExecutionError(
                "Failed to run repomix",
                context={"error": str(exc), "type": type(exc).__name__, "output": str(output_path)},
            )
            self.logger.warning("Repomix command failed for %s: %s", remote_url or "local", error)
            return self._failed(label, output_path, MixState.RUNNING, error, remote_url, index)

        match run_result:
            case Err(run_error):
                self.logger.warning(
                    "Repomix command failed for %s: %s", remote_url or "local", run_error
                )
                return self._failed(
                    label, output_path, MixState.RUNNING, run_error, remote_url, index
                )
            case Ok(command):
                pass

        # VERIFYING
        if not command.ok:
            error = ExecutionError(
                f"repomix exited with status {command.returncode}",
                context={"output": command.output} if command.output else None,
            )
            self.logger.warning(
                "Repomix command failed for %s: %s", remote_url or "local", command.output
            )
            return self._failed(label, output_path, MixState.VERIFYING, error, remote_url, index)

        exists = await asyncio.to_thread(output_path.is_file)
        if not exists:
            error = OutputIntegrityError(
                "Repomix completed but no output file was created",
                context={"path": str(output_path)},
            )
            self.logger.warning(
                "Repomix completed but no output file created at %s. If the mix uses a "
                "repomix config, make sure it declares an output path; otherwise "
                "'codebase.xml' is assumed. Stdout: %s",
                output_path,
                command.stdout.strip(),
            )
            return self._failed(label, output_path, MixState.VERIFYING, error, remote_url, index)

        self.logger.debug("Mix %d (%s): %s -> %s", index, label, MixState.SUCCEEDED.value, output_path)
        return BuildOutcome(
            label=label,
            output_path=output_path,
            succeeded=True,
            state=MixState.SUCCEEDED,
            remote_url=remote_url,
            index=index,
        )

    def _validate(self, mix: MixDescriptor) -> RepomixInvocation:
        if mix.config_path:
            config_file = anchor_path(Path(mix.config_path), self.cwd)
            if not config_file.is_file():
                raise ConfigurationError(
                    f"Repomix config file not found: {mix.config_path}",
                    context={"path": str(config_file)},
                )
        return build_arguments(
            mix,
            self.output_root,
            binary=self.binary,
            cwd=self.cwd,
            logger=self.logger,
        )

    def _failed(
        self,
        label: str,
        output_path: Path | None,
        failed_at: MixState,
        error: HypermixError,
        remote_url: str | None,
        index: int,
    ) -> BuildOutcome:
        self.logger.debug("Mix %d (%s): failed during %s", index, label, failed_at.value)
        return BuildOutcome(
            label=label,
            output_path=output_path,
            succeeded=False,
            state=MixState.FAILED,
            failed_at=failed_at,
            error=error,
            remote_url=remote_url,
            index=index,
        )

    async def run_all(self, mixes: Sequence[MixDescriptor]) -> list[BuildOutcome]:
        """Execute mixes one after another, in declaration order."""
        outcomes: list[BuildOutcome] = []
        for index, mix in enumerate(mixes):
            outcomes.append(await self.execute(mix, index))
        return outcomes


__all__ = ["LOCAL_LABEL", "BuildOutcome", "MixExecutor", "MixState", "mix_label"]
