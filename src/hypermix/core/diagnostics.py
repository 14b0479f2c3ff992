"""Environment diagnostics for ``hypermix doctor``.

Provides diagnostic checks for everything a build depends on:
    - External tool availability (repomix, git)
    - Configuration validity, including per-mix problems that would only
      surface as failed mixes at build time
    - Output root writability
"""

from __future__ import annotations

import asyncio
import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field

from hypermix.core.arguments import validate_extra_flags
from hypermix.core.config import AppSettings, load_config, resolve_output_root
from hypermix.core.paths import anchor_path
from hypermix.core.result import ConfigurationError, FatalConfigError


class ExternalTool(BaseModel):
    name: str
    binary: str
    version_args: list[str] = Field(default_factory=lambda: ["--version"])
    required: bool = True
    install_hint: str | None = None


@dataclass
class ToolCheck:
    tool: ExternalTool
    status: str
    version: str | None
    message: str | None = None


class DiagnosticCheck(ABC):
    name: str

    @abstractmethod
    async def run(self) -> tuple[str, str]:
        """Run the diagnostic and return (status, message)."""


class ConfigCheck(DiagnosticCheck):
    def __init__(self, config_path: Path | None, cwd: Path) -> None:
        self.config_path = config_path
        self.cwd = cwd
        self.name = "Config"

    async def run(self) -> tuple[str, str]:
        try:
            config, meta = await asyncio.to_thread(load_config, self.config_path, cwd=self.cwd)
        except FatalConfigError as exc:
            return "error", str(exc)

        issues: list[str] = []
        for index, mix in enumerate(config.mixes):
            if mix.config_path and not anchor_path(Path(mix.config_path), self.cwd).is_file():
                issues.append(f"mix {index}: repomix config missing ({mix.config_path})")
            try:
                validate_extra_flags(mix.extra_flags)
            except ConfigurationError as exc:
                issues.append(f"mix {index}: {exc.message}")

        if issues:
            return "warn", "; ".join(issues)
        return "ok", f"{meta.mix_count} mixes in {meta.path.name}"


class OutputRootCheck(DiagnosticCheck):
    def __init__(
        self,
        config_path: Path | None,
        settings: AppSettings,
        cwd: Path,
        output_path: Path | None = None,
    ) -> None:
        self.config_path = config_path
        self.settings = settings
        self.cwd = cwd
        self.output_path = output_path
        self.name = "Output"

    async def run(self) -> tuple[str, str]:
        try:
            config, _ = await asyncio.to_thread(load_config, self.config_path, cwd=self.cwd)
        except FatalConfigError:
            return "warn", "Output root unknown until the config loads."

        root = resolve_output_root(self.output_path, config, self.settings, self.cwd)
        probe = root
        while not probe.exists() and probe != probe.parent:
            probe = probe.parent
        if not os.access(probe, os.W_OK):
            return "error", f"{probe} is not writable (output root {root})"
        return "ok", f"Output root {root}"


def default_tools(settings: AppSettings) -> list[ExternalTool]:
    return [
        ExternalTool(
            name="repomix",
            binary=settings.repomix_binary,
            install_hint="npm install -g repomix",
        ),
        ExternalTool(
            name="Git",
            binary="git",
            required=False,
            install_hint="Needed by repomix for remote repositories.",
        ),
    ]


async def _check_tool(tool: ExternalTool) -> ToolCheck:
    resolved = shutil.which(tool.binary)
    if not resolved:
        return ToolCheck(tool=tool, status="missing", version=None, message=tool.install_hint)

    try:
        process = await asyncio.create_subprocess_exec(
            resolved,
            *tool.version_args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL,
        )
    except FileNotFoundError:
        return ToolCheck(tool=tool, status="missing", version=None, message=tool.install_hint)

    stdout, stderr = await process.communicate()
    output = (stdout or b"").decode().strip() or (stderr or b"").decode().strip()
    version = output.splitlines()[0] if output else None

    if process.returncode != 0:
        return ToolCheck(
            tool=tool, status="error", version=version, message=output or "version command failed"
        )

    return ToolCheck(tool=tool, status="ok", version=version, message=None)


async def _run_tool_checks(tools: list[ExternalTool]) -> list[ToolCheck]:
    return await asyncio.gather(*(_check_tool(tool) for tool in tools))


async def _run_deep_checks(
    config_path: Path | None,
    settings: AppSettings,
    cwd: Path,
    output_path: Path | None = None,
) -> list[tuple[str, str, str]]:
    checks: list[DiagnosticCheck] = [
        ConfigCheck(config_path, cwd),
        OutputRootCheck(config_path, settings, cwd, output_path),
    ]
    results = await asyncio.gather(*(check.run() for check in checks))
    return [
        (check.name, status, message)
        for check, (status, message) in zip(checks, results, strict=True)
    ]


async def run_diagnostics_suite(
    settings: AppSettings,
    config_path: Path | None,
    cwd: Path,
    output_path: Path | None = None,
) -> tuple[list[tuple[str, str, str]], list[ToolCheck]]:
    """Run deep checks and tool checks in parallel."""
    return await asyncio.gather(
        _run_deep_checks(config_path, settings, cwd, output_path),
        _run_tool_checks(default_tools(settings)),
    )


__all__ = [
    "ConfigCheck",
    "DiagnosticCheck",
    "ExternalTool",
    "OutputRootCheck",
    "ToolCheck",
    "default_tools",
    "run_diagnostics_suite",
]
