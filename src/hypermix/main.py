from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

import typer
from rich import box
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from . import __version__
from .commands.build import build
from .core.arguments import build_arguments
from .core.config import AppSettings, load_config, resolve_output_root
from .core.console import get_console, setup_logging
from .core.decorators import handle_exceptions
from .core.diagnostics import run_diagnostics_suite
from .core.result import HypermixError

app = typer.Typer(
    help="hypermix: real-time, token-aware repomix builds for AI coding agents.",
    invoke_without_command=True,
)
logger = logging.getLogger(__name__)


@dataclass
class AppState:
    settings: AppSettings
    logger: logging.Logger
    config_path: Path | None = None
    output_path: Path | None = None
    silent: bool = False
    verbose: bool = False
    cwd: Path = field(default_factory=Path.cwd)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to a hypermix config file (JSON, JSONC or TOML)."
    ),
    output_path: Path | None = typer.Option(
        None, "--output-path", "-o", help="Override the output directory for all context files."
    ),
    silent: bool = typer.Option(
        False, "--silent", "-s", help="Suppress informational output (warnings and errors still print)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Build the context files for every configured mix."""
    settings = AppSettings()
    app_logger = setup_logging(level=settings.log_level, verbose=verbose, silent=silent)

    state = AppState(
        settings=settings,
        logger=app_logger,
        config_path=config,
        output_path=output_path,
        silent=silent,
        verbose=verbose,
    )
    ctx.obj = state

    if ctx.invoked_subcommand is None:
        build(state)


@app.command("config")
@handle_exceptions
def show_config(ctx: typer.Context) -> None:
    """Show the mixes in the active config and the commands they would run."""
    state: AppState = ctx.obj
    config, meta = load_config(state.config_path, cwd=state.cwd)
    output_root = resolve_output_root(state.output_path, config, state.settings, state.cwd)

    table = Table(title="Mixes", box=box.SIMPLE, expand=True)
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("Source", style="cyan")
    table.add_column("Output", style="white")
    table.add_column("Command", style="dim")

    for index, mix in enumerate(config.mixes, start=1):
        source = mix.remote or "local"
        try:
            invocation = build_arguments(
                mix,
                output_root,
                binary=state.settings.repomix_binary,
                cwd=state.cwd,
                logger=state.logger,
            )
        except HypermixError as exc:
            table.add_row(str(index), escape(source), "-", f"[red]{escape(str(exc))}[/red]")
            continue
        table.add_row(
            str(index),
            escape(source),
            escape(str(invocation.output_path)),
            escape(invocation.command_line),
        )

    console = get_console()
    console.print(table)
    meta_lines = [
        f"Path: {meta.path}",
        f"Format: {meta.format}",
        f"Output root: {output_root}",
        f"Silent: {'yes' if config.silent else 'no'}",
    ]
    console.print(Panel(escape("\n".join(meta_lines)), title="Config source", box=box.SIMPLE))


@app.command("doctor")
def doctor(ctx: typer.Context) -> None:
    """Check that repomix, git and the config are ready for a build."""
    state: AppState = ctx.obj
    state.logger.debug("Running doctor in %s", state.cwd)

    diag_results, tool_results = asyncio.run(
        run_diagnostics_suite(
            settings=state.settings,
            config_path=state.config_path,
            cwd=state.cwd,
            output_path=state.output_path,
        )
    )

    tree = Tree("System Health")
    style_map = {"ok": "green", "warn": "yellow", "error": "red", "missing": "red"}
    diag_branch = tree.add("Deep Checks")
    for name, status, message in diag_results:
        style = style_map.get(status, "white")
        diag_branch.add(f"[{style}]{status}[/{style}] {name}: {escape(message)}")

    tools_branch = tree.add("Binaries")
    for result in tool_results:
        style = style_map.get(result.status, "white")
        message = result.version or result.message or result.tool.install_hint or ""
        tools_branch.add(
            f"[{style}]{result.status}[/{style}] {result.tool.name} ({result.tool.binary}) {escape(message)}".strip()
        )

    get_console().print(tree)

    if any(result.status != "ok" and result.tool.required for result in tool_results):
        raise typer.Exit(code=1)


@app.command("version")
def show_version() -> None:
    """Print the hypermix version."""
    get_console().print(__version__)


def cli() -> None:
    app()


if __name__ == "__main__":
    cli()
