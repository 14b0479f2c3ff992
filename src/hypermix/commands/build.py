from __future__ import annotations

import asyncio
from contextlib import nullcontext
from typing import TYPE_CHECKING

import typer
from rich import box
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from hypermix.constants import TOKEN_WARNING_THRESHOLD
from hypermix.core.config import load_config, resolve_output_root
from hypermix.core.console import get_console, setup_logging
from hypermix.core.decorators import handle_exceptions
from hypermix.core.executor import BuildOutcome
from hypermix.core.ignore_files import IgnoreChange
from hypermix.core.pipeline import PipelineResult, run_pipeline
from hypermix.core.tokens import TokenReport, TokenSeverity

if TYPE_CHECKING:
    from hypermix.main import AppState

SEVERITY_STYLES: dict[TokenSeverity, str] = {
    TokenSeverity.NOMINAL: "green",
    TokenSeverity.ELEVATED: "yellow",
    TokenSeverity.HIGH: "bright_yellow",
    TokenSeverity.CRITICAL: "red",
}


def _summarize_remotes(names: list[str]) -> str:
    shown = ", ".join(names[:4])
    if len(names) > 4:
        shown += f" and {len(names) - 4} more..."
    return shown


def render_outcomes(outcomes: list[BuildOutcome]) -> Table:
    table = Table(title="Mixes", box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("Mix", style="cyan", no_wrap=True)
    table.add_column("Output", style="white")
    table.add_column("Status", no_wrap=True)

    for outcome in outcomes:
        if outcome.succeeded:
            status = "[green]built[/green]"
        else:
            stage = outcome.failed_at.value if outcome.failed_at else "unknown"
            status = f"[red]failed ({stage})[/red]"
        output = escape(str(outcome.output_path)) if outcome.output_path else "-"
        table.add_row(str(outcome.index + 1), escape(outcome.label), output, status)
    return table


def render_token_report(report: TokenReport) -> Table:
    table = Table(title="Tokens", box=box.ROUNDED)
    table.add_column("File", style="cyan", no_wrap=True)
    table.add_column("Tokens", justify="right")

    for entry in report.entries:
        style = SEVERITY_STYLES[entry.severity]
        table.add_row(escape(entry.label), f"[{style}]{entry.tokens:,}[/{style}]")

    table.add_section()
    table.add_row("[bold]Total Tokens[/bold]", f"[dim]{report.total:,}[/dim]")
    return table


def render_token_warning() -> Panel:
    threshold = f"{TOKEN_WARNING_THRESHOLD // 1000}k tokens"
    lines = [
        f"One or more files exceed [yellow]{threshold}[/yellow]. Consider these averages:",
        "",
        "• Average model limit: [bold]120k tokens[/bold]",
        "• System prompt usage: [bold]20-40k tokens[/bold]",
        "• Chat + working files: [bold]additional space needed[/bold]",
        "",
        "[dim]Add the[/dim] [bold]--compress[/bold] [dim]flag to your config for large files[/dim]",
    ]
    return Panel(
        "\n".join(lines),
        title="[bright_yellow]TOKEN COUNT WARNING[/bright_yellow]",
        border_style="yellow",
    )


def summarize_ignore_changes(changes: list[IgnoreChange]) -> list[str]:
    return [
        f"{change.action.value.capitalize()} {change.rule.file_path.name}: {change.rule.pattern}"
        for change in changes
        if change.changed
    ]


def show_result(result: PipelineResult) -> None:
    console = get_console()
    console.print(render_outcomes(result.outcomes))
    for line in summarize_ignore_changes(result.ignore_changes):
        console.print(f"[dim]{escape(line)}[/dim]")
    if result.report is None:
        return

    console.print(render_token_report(result.report))
    if result.report.exceeds_warning():
        console.print(render_token_warning())
    console.print(
        f"[bold]Built {len(result.verified)} files to[/bold] [dim]{escape(str(result.output_root))}[/dim]"
    )


@handle_exceptions
def build(state: AppState) -> None:
    """Build every configured mix and report token usage."""
    config, meta = load_config(state.config_path, cwd=state.cwd)
    silent = state.silent or config.silent
    logger = state.logger
    if silent and not state.silent:
        logger = setup_logging(level=state.settings.log_level, verbose=state.verbose, silent=True)
    logger.debug("Loaded %d mixes from %s (%s)", meta.mix_count, meta.path, meta.format)

    output_root = resolve_output_root(state.output_path, config, state.settings, state.cwd)
    console = get_console()
    remotes = [mix.remote or "local" for mix in config.mixes]
    console.rule()
    console.print(f"[bold]Hypermixing the following repos:[/bold]\n[dim]{escape(_summarize_remotes(remotes))}[/dim]")

    status = nullcontext() if silent else console.status("Building context files...", spinner="dots")
    with status:
        result = asyncio.run(
            run_pipeline(
                config,
                output_root,
                settings=state.settings,
                cwd=state.cwd,
                logger=logger,
            )
        )

    show_result(result)
    if result.failed:
        raise typer.Exit(code=1)
