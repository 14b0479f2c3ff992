"""Run every mix, sync ignore files, then account tokens.

The controller owns ordering: mixes run one after another in declaration
order, the ignore files are touched once after the last mix, and token
counting only sees outputs that were verified on disk.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

from hypermix.core.config import AppSettings, HypermixConfig
from hypermix.core.console import get_logger
from hypermix.core.executor import BuildOutcome, MixExecutor
from hypermix.core.ignore_files import IgnoreChange, sync_ignore_files
from hypermix.core.system import CommandRunner
from hypermix.core.tokens import TokenAccountant, TokenCounter, Tokenizer, TokenReport


@dataclass
class PipelineResult:
    outcomes: list[BuildOutcome]
    output_root: Path
    verified: list[BuildOutcome] = field(default_factory=list)
    report: TokenReport | None = None
    ignore_changes: list[IgnoreChange] = field(default_factory=list)

    @property
    def succeeded(self) -> list[BuildOutcome]:
        """Successful outcomes, in the order their mixes were declared."""
        return [outcome for outcome in self.outcomes if outcome.succeeded]

    @property
    def failures(self) -> list[BuildOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]

    @property
    def failed(self) -> bool:
        """True when no mix produced a usable output file."""
        return not self.verified


async def _verify_outputs(
    outcomes: list[BuildOutcome], log: logging.Logger
) -> list[BuildOutcome]:
    verified: list[BuildOutcome] = []
    for outcome in outcomes:
        if outcome.output_path is None:
            continue
        if await asyncio.to_thread(outcome.output_path.is_file):
            verified.append(outcome)
        else:
            log.warning("Output file does not exist: %s", outcome.output_path)
    return verified


async def run_pipeline(
    config: HypermixConfig,
    output_root: Path,
    *,
    settings: AppSettings | None = None,
    runner: CommandRunner | None = None,
    tokenizer: Tokenizer | None = None,
    cwd: Path | None = None,
    logger: logging.Logger | None = None,
) -> PipelineResult:
    """Build every mix and return outcomes, ignore-file changes and token report."""
    settings = settings or AppSettings()
    log = logger or get_logger(__name__)
    base = cwd or Path.cwd()

    executor = MixExecutor(
        output_root,
        runner=runner,
        binary=settings.repomix_binary,
        cwd=base,
        logger=log,
    )
    outcomes = await executor.run_all(config.mixes)

    ignore_changes = await sync_ignore_files(output_root, cwd=base, logger=log)

    result = PipelineResult(outcomes=outcomes, output_root=output_root, ignore_changes=ignore_changes)
    result.verified = await _verify_outputs(result.succeeded, log)

    if result.failed:
        log.error(
            "No valid output files were created. Check your configuration and ensure repomix is installed."
        )
        return result

    accountant = TokenAccountant(
        tokenizer or TokenCounter(settings.token_model),
        max_concurrency=settings.max_concurrency,
        chunk_size=settings.chunk_size,
        logger=log,
    )
    paths = [outcome.output_path for outcome in result.verified if outcome.output_path is not None]
    result.report = await accountant.count(paths)
    return result


__all__ = ["PipelineResult", "run_pipeline"]
