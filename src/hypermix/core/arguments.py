"""Build repomix command lines from mix descriptors.

Invocation shape::

    repomix --remote <url>? --include <csv> --ignore <csv>? --config <path>?
            <default flags> <extra flags> --output <path>?

The ``--output`` flag is left out whenever an external repomix config governs
the mix, so that config's own output setting wins.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from hypermix.constants import (
    DEFAULT_INCLUDE,
    REPOMIX_BINARY,
    REPOMIX_BOOLEAN_FLAGS,
    REPOMIX_DEFAULT_FLAGS,
)
from hypermix.core.config import MixDescriptor
from hypermix.core.paths import expand_remote, resolve_output_path
from hypermix.core.result import ConfigurationError


@dataclass(frozen=True, slots=True)
class RepomixInvocation:
    args: list[str]
    remote_url: str | None
    output_path: Path
    output_managed_externally: bool

    @property
    def command_line(self) -> str:
        return " ".join(self.args)


def validate_extra_flags(flags: Sequence[str]) -> None:
    """Raise ConfigurationError if any flag is outside the allow-list."""
    invalid = [flag for flag in flags if flag not in REPOMIX_BOOLEAN_FLAGS]
    if invalid:
        raise ConfigurationError(
            f"Invalid flags in extraFlags: {', '.join(invalid)}. "
            f"Valid flags are: {', '.join(REPOMIX_BOOLEAN_FLAGS)}",
            context={"invalid": invalid},
        )


def build_arguments(
    mix: MixDescriptor,
    output_root: Path,
    *,
    binary: str = REPOMIX_BINARY,
    cwd: Path | None = None,
    logger: logging.Logger | None = None,
) -> RepomixInvocation:
    """Turn a mix into a repomix argument list and its final output path."""
    validate_extra_flags(mix.extra_flags)

    args: list[str] = [binary]

    remote_url = expand_remote(mix.remote)
    if remote_url:
        args.extend(["--remote", remote_url])

    includes = list(mix.include) or [DEFAULT_INCLUDE]
    args.extend(["--include", ",".join(includes)])

    if mix.ignore:
        args.extend(["--ignore", ",".join(mix.ignore)])

    if mix.config_path:
        args.extend(["--config", mix.config_path])

    args.extend(REPOMIX_DEFAULT_FLAGS)
    args.extend(mix.extra_flags)

    output_path = resolve_output_path(mix, output_root, cwd=cwd, logger=logger)
    managed_externally = mix.config_path is not None
    if not managed_externally:
        args.extend(["--output", str(output_path)])

    return RepomixInvocation(
        args=args,
        remote_url=remote_url,
        output_path=output_path,
        output_managed_externally=managed_externally,
    )


__all__ = ["RepomixInvocation", "build_arguments", "validate_extra_flags"]
