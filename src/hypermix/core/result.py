"""
Result types and error hierarchy for hypermix.

This module provides:
1. Result[T, E] type for explicit error handling
2. Domain-specific exception hierarchy

Per-mix failures (ConfigurationError, ExecutionError, OutputIntegrityError)
are caught at the mix boundary and turned into failed outcomes. A
FatalConfigError is the only one that stops a run, and it is raised before
any mix executes.

Usage:
    match await runner.run(args):
        case Err(error):
            ...
        case Ok(command):
            ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Represents a successful result containing a value."""

    value: T


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Represents a failed result containing an error."""

    error: E


# Type alias for Result
Result = Ok[T] | Err[E]


# ---------------------------------------------------------------------------
# Domain-specific error hierarchy
# ---------------------------------------------------------------------------


class HypermixError(Exception):
    """Base exception for all hypermix errors.

    Carries an optional context mapping that is rendered after the message,
    e.g. ``Invalid flags [flags=--bogus]``.
    """

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class ConfigurationError(HypermixError):
    """Raised when a single mix is misconfigured.

    Examples:
    - External repomix config file does not exist
    - Extra flag outside the allow-list
    """


class ExecutionError(HypermixError):
    """Raised when the extraction tool cannot run or exits non-zero."""


class OutputIntegrityError(HypermixError):
    """Raised when the tool reports success but the output file is missing."""


class FatalConfigError(HypermixError):
    """Raised when no usable configuration exists at all.

    Examples:
    - No config file found
    - Config root is not a mapping or list
    - Script configs (.ts/.js) that would need code execution
    """


__all__ = [
    # Result types
    "Ok",
    "Err",
    "Result",
    # Error hierarchy
    "HypermixError",
    "ConfigurationError",
    "ExecutionError",
    "OutputIntegrityError",
    "FatalConfigError",
]
