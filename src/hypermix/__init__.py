"""hypermix - token-aware context builder for AI coding agents.

This package drives `repomix` over a list of configured mixes (local codebases
or remote repositories), keeps the generated XML out of version control, and
reports how many tokens each context file costs.

Exports:
    __version__: Package version string.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.4.0"
