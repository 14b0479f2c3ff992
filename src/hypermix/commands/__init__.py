"""CLI command implementations for hypermix.

    - build: run every mix and render the outcome and token tables
"""

from __future__ import annotations

from . import build

__all__ = ["build"]
