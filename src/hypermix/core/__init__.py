"""Core build machinery for hypermix.

This package contains:
    - config: Config models, settings and loader
    - console: Rich console output and logging
    - result: Result type and error hierarchy
    - paths / arguments: Output resolution and repomix command lines
    - executor: Per-mix state machine
    - ignore_files: Ignore-list synchronization
    - tokens: Streaming token accounting
    - pipeline: End-to-end run over all mixes
"""

from __future__ import annotations

from . import config, console

__all__ = ["config", "console"]
