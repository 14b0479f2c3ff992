"""Static names, flags and thresholds shared across hypermix."""

from __future__ import annotations

APP_NAME = "hypermix"

CONFIG_FILE_NAMES: tuple[str, ...] = (
    f"{APP_NAME}.config.json",
    f"{APP_NAME}.config.jsonc",
    f"{APP_NAME}.config.toml",
)

# Script configs are recognised only so they can be rejected with a clear message.
SCRIPT_CONFIG_NAMES: tuple[str, ...] = (
    f"{APP_NAME}.config.ts",
    f"{APP_NAME}.config.js",
)

DEFAULT_OUTPUT_DIRNAME = f".{APP_NAME}"
DEFAULT_OUTPUT_FILENAME = "codebase.xml"
DEFAULT_INCLUDE = "**/*"
GITHUB_BASE_URL = "https://github.com/"

REPOMIX_BINARY = "repomix"

REPOMIX_BOOLEAN_FLAGS: tuple[str, ...] = (
    "--version",
    "--stdout",
    "--parsable-style",
    "--compress",
    "--output-show-line-numbers",
    "--copy",
    "--no-file-summary",
    "--no-directory-structure",
    "--remove-comments",
    "--remove-empty-lines",
    "--include-empty-directories",
    "--include-diffs",
    "--no-git-sort-by-changes",
    "--no-gitignore",
    "--no-default-patterns",
    "--global",
    "--no-security-check",
    "--mcp",
    "--verbose",
    "--quiet",
)

REPOMIX_DEFAULT_FLAGS: tuple[str, ...] = (
    "--remove-empty-lines",
    "--compress",
    "--quiet",
    "--parsable-style",
)

TOKEN_CHUNK_SIZE = 8192
TOKEN_READ_SIZE = 64 * 1024

TOKEN_WARNING_THRESHOLD = 60_000
TOKEN_ELEVATED_LIMIT = 120_000
TOKEN_HIGH_LIMIT = 200_000

__all__ = [
    "APP_NAME",
    "CONFIG_FILE_NAMES",
    "DEFAULT_INCLUDE",
    "DEFAULT_OUTPUT_DIRNAME",
    "DEFAULT_OUTPUT_FILENAME",
    "GITHUB_BASE_URL",
    "REPOMIX_BINARY",
    "REPOMIX_BOOLEAN_FLAGS",
    "REPOMIX_DEFAULT_FLAGS",
    "SCRIPT_CONFIG_NAMES",
    "TOKEN_CHUNK_SIZE",
    "TOKEN_ELEVATED_LIMIT",
    "TOKEN_HIGH_LIMIT",
    "TOKEN_READ_SIZE",
    "TOKEN_WARNING_THRESHOLD",
]
