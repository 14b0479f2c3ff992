"""Configuration models, settings and the config-file loader.

Handles three layers of configuration:
    - HypermixConfig: the list of mixes read from a hypermix.config.* file
    - AppSettings: process settings from HYPERMIX_* environment variables
    - CLI overrides applied by the caller (output path, silent)

Config files are plain data (JSON, JSONC or TOML). Script configs are
rejected instead of imported, so no user code is ever executed.

Key components:
    - MixDescriptor / HypermixConfig: validated config models
    - load_config(): discover, parse and validate a config file
    - resolve_output_root(): pick the global output directory
"""

from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hypermix.constants import (
    CONFIG_FILE_NAMES,
    DEFAULT_OUTPUT_DIRNAME,
    REPOMIX_BINARY,
    SCRIPT_CONFIG_NAMES,
    TOKEN_CHUNK_SIZE,
)
from hypermix.core.result import FatalConfigError

_JSONC_COMMENT = re.compile(r'"(?:\\.|[^"\\])*"|//[^\n]*|/\*.*?\*/', re.DOTALL)
_JSONC_TRAILING_COMMA = re.compile(r'"(?:\\.|[^"\\])*"|,(?=\s*[\]}])')


# -----------------------------------------------------------------------------
# Config Models
# -----------------------------------------------------------------------------


class MixDescriptor(BaseModel):
    """One unit of context extraction: a local codebase or a remote repository."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    remote: str | None = Field(default=None, description="owner/repo or a full repository URL.")
    include: list[str] = Field(default_factory=list, description="Glob patterns to include.")
    ignore: list[str] = Field(default_factory=list, description="Glob patterns to ignore.")
    output: str | None = Field(
        default=None, description="Output file, relative to the global output root."
    )
    config_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices("config_path", "config", "repomixConfig", "repomix_config"),
        description="Existing repomix config file that governs this mix.",
    )
    extra_flags: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("extra_flags", "extraFlags"),
        description="Additional boolean repomix flags.",
    )

    @field_validator("remote", "output", "config_path", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class HypermixConfig(BaseModel):
    """Top-level configuration: ordered mixes plus run-wide options."""

    model_config = ConfigDict(extra="ignore")

    mixes: list[MixDescriptor] = Field(min_length=1)
    silent: bool = False
    output_path: str | None = Field(
        default=None, validation_alias=AliasChoices("output_path", "outputPath")
    )


class AppSettings(BaseSettings):
    """Process-level settings read from HYPERMIX_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="HYPERMIX_", extra="ignore")

    repomix_binary: str = Field(default=REPOMIX_BINARY, description="Extraction tool executable.")
    output_path: Path | None = Field(default=None, description="Default global output root.")
    log_level: str = Field(default="INFO", description="Log level for hypermix output.")
    token_model: str = Field(default="gpt-4o", description="Model whose tokenizer is used.")
    max_concurrency: int = Field(default=8, ge=1, description="Files counted concurrently.")
    chunk_size: int = Field(default=TOKEN_CHUNK_SIZE, ge=1, description="Characters per chunk.")


@dataclass
class ConfigLoadResult:
    path: Path
    format: str
    mix_count: int


# -----------------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------------


def _keep_strings(match: re.Match[str]) -> str:
    text = match.group(0)
    return text if text.startswith('"') else ""


def parse_jsonc(text: str) -> Any:
    """Parse JSON that may contain comments and trailing commas."""
    without_comments = _JSONC_COMMENT.sub(_keep_strings, text)
    cleaned = _JSONC_TRAILING_COMMA.sub(_keep_strings, without_comments)
    return json.loads(cleaned)


def find_config_file(cwd: Path) -> Path:
    """Return the first hypermix config file found in ``cwd``."""
    for name in CONFIG_FILE_NAMES:
        candidate = cwd / name
        if candidate.is_file():
            return candidate

    for name in SCRIPT_CONFIG_NAMES:
        if (cwd / name).is_file():
            raise FatalConfigError(
                f"Found {name}, but script configs are not executed. "
                f"Convert it to one of: {', '.join(CONFIG_FILE_NAMES)}",
                context={"cwd": str(cwd)},
            )

    raise FatalConfigError(
        f"No config file found. Expected one of: {', '.join(CONFIG_FILE_NAMES)}",
        context={"cwd": str(cwd)},
    )


def _read_config_file(path: Path) -> tuple[Any, str]:
    suffix = path.suffix.lower()
    if suffix in {".ts", ".js", ".mjs", ".cjs"}:
        raise FatalConfigError(
            "Script configs are not executed; use a .json, .jsonc or .toml config instead.",
            context={"path": str(path)},
        )
    if suffix not in {".json", ".jsonc", ".toml"}:
        raise FatalConfigError(
            f"Unsupported config file type: {suffix or '(none)'}",
            context={"path": str(path)},
        )

    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise FatalConfigError(f"Config file not found: {path}") from exc
    except OSError as exc:
        raise FatalConfigError(f"Cannot read config file {path}: {exc}") from exc

    fmt = suffix.lstrip(".")
    try:
        if fmt == "toml":
            data: Any = tomllib.loads(raw)
        else:
            data = parse_jsonc(raw)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise FatalConfigError(f"Syntax error in {path}: {exc}") from exc

    return data, fmt


def parse_config_data(data: Any, source: Path | None = None) -> HypermixConfig:
    """Validate already-parsed config data.

    A bare list is shorthand for ``{"mixes": [...]}``.
    """
    location = str(source) if source else "<data>"
    if isinstance(data, list):
        data = {"mixes": data}
    if not isinstance(data, dict):
        raise FatalConfigError(
            "Invalid configuration: config must be a mapping or a list of mixes",
            context={"path": location},
        )
    if not isinstance(data.get("mixes"), list):
        raise FatalConfigError(
            'Invalid configuration: missing or invalid "mixes" array',
            context={"path": location},
        )

    try:
        return HypermixConfig.model_validate(data)
    except ValidationError as exc:
        raise FatalConfigError(f"Invalid configuration in {location}: {exc}") from exc


def load_config(
    config_path: Path | None = None,
    *,
    cwd: Path | None = None,
) -> tuple[HypermixConfig, ConfigLoadResult]:
    """Locate, parse and validate the hypermix configuration.

    Raises FatalConfigError when nothing usable is found; no mix has run at
    that point.
    """
    base = (cwd or Path.cwd()).resolve()
    if config_path is None:
        path = find_config_file(base)
    else:
        path = config_path if config_path.is_absolute() else base / config_path

    data, fmt = _read_config_file(path)
    config = parse_config_data(data, path)
    return config, ConfigLoadResult(path=path, format=fmt, mix_count=len(config.mixes))


def resolve_output_root(
    cli_output: Path | str | None,
    config: HypermixConfig,
    settings: AppSettings,
    cwd: Path | None = None,
) -> Path:
    """Pick the global output root.

    Order: CLI flag, HYPERMIX_OUTPUT_PATH, config ``outputPath``,
    then ``<cwd>/.hypermix``.
    """
    base = (cwd or Path.cwd()).resolve()
    candidate: Path | str | None = cli_output or settings.output_path or config.output_path
    if not candidate:
        return base / DEFAULT_OUTPUT_DIRNAME

    root = Path(candidate).expanduser()
    return root if root.is_absolute() else base / root


__all__ = [
    "AppSettings",
    "ConfigLoadResult",
    "HypermixConfig",
    "MixDescriptor",
    "find_config_file",
    "load_config",
    "parse_config_data",
    "parse_jsonc",
    "resolve_output_root",
]
