"""Output path resolution for mixes.

Decides where each mix's XML lands, in strict precedence:

1. an external repomix config's own declared output (or ``codebase.xml``),
2. the mix's explicit ``output``, with a kebab-cased file name,
3. ``<owner>/<repo>.xml`` derived from a GitHub remote,
4. ``codebase.xml`` under the global output root.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from hypermix.constants import DEFAULT_OUTPUT_FILENAME, GITHUB_BASE_URL
from hypermix.core.config import MixDescriptor, parse_jsonc
from hypermix.core.console import get_logger

_WORD = re.compile(r"[A-Z][a-z]+|[A-Z]+(?=[A-Z][a-z]|[^A-Za-z]|$)|[a-z]+|\d+|[^\W\d_]+")

_logger = get_logger(__name__)


def kebab_case(name: str) -> str:
    """Convert ``name`` to lowercase-hyphen form (``SdkExamples`` -> ``sdk-examples``)."""
    return "-".join(word.lower() for word in _WORD.findall(name))


def kebab_filename(path: Path) -> Path:
    """Kebab-case the stem of ``path``, leaving directories and suffix alone."""
    stem = kebab_case(path.stem)
    if not stem:
        return path
    return path.with_name(f"{stem}{path.suffix}")


def expand_remote(remote: str | None) -> str | None:
    """Expand ``owner/repo`` shorthand to a full GitHub URL."""
    if not remote:
        return None
    if remote.startswith("http"):
        return remote
    return f"{GITHUB_BASE_URL}{remote.strip('/')}"


def output_from_remote(url: str) -> str:
    """Derive ``<owner>/<repo>.xml`` from a GitHub URL."""
    if "github.com" not in url:
        return DEFAULT_OUTPUT_FILENAME

    tail = url.split("github.com", 1)[1].lstrip(":/")
    parts = [part for part in tail.split("/") if part]
    if len(parts) < 2:
        return DEFAULT_OUTPUT_FILENAME

    owner, repo = parts[0], parts[1].removesuffix(".git")
    return f"{owner}/{repo}.xml"


def _declared_output(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    output = data.get("output")
    candidates = [
        output.get("filePath") if isinstance(output, dict) else None,
        data.get("outputPath"),
        output,
    ]
    for candidate in candidates:
        if isinstance(candidate, str) and candidate:
            return candidate
    return None


def read_external_output(
    config_path: Path,
    logger: logging.Logger | None = None,
) -> str | None:
    """Return the output path declared by a repomix config, if any.

    Unreadable or malformed files are logged and treated as declaring nothing.
    """
    log = logger or _logger
    try:
        data = parse_jsonc(config_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        log.warning("Failed to read repomix config file %s: %s", config_path, exc)
        return None
    return _declared_output(data)


def anchor_path(path: Path, cwd: Path | None) -> Path:
    """Resolve a config-relative path against the run's working directory."""
    if path.is_absolute() or cwd is None:
        return path
    return cwd / path


def resolve_output_path(
    mix: MixDescriptor,
    output_root: Path,
    *,
    cwd: Path | None = None,
    logger: logging.Logger | None = None,
) -> Path:
    """Decide where the mix's output file will be written."""
    if mix.config_path:
        declared = read_external_output(anchor_path(Path(mix.config_path), cwd), logger)
        if declared:
            return anchor_path(Path(declared), cwd)
        return output_root / DEFAULT_OUTPUT_FILENAME

    if mix.output:
        return kebab_filename(output_root / mix.output)

    remote_url = expand_remote(mix.remote)
    if remote_url:
        return output_root / output_from_remote(remote_url)

    return output_root / DEFAULT_OUTPUT_FILENAME


__all__ = [
    "anchor_path",
    "expand_remote",
    "kebab_case",
    "kebab_filename",
    "output_from_remote",
    "read_external_output",
    "resolve_output_path",
]
