"""End-to-end builds through the CLI with a shell stand-in for repomix.

The stub writes ``<file>stub</file>`` to whatever ``--output`` it receives
and fails for any remote containing ``broken``. Token counting uses one
token per character so totals are exact.
"""

from __future__ import annotations

import json
import stat
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console
from typer.testing import CliRunner

import hypermix.core.pipeline as pipeline_module
from hypermix.main import app
from tests.conftest import char_tokenizer

STUB = """#!/bin/sh
out=""
remote=""
while [ $# -gt 0 ]; do
  case "$1" in
    --output) out="$2"; shift ;;
    --remote) remote="$2"; shift ;;
  esac
  shift
done
case "$remote" in
  *broken*) echo "repository not found" >&2; exit 1 ;;
esac
if [ -n "$out" ]; then
  mkdir -p "$(dirname "$out")"
  printf '<file>stub</file>' > "$out"
fi
exit 0
"""

STUB_OUTPUT_TOKENS = len("<file>stub</file>")


@pytest.fixture
def stub_repomix(tmp_path: Path, monkeypatch: Any) -> Path:
    binary = tmp_path / "bin" / "repomix"
    binary.parent.mkdir()
    binary.write_text(STUB, encoding="utf-8")
    binary.chmod(binary.stat().st_mode | stat.S_IEXEC)
    monkeypatch.setenv("HYPERMIX_REPOMIX_BINARY", str(binary))
    monkeypatch.setattr(pipeline_module, "TokenCounter", lambda _model: char_tokenizer)
    return binary


def _write_config(project: Path, payload: dict[str, Any]) -> None:
    (project / "hypermix.config.json").write_text(json.dumps(payload), encoding="utf-8")


@pytest.mark.local_only
def test_build_writes_outputs_and_ignore_files(
    runner: CliRunner, stub_repomix: Path, isolate_workspace: Path, capture_console: Console
) -> None:
    _write_config(
        isolate_workspace,
        {"mixes": [{"remote": "owner/repoA"}, {"remote": "owner/repoB", "extraFlags": ["--bogus"]}, {}]},
    )

    result = runner.invoke(app, [])

    assert result.exit_code == 0
    root = isolate_workspace / ".hypermix"
    assert (root / "owner" / "repoA.xml").is_file()
    assert (root / "codebase.xml").is_file()
    assert not (root / "owner" / "repoB.xml").exists()

    text = capture_console.export_text()
    assert "failed (validating)" in text
    assert "Total Tokens" in text
    assert f"{2 * STUB_OUTPUT_TOKENS:,}" in text
    assert "Built 2 files to" in text

    assert ".hypermix/**/*.xml" in (isolate_workspace / ".gitignore").read_text(encoding="utf-8")
    assert ".hypermix/**/*.xml" in (isolate_workspace / ".cursorignoreindex").read_text(encoding="utf-8")
    assert "!.hypermix/**/*.xml" in (isolate_workspace / ".cursorignore").read_text(encoding="utf-8")


@pytest.mark.local_only
def test_build_fails_when_every_mix_fails(
    runner: CliRunner, stub_repomix: Path, isolate_workspace: Path
) -> None:
    _write_config(isolate_workspace, {"mixes": [{"remote": "owner/broken"}]})

    result = runner.invoke(app, [])

    assert result.exit_code == 1
    assert (isolate_workspace / ".gitignore").is_file()


@pytest.mark.local_only
def test_output_path_flag_overrides_config(
    runner: CliRunner, stub_repomix: Path, isolate_workspace: Path
) -> None:
    _write_config(isolate_workspace, {"outputPath": "from-config", "mixes": [{"output": "MyContext.xml"}]})

    result = runner.invoke(app, ["--output-path", "from-cli"])

    assert result.exit_code == 0
    assert (isolate_workspace / "from-cli" / "my-context.xml").is_file()
    assert not (isolate_workspace / "from-config").exists()
    assert "from-cli/**/*.xml" in (isolate_workspace / ".gitignore").read_text(encoding="utf-8")


@pytest.mark.local_only
def test_silent_config_hides_report(
    runner: CliRunner, stub_repomix: Path, isolate_workspace: Path, capture_console: Console
) -> None:
    _write_config(isolate_workspace, {"silent": True, "mixes": [{"remote": "owner/repoA"}]})

    result = runner.invoke(app, [])

    assert result.exit_code == 0
    assert (isolate_workspace / ".hypermix" / "owner" / "repoA.xml").is_file()
    assert "Total Tokens" not in capture_console.export_text()
