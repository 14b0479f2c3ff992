from __future__ import annotations

from pathlib import Path

import pytest

from hypermix.constants import REPOMIX_DEFAULT_FLAGS
from hypermix.core.arguments import build_arguments, validate_extra_flags
from hypermix.core.config import MixDescriptor
from hypermix.core.result import ConfigurationError


def test_remote_shorthand_expands_to_github_url(tmp_path: Path) -> None:
    invocation = build_arguments(MixDescriptor(remote="vercel/ai"), tmp_path)

    assert invocation.remote_url == "https://github.com/vercel/ai"
    assert invocation.args[:3] == ["repomix", "--remote", "https://github.com/vercel/ai"]


def test_full_url_is_kept(tmp_path: Path) -> None:
    invocation = build_arguments(MixDescriptor(remote="https://github.com/a/b"), tmp_path)
    assert invocation.remote_url == "https://github.com/a/b"


def test_local_mix_has_no_remote_flag(tmp_path: Path) -> None:
    invocation = build_arguments(MixDescriptor(), tmp_path)

    assert "--remote" not in invocation.args
    assert invocation.remote_url is None


def test_include_defaults_to_everything(tmp_path: Path) -> None:
    invocation = build_arguments(MixDescriptor(), tmp_path)

    index = invocation.args.index("--include")
    assert invocation.args[index + 1] == "**/*"


def test_patterns_are_comma_joined(tmp_path: Path) -> None:
    mix = MixDescriptor(include=["src/**/*.ts", "README.md"], ignore=["tests/**", "mocks/**"])
    args = build_arguments(mix, tmp_path).args

    assert args[args.index("--include") + 1] == "src/**/*.ts,README.md"
    assert args[args.index("--ignore") + 1] == "tests/**,mocks/**"


def test_empty_ignore_list_is_omitted(tmp_path: Path) -> None:
    args = build_arguments(MixDescriptor(ignore=[]), tmp_path).args
    assert "--ignore" not in args


def test_flag_order(tmp_path: Path) -> None:
    mix = MixDescriptor(remote="o/r", include=["a"], ignore=["b"], extra_flags=["--no-gitignore"])
    invocation = build_arguments(mix, tmp_path, binary="npx-repomix")

    assert invocation.args == [
        "npx-repomix",
        "--remote",
        "https://github.com/o/r",
        "--include",
        "a",
        "--ignore",
        "b",
        *REPOMIX_DEFAULT_FLAGS,
        "--no-gitignore",
        "--output",
        str(tmp_path / "o" / "r.xml"),
    ]


def test_external_config_suppresses_output_flag(tmp_path: Path) -> None:
    config_file = tmp_path / "repomix.config.json"
    config_file.write_text('{"output": {"filePath": "out.xml"}}', encoding="utf-8")
    mix = MixDescriptor(config=str(config_file), output="explicit.xml")

    invocation = build_arguments(mix, tmp_path / "root", cwd=tmp_path)

    assert "--output" not in invocation.args
    assert invocation.args[invocation.args.index("--config") + 1] == str(config_file)
    assert invocation.output_managed_externally is True
    assert invocation.output_path == tmp_path / "out.xml"


def test_output_flag_points_at_resolved_path(tmp_path: Path) -> None:
    invocation = build_arguments(MixDescriptor(output="SdkDocs.xml"), tmp_path)

    assert invocation.args[-2:] == ["--output", str(tmp_path / "sdk-docs.xml")]
    assert invocation.output_managed_externally is False


def test_invalid_extra_flag_raises(tmp_path: Path) -> None:
    mix = MixDescriptor(remote="o/r", extra_flags=["--compress", "--bogus-flag"])

    with pytest.raises(ConfigurationError) as exc_info:
        build_arguments(mix, tmp_path)

    assert "--bogus-flag" in str(exc_info.value)
    assert exc_info.value.context["invalid"] == ["--bogus-flag"]


def test_validate_extra_flags_accepts_allow_list() -> None:
    validate_extra_flags(["--compress", "--quiet", "--remove-comments"])
    validate_extra_flags([])
