"""Streaming token accounting for generated context files.

This module provides:
- TokenCounter: token counting backed by tiktoken, usable as a Tokenizer
- FileChunks: restartable, bounded-size text chunks of a file
- TokenAccountant: concurrent per-file counting with input-ordered results
- TokenReport / classify_tokens: totals and display severity tiers

Files are never read whole. Bytes are decoded incrementally so a multi-byte
character split across two reads is carried into the next chunk.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
from collections.abc import Callable, Generator, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol, cast

import tiktoken

from hypermix.constants import (
    TOKEN_CHUNK_SIZE,
    TOKEN_ELEVATED_LIMIT,
    TOKEN_HIGH_LIMIT,
    TOKEN_READ_SIZE,
    TOKEN_WARNING_THRESHOLD,
)
from hypermix.core.console import get_logger

logger = get_logger(__name__)

Tokenizer = Callable[[str], int]


class _EncoderProtocol(Protocol):
    def encode(self, text: str, *, disallowed_special: Sequence[str] | set[str] | tuple[str, ...] = ()) -> list[int]:
        ...


class TokenCounter:
    """Token counter backed by tiktoken.

    Falls back to a ``len(text) // 4`` estimate only when the encoding for a
    model cannot be loaded (for example, offline with an empty tiktoken cache).
    """

    def __init__(self, default_model: str = "gpt-4o") -> None:
        self.default_model = default_model
        self._encoders: dict[str, _EncoderProtocol | None] = {}

    def __call__(self, text: str) -> int:
        return self.count_tokens(text)

    def count_tokens(self, text: str, model: str | None = None) -> int:
        target_model = model or self.default_model
        encoder = self._get_encoder(target_model)
        if encoder is None:
            return self._heuristic_tokens(text)
        return len(encoder.encode(text, disallowed_special=()))

    def _heuristic_tokens(self, text: str) -> int:
        return max(0, len(text) // 4)

    def _get_encoder(self, model: str) -> _EncoderProtocol | None:
        if model in self._encoders:
            return self._encoders[model]

        try:
            encoder = tiktoken.encoding_for_model(model)
        except KeyError:
            logger.warning("Unknown model %s; using the o200k_base encoding.", model)
            encoder = self._load_base_encoding()
        except (OSError, ValueError) as exc:
            logger.warning("Failed to load encoding for model %s: %s", model, exc)
            encoder = None

        cached = cast("_EncoderProtocol | None", encoder)
        self._encoders[model] = cached
        return cached

    def _load_base_encoding(self) -> tiktoken.Encoding | None:
        try:
            return tiktoken.get_encoding("o200k_base")
        except (OSError, ValueError) as exc:
            logger.warning("Failed to load o200k_base encoding: %s", exc)
            return None


class TokenSeverity(str, Enum):
    NOMINAL = "nominal"
    ELEVATED = "elevated"
    HIGH = "high"
    CRITICAL = "critical"


def classify_tokens(tokens: int) -> TokenSeverity:
    """Bucket a token count for display. Has no effect on control flow."""
    if tokens < TOKEN_WARNING_THRESHOLD:
        return TokenSeverity.NOMINAL
    if tokens < TOKEN_ELEVATED_LIMIT:
        return TokenSeverity.ELEVATED
    if tokens < TOKEN_HIGH_LIMIT:
        return TokenSeverity.HIGH
    return TokenSeverity.CRITICAL


class FileChunks:
    """Lazy text chunks of a UTF-8 file; iterating again re-reads from the start."""

    def __init__(
        self,
        path: Path,
        chunk_size: int = TOKEN_CHUNK_SIZE,
        read_size: int = TOKEN_READ_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if read_size <= 0:
            raise ValueError("read_size must be positive")
        self.path = path
        self.chunk_size = chunk_size
        self.read_size = read_size

    def __iter__(self) -> Iterator[str]:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        buffer = ""
        with self.path.open("rb") as handle:
            while raw := handle.read(self.read_size):
                buffer += decoder.decode(raw)
                buffer = yield from self._drain(buffer)

        buffer += decoder.decode(b"", final=True)
        buffer = yield from self._drain(buffer)
        if buffer:
            yield buffer

    def _drain(self, buffer: str) -> Generator[str, None, str]:
        size = self.chunk_size
        offset = 0
        while len(buffer) - offset >= size:
            yield buffer[offset : offset + size]
            offset += size
        return buffer[offset:]


def count_file_tokens(
    path: Path,
    tokenizer: Tokenizer,
    chunk_size: int = TOKEN_CHUNK_SIZE,
) -> int:
    """Sum the tokenizer over every chunk of ``path``."""
    return sum(tokenizer(chunk) for chunk in FileChunks(path, chunk_size=chunk_size))


@dataclass(frozen=True, slots=True)
class FileTokens:
    label: str
    path: Path
    tokens: int

    @property
    def severity(self) -> TokenSeverity:
        return classify_tokens(self.tokens)


@dataclass
class TokenReport:
    """Per-file token counts in input order plus the running total."""

    entries: list[FileTokens] = field(default_factory=list)
    total: int = 0

    def add(self, entry: FileTokens) -> None:
        self.entries.append(entry)
        self.total += entry.tokens

    def as_mapping(self) -> dict[str, int]:
        return {entry.label: entry.tokens for entry in self.entries}

    @property
    def severity(self) -> TokenSeverity:
        return classify_tokens(self.total)

    def exceeds_warning(self, threshold: int = TOKEN_WARNING_THRESHOLD) -> bool:
        """True when any single file reaches ``threshold`` tokens."""
        return any(entry.tokens >= threshold for entry in self.entries)


class TokenAccountant:
    """Count tokens across many files concurrently.

    Files are processed in parallel worker threads (bounded by a semaphore)
    but the report always lists them in the order they were given.
    """

    def __init__(
        self,
        tokenizer: Tokenizer | None = None,
        *,
        max_concurrency: int = 8,
        chunk_size: int = TOKEN_CHUNK_SIZE,
        logger: logging.Logger | None = None,
    ) -> None:
        self.tokenizer: Tokenizer = tokenizer or TokenCounter()
        self.chunk_size = chunk_size
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._logger = logger or get_logger(__name__)

    async def count(self, paths: Sequence[Path]) -> TokenReport:
        results = await asyncio.gather(*(self._count_one(path) for path in paths))
        report = TokenReport()
        for entry in results:
            if entry is not None:
                report.add(entry)
        self._logger.debug("Counted %d tokens across %d files", report.total, len(report.entries))
        return report

    async def _count_one(self, path: Path) -> FileTokens | None:
        async with self._semaphore:
            try:
                tokens = await asyncio.to_thread(
                    count_file_tokens, path, self.tokenizer, self.chunk_size
                )
            except OSError as exc:
                self._logger.warning("Cannot count tokens in %s: %s", path, exc)
                return None
        return FileTokens(label=path.stem, path=path, tokens=tokens)


__all__ = [
    "FileChunks",
    "FileTokens",
    "TokenAccountant",
    "TokenCounter",
    "TokenReport",
    "TokenSeverity",
    "Tokenizer",
    "classify_tokens",
    "count_file_tokens",
]
