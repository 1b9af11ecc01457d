"""Streaming fingerprint + ``[[reference]]`` extraction.

A document is read as a byte stream in fixed-size chunks. Every byte feeds the
content hash; the same bytes drive a small state machine that pulls out the
text between doubled brackets. All state lives on ``ReferenceScanner`` so a
token split across two reads is reassembled, and the result does not depend
on how the stream was chunked.
"""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Iterable

from ..errors import ReadFailure, TokenDecodeFailure, UnterminatedReference


logger = logging.getLogger(__name__)

OPEN_CHAR = ord("[")
CLOSE_CHAR = ord("]")

DEFAULT_CHUNK_SIZE = 8192
DEFAULT_HASH = "md5"


@dataclass(frozen=True)
class ScanResult:
    fingerprint: str
    references: list[str] = field(default_factory=list)
    # Unterminated "[[..." tokens dropped at end of stream (lenient mode only).
    discarded: int = 0


class ReferenceScanner:
    """Resumable scanner state: hash, two delimiter runs and the pending token.

    Feed chunks in order with ``feed()``, then call ``finish()`` once.
    """

    def __init__(
        self,
        *,
        hash_name: str = DEFAULT_HASH,
        encoding: str = "utf-8",
        strict: bool = False,
        source: str | None = None,
    ):
        self._hasher = hashlib.new(hash_name)
        self._encoding = encoding
        self._strict = bool(strict)
        self._source = source

        self._open_run = 0
        self._close_run = 0
        # Bytes of the token being collected, None outside of a token.
        self._pending: bytearray | None = None

        self._references: list[str] = []
        self._finished = False

    @property
    def in_reference(self) -> bool:
        return self._pending is not None

    @property
    def references(self) -> list[str]:
        return list(self._references)

    def feed(self, chunk: bytes) -> None:
        if self._finished:
            raise RuntimeError("scanner already finished")
        if not chunk:
            return

        self._hasher.update(chunk)

        # Outside a token only the open run matters; skip chunks that cannot start one.
        if self._pending is None and OPEN_CHAR not in chunk:
            self._open_run = 0
            self._close_run = 0
            return

        for byte in chunk:
            if byte == OPEN_CHAR:
                self._open_run += 1
                self._close_run = 0
                if self._open_run == 2:
                    # A new "[[" restarts collection, dropping any half-read token.
                    self._pending = bytearray()
                    continue
            elif byte == CLOSE_CHAR:
                self._close_run += 1
                self._open_run = 0
                if self._close_run == 2:
                    self._close_run = 0
                    if self._pending is not None:
                        self._emit()
                        continue
            else:
                self._open_run = 0
                self._close_run = 0

            if self._pending is not None:
                self._pending.append(byte)

    def finish(self) -> ScanResult:
        if self._finished:
            raise RuntimeError("scanner already finished")
        self._finished = True

        discarded = 0
        if self._pending is not None:
            preview = bytes(self._pending[:40]).decode(self._encoding, errors="replace")
            if self._strict:
                raise UnterminatedReference(
                    f"unterminated reference [[{preview}", path=self._source
                )
            logger.debug("Discarding unterminated reference [[%s in %s", preview, self._source or "<stream>")
            self._pending = None
            discarded = 1

        return ScanResult(
            fingerprint=self._hasher.hexdigest(),
            references=list(self._references),
            discarded=discarded,
        )

    def _emit(self) -> None:
        # The first "]" of the closing pair was collected as token text.
        raw = bytes(self._pending[:-1])
        self._pending = None
        self._open_run = 0
        try:
            token = raw.decode(self._encoding)
        except UnicodeDecodeError as e:
            raise TokenDecodeFailure(
                f"reference is not valid {self._encoding}: {raw!r}", path=self._source
            ) from e
        self._references.append(token)


def scan_chunks(
    chunks: Iterable[bytes],
    *,
    hash_name: str = DEFAULT_HASH,
    encoding: str = "utf-8",
    strict: bool = False,
    source: str | None = None,
) -> ScanResult:
    scanner = ReferenceScanner(hash_name=hash_name, encoding=encoding, strict=strict, source=source)
    for chunk in chunks:
        scanner.feed(chunk)
    return scanner.finish()


def scan_bytes(data: bytes, **kwargs) -> ScanResult:
    return scan_chunks([data], **kwargs)


def scan_stream(
    stream: BinaryIO,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    hash_name: str = DEFAULT_HASH,
    encoding: str = "utf-8",
    strict: bool = False,
    source: str | None = None,
) -> ScanResult:
    """Scan a binary stream without holding more than one chunk in memory."""
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")

    scanner = ReferenceScanner(hash_name=hash_name, encoding=encoding, strict=strict, source=source)
    while True:
        try:
            chunk = stream.read(chunk_size)
        except OSError as e:
            raise ReadFailure(str(e), path=source) from e
        if not chunk:
            break
        scanner.feed(chunk)
    return scanner.finish()


def scan_file(
    path: str | os.PathLike[str],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    hash_name: str = DEFAULT_HASH,
    encoding: str = "utf-8",
    strict: bool = False,
) -> ScanResult:
    p = Path(path)
    try:
        f = p.open("rb")
    except OSError as e:
        raise ReadFailure(e.strerror or str(e), path=p) from e
    with f:
        return scan_stream(
            f,
            chunk_size=chunk_size,
            hash_name=hash_name,
            encoding=encoding,
            strict=strict,
            source=str(p),
        )


def fingerprint_file(
    path: str | os.PathLike[str],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    hash_name: str = DEFAULT_HASH,
) -> str:
    """Hash only; same digest ``scan_file`` would record for the file."""
    p = Path(path)
    h = hashlib.new(hash_name)
    try:
        with p.open("rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                h.update(chunk)
    except OSError as e:
        raise ReadFailure(e.strerror or str(e), path=p) from e
    return h.hexdigest()
