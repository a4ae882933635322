"""
ScanGate Streaming Line Reader

Reads large files in fixed-size byte chunks and yields decoded lines one at
a time, so memory use stays bounded by the chunk size plus the longest line.

Both the streaming path and the whole-file path split on ``\\n`` only and
drop the empty piece after a trailing newline, so line numbers agree.
"""

from __future__ import annotations

import codecs
import hashlib
from pathlib import Path
from typing import Iterator, Union

DEFAULT_CHUNK_SIZE = 64 * 1024
ENCODING = "utf-8"


def split_lines(text: str) -> list[str]:
    """Split whole-file text the same way ``stream_lines`` does."""
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def stream_lines(
    path: Union[str, Path],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[tuple[str, int]]:
    """
    Yield ``(text, line_number)`` pairs from a file, 1-based.

    The generator makes a single forward pass; an incomplete line at a chunk
    boundary is carried into the next chunk and a final unterminated line is
    yielded at EOF.
    """
    decoder = codecs.getincrementaldecoder(ENCODING)(errors="replace")
    buffer = ""
    line_number = 0

    with open(path, "rb") as handle:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                break
            buffer += decoder.decode(chunk)
            *complete, buffer = buffer.split("\n")
            for text in complete:
                line_number += 1
                yield text, line_number

        buffer += decoder.decode(b"", final=True)
        if buffer:
            line_number += 1
            yield buffer, line_number


def fingerprint_file(
    path: Union[str, Path],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> tuple[str, int]:
    """
    Hash the raw file bytes and count its lines in one chunked pass.

    The line count matches the number of lines ``stream_lines`` yields.
    """
    digest = hashlib.sha256()
    newlines = 0
    last = b""
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(chunk_size), b""):
            digest.update(chunk)
            newlines += chunk.count(b"\n")
            last = chunk[-1:]
    line_count = newlines + (1 if last and last != b"\n" else 0)
    return digest.hexdigest(), line_count


def hash_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
