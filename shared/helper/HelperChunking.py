"""Delimiter-aware text chunking.

Text is split on an exact delimiter substring, segments are trimmed and
greedily packed into chunks of at most chunk_size characters. A segment that
alone exceeds chunk_size is force-split into chunk_size pieces which become
chunks of their own. Every chunk is prefixed with a 1-based "[Chunk N] " marker.
"""

import re

_CHUNK_MARKER = re.compile(r"^\[Chunk \d+\] ")


def chunk_text(text: str, delimiter: str, chunk_size: int) -> list[str]:
    """Split text into bounded, marker-prefixed chunks.

    Args:
        text (str): The text to split.
        delimiter (str): Exact substring separating segments. Empty means the
            whole text is a single segment.
        chunk_size (int): Maximum characters per chunk before the marker.

    Returns:
        list[str]: Chunks in original text order, e.g. ["[Chunk 1] A", "[Chunk 2] B"].
    """
    segments = text.split(delimiter) if delimiter else [text]

    chunks: list[str] = []
    current = ""
    for segment in segments:
        trimmed = segment.strip()
        if not trimmed:
            continue

        if len(trimmed) > chunk_size:
            if current:
                chunks.append(current)
                current = ""
            chunks.extend(_force_split(trimmed, chunk_size))
            continue

        if current and len(current) + len(delimiter) + len(trimmed) > chunk_size:
            chunks.append(current)
            current = ""

        current = f"{current}{delimiter}{trimmed}" if current else trimmed

    if current:
        chunks.append(current)

    return [f"[Chunk {index}] {chunk}" for index, chunk in enumerate(chunks, start=1)]


def strip_chunk_marker(chunk: str) -> str:
    """Remove the leading "[Chunk N] " marker, if any."""
    return _CHUNK_MARKER.sub("", chunk, count=1)


def _force_split(text: str, max_size: int) -> list[str]:
    # a non-positive size degenerates to one character per piece
    step = max(max_size, 1)
    return [text[start:start + step] for start in range(0, len(text), step)]
