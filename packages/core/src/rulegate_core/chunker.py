"""Fixed-size sliding-window chunking for embedding rule documents."""

from __future__ import annotations


def split_into_chunks(text: str, chunk_size: int = 1000, overlap: int = 200) -> list[str]:
    """Split ``text`` into chunks of at most ``chunk_size`` characters.

    Consecutive chunks share exactly ``overlap`` characters. The last chunk is
    whatever remains, starting ``overlap`` characters before the previous
    window ends, so only a text no longer than ``chunk_size`` (a single chunk)
    can come out shorter than ``overlap``.
    """
    if chunk_size <= 0 or not 0 <= overlap < chunk_size:
        raise ValueError(f"Invalid chunking parameters: chunk_size={chunk_size}, overlap={overlap}")

    chunks: list[str] = []
    start = 0
    while start < len(text):
        end = min(start + chunk_size, len(text))
        chunks.append(text[start:end])
        if end == len(text):
            break
        start = end - overlap
    return chunks
