"""Fixed-window character chunking of tenant transcripts."""

import hashlib

from tutorrag.core.models import Chunk, TenantCorpus

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200


def _validate(size: int, overlap: int) -> None:
    if size <= 0:
        raise ValueError(f"chunk size must be > 0, got {size}")
    if overlap < 0 or overlap >= size:
        raise ValueError(f"chunk overlap must be in [0, {size}), got {overlap}")


def chunk_text(
    text: str,
    size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """Split text into windows of ``size`` characters sharing ``overlap`` characters.

    Windows advance by ``size - overlap``. The last window ends at the end of
    the text, so every window overlaps its predecessor by exactly ``overlap``
    characters and is never contained in it.

    Args:
        text: Text to split.
        size: Window length in characters.
        overlap: Characters shared by consecutive windows.

    Returns:
        Ordered windows; empty if the text is empty.
    """
    _validate(size, overlap)
    if not text:
        return []

    step = size - overlap
    windows: list[str] = []
    start = 0
    while True:
        windows.append(text[start : start + size])
        if start + size >= len(text):
            break
        start += step
    return windows


def chunk_id(tenant_id: str, video_id: str, sequence_index: int) -> str:
    """Deterministic vector id, stable across re-ingestion of the same content."""
    return hashlib.sha256(f"{tenant_id}:{video_id}:{sequence_index}".encode()).hexdigest()


def chunk_corpus(
    corpus: TenantCorpus,
    size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[Chunk]:
    """Chunk every corpus entry separately so no window spans two videos."""
    _validate(size, overlap)
    chunks: list[Chunk] = []
    for entry in corpus.entries:
        video = entry.video
        for index, window in enumerate(chunk_text(entry.text.strip(), size, overlap)):
            chunks.append(
                Chunk(
                    id=chunk_id(corpus.tenant_id, video.id, index),
                    source_video_id=video.id,
                    text=window,
                    sequence_index=index,
                    title=video.title,
                    url=video.url,
                )
            )
    return chunks
