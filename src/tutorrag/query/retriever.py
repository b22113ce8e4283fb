"""Retrieval of tenant chunks and assembly of the generation context."""

from __future__ import annotations

from tutorrag.core.logging_config import get_logger
from tutorrag.core.models import VectorMatch
from tutorrag.core.protocols import EmbeddingProvider, VectorIndexProvider

logger = get_logger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"


def format_match(match: VectorMatch) -> str:
    """Match text under a header naming the video it came from."""
    header = []
    if match.title:
        header.append(f"Title: {match.title}")
    if match.url:
        header.append(f"URL: {match.url}")
    if not header:
        return match.text
    return "\n".join(header) + f"\n\n{match.text}"


def build_context_block(matches: list[VectorMatch]) -> str:
    """Join matches in index order with a visible separator, no dedup or re-ranking."""
    return CONTEXT_SEPARATOR.join(format_match(match) for match in matches)


class Retriever:
    """Embeds a standalone query and searches the tenant's namespace."""

    def __init__(
        self,
        embedder: EmbeddingProvider,
        index: VectorIndexProvider,
        top_k: int = 10,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self.top_k = top_k

    async def embed_query(self, query: str) -> list[float]:
        return await self._embedder.embed_one(query)

    async def search(
        self, tenant_id: str, vector: list[float], top_k: int | None = None
    ) -> list[VectorMatch]:
        matches = await self._index.query(tenant_id, vector, top_k or self.top_k)
        logger.debug("retrieval_completed", tenant_id=tenant_id, matches=len(matches))
        return matches

    async def retrieve(
        self, tenant_id: str, query: str, top_k: int | None = None
    ) -> list[VectorMatch]:
        """Top matches for ``query`` in descending similarity order."""
        return await self.search(tenant_id, await self.embed_query(query), top_k)
