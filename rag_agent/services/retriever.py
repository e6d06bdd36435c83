# =============================================================================
# RAG Retriever — In-Memory Chunk Index with Cosine Ranking
# =============================================================================
#
# Holds chunk <-> embedding pairs for ONE session's document set and ranks
# chunks against a query embedding.
#
# STATE MACHINE:
#   EMPTY ──index_documents()──▶ INDEXING ──▶ READY
#     ▲                                          │
#     └───────────────── clear() ◀───────────────┘
#
# - retrieve() raises NotReadyError in EMPTY and INDEXING. It never blocks.
# - index_documents() with zero chunks still ends in READY; retrieval then
#   returns [] rather than raising.
# - An embedding failure during indexing propagates and resets to EMPTY.
#
# Callers must not run retrieve() concurrently with index_documents() on
# the same retriever. A retrieve() that lands mid-index sees INDEXING
# and raises.
# =============================================================================

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from rag_agent.errors import ConfigurationError, NotReadyError
from rag_agent.services.chunker import Chunk, Document
from rag_agent.services.embedder import EmbeddingCache, cosine_similarity

logger = logging.getLogger(__name__)

# Sentinel returned by format_context() when nothing was retrieved.
# Downstream prompt building checks for it with has_context().
NO_CONTEXT = "No relevant document context found."


class IndexState(str, enum.Enum):
    EMPTY = "empty"
    INDEXING = "indexing"
    READY = "ready"


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RankedChunk:
    """A chunk paired with its cosine similarity to one query."""

    chunk: Chunk
    score: float  # [-1, 1]; 0.0 when either vector is missing

    @property
    def text(self) -> str:
        return self.chunk.text

    @property
    def source(self) -> str:
        return self.chunk.source


# ---------------------------------------------------------------------------
# Retriever
# ---------------------------------------------------------------------------


class RAGRetriever:
    """In-memory vector index over one session's documents."""

    def __init__(self, embeddings: EmbeddingCache) -> None:
        self._embeddings = embeddings
        self._documents: list[Document] = []
        self._chunks: list[Chunk] = []  # Insertion order = tie-break order
        self._vectors: dict[str, list[float]] = {}
        self._state = IndexState.EMPTY

    @property
    def state(self) -> IndexState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is IndexState.READY

    async def index_documents(self, documents: Iterable[Document]) -> None:
        """
        Embed every chunk of every document and transition to READY.

        Replaces any previous index.

        Raises:
            EmbeddingProviderError: If any chunk fails to embed. The
                index is reset to EMPTY.
            ConfigurationError: If two documents share a name. The
                current index is left untouched.
        """
        documents = list(documents)
        names = [doc.name for doc in documents]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate document names: {duplicates}")
        chunks = [chunk for doc in documents for chunk in doc.chunks]

        self._reset()
        self._state = IndexState.INDEXING

        if not chunks:
            logger.warning("No document chunks to index; index is empty but ready")
            self._documents = documents
            self._state = IndexState.READY
            return

        logger.info(
            "Indexing %d chunks from %d documents",
            len(chunks), len(documents),
        )

        try:
            for i, chunk in enumerate(chunks):
                self._vectors[chunk.key] = await self._embeddings.embed(chunk.text)
                self._chunks.append(chunk)

                if (i + 1) % 10 == 0 or i == len(chunks) - 1:
                    logger.debug("Indexed %d/%d chunks", i + 1, len(chunks))
        except Exception:
            logger.error("Indexing failed; resetting index to empty")
            self._reset()
            raise

        self._documents = documents
        self._state = IndexState.READY
        logger.info("Indexed %d chunks", len(self._vectors))

    async def retrieve(self, query: str, top_k: int = 3) -> list[RankedChunk]:
        """
        Rank indexed chunks against the query, highest score first.

        Equal scores keep insertion order. Returns at most top_k items;
        top_k <= 0 returns [].

        Raises:
            NotReadyError: If the index is EMPTY or INDEXING.
            EmbeddingProviderError: If the query cannot be embedded.
        """
        if self._state is not IndexState.READY:
            raise NotReadyError(
                f"Retriever is not ready (state={self._state.value})"
            )

        if top_k <= 0 or not self._chunks:
            return []

        query_vector = await self._embeddings.embed(query)

        ranked = [
            RankedChunk(
                chunk=chunk,
                score=cosine_similarity(query_vector, self._vectors.get(chunk.key)),
            )
            for chunk in self._chunks
        ]
        # sorted() is stable, so equal scores keep insertion order
        ranked = sorted(ranked, key=lambda r: r.score, reverse=True)

        logger.debug(
            "Retrieved %d of %d chunks for query '%s'",
            min(top_k, len(ranked)), len(ranked), query[:80],
        )
        return ranked[:top_k]

    def clear(self) -> None:
        """Drop the index and the embedding cache; back to EMPTY."""
        self._reset()
        self._embeddings.clear()

    def stats(self) -> dict:
        return {
            "total_chunks": sum(len(doc.chunks) for doc in self._documents),
            "indexed_chunks": len(self._vectors),
            "documents": len(self._documents),
            "state": self._state.value,
        }

    def _reset(self) -> None:
        self._documents = []
        self._chunks = []
        self._vectors = {}
        self._state = IndexState.EMPTY


# ---------------------------------------------------------------------------
# Formatting Helpers
# ---------------------------------------------------------------------------


def format_context(ranked: list[RankedChunk]) -> str:
    """
    Render ranked chunks as numbered, source-attributed context.

    Example output:
        Relevant document context:

        [1] From report.txt (Relevance: 87.5%):
        Water boils at 100 degrees Celsius...

    Returns NO_CONTEXT for an empty list.
    """
    if not ranked:
        return NO_CONTEXT

    sections = ["Relevant document context:\n"]
    for i, item in enumerate(ranked, 1):
        sections.append(
            f"[{i}] From {item.source} (Relevance: {item.score * 100:.1f}%):\n"
            f"{item.text}\n"
        )
    return "\n".join(sections)


def has_context(context: str | None) -> bool:
    """True when context holds real document content, not the sentinel."""
    return bool(context) and context.strip() != NO_CONTEXT


def unique_sources(ranked: list[RankedChunk]) -> list[str]:
    """Source document names in rank order, without duplicates."""
    return list(dict.fromkeys(item.source for item in ranked))
