# =============================================================================
# Embedding Service — Cached Vector Generation (Provider-Agnostic)
# =============================================================================
#
# Generates vector embeddings using any OpenAI-compatible embedding API,
# memoizes them by exact input text, and exposes cosine similarity.
#
# ARCHITECTURE:
#   EmbeddingProvider (Protocol)       — async embed(texts) -> vectors
#   ├── OpenAIEmbeddingProvider        — AsyncOpenAI with configurable base_url
#   EmbeddingCache                     — memoized embed()/embed_batch()
#   cosine_similarity()                — pure function
#
# CACHE: keyed by exact text, unbounded, no eviction. Sized for one
# session's small document set; see DESIGN.md for the scaling question.
#
# ERRORS: embed() raises EmbeddingProviderError on any upstream failure.
# embed_batch() never raises per item; a failed item becomes None.
# =============================================================================

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Protocol

from rag_agent.config import settings
from rag_agent.errors import EmbeddingProviderError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class EmbeddingProvider(Protocol):
    """Anything that turns a batch of texts into vectors, order-preserving."""

    model: str

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        ...


# ---------------------------------------------------------------------------
# Implementation: OpenAI-compatible embeddings endpoint
# ---------------------------------------------------------------------------


class OpenAIEmbeddingProvider:
    """
    Embeddings via the OpenAI SDK.

    API key resolution order:
      1. OPENAI_API_KEY (explicit embedding key)
      2. LLM_API_KEY (shared key, e.g. one DashScope key for LLM + embeddings)
    The client is created lazily so that constructing the provider never
    fails at import time when no key is set.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        dimensions: int | None = None,
        batch_size: int | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url or settings.embedding_base_url
        self.model = model or settings.embedding_model
        self._dimensions = (
            dimensions if dimensions is not None else settings.embedding_dimensions
        )
        self._batch_size = batch_size or settings.embedding_batch_size
        self._client = None

    def _get_client(self):
        """Lazily initialize and cache the embedding client."""
        if self._client is None:
            from openai import AsyncOpenAI

            resolved_key = (
                self._api_key or settings.openai_api_key or settings.llm_api_key
            )
            if not resolved_key:
                raise EmbeddingProviderError(
                    "No API key configured for embeddings. "
                    "Set OPENAI_API_KEY or LLM_API_KEY in .env"
                )

            client_kwargs: dict = {"api_key": resolved_key}
            if self._base_url:
                client_kwargs["base_url"] = self._base_url

            self._client = AsyncOpenAI(**client_kwargs)

            logger.info(
                "Initialized embedding client (model=%s, base_url=%s)",
                self.model,
                self._base_url or "https://api.openai.com/v1",
            )
        return self._client

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """
        Embed texts in sub-batches, returning vectors in input order.

        Raises:
            EmbeddingProviderError: On missing key, API errors, or a
                response that does not cover every input.
        """
        if not texts:
            return []

        client = self._get_client()
        vectors: list[list[float] | None] = [None] * len(texts)

        for i in range(0, len(texts), self._batch_size):
            batch = list(texts[i:i + self._batch_size])

            create_kwargs: dict = {"model": self.model, "input": batch}
            if self._dimensions:
                create_kwargs["dimensions"] = self._dimensions

            try:
                response = await client.embeddings.create(**create_kwargs)
            except Exception as e:
                raise EmbeddingProviderError(
                    f"Embedding request failed (model={self.model}): {e}"
                ) from e

            for item in sorted(response.data, key=lambda x: x.index):
                vectors[i + item.index] = list(item.embedding)

        if any(v is None for v in vectors):
            raise EmbeddingProviderError(
                f"Malformed embedding response: expected {len(texts)} vectors"
            )

        return vectors  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Memoizing Cache
# ---------------------------------------------------------------------------


class EmbeddingCache:
    """
    Memoized text -> vector lookups over an EmbeddingProvider.

    A cache hit never calls the provider. The cache only shrinks on
    clear().
    """

    def __init__(self, provider: EmbeddingProvider | None = None) -> None:
        self._provider = provider or OpenAIEmbeddingProvider()
        self._cache: dict[str, list[float]] = {}

    async def embed(self, text: str) -> list[float]:
        """
        Embed a single text, consulting the cache first.

        Raises:
            EmbeddingProviderError: If the upstream call fails.
        """
        cached = self._cache.get(text)
        if cached is not None:
            return cached

        try:
            result = await self._provider.embed([text])
        except EmbeddingProviderError:
            raise
        except Exception as e:
            raise EmbeddingProviderError(f"Embedding failed: {e}") from e

        if not result or not result[0]:
            raise EmbeddingProviderError("Embedding provider returned no vector")

        vector = result[0]
        self._cache[text] = vector
        return vector

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float] | None]:
        """
        Embed many texts. A failed item yields None; the batch continues.
        """
        vectors: list[list[float] | None] = []
        for i, text in enumerate(texts):
            try:
                vectors.append(await self.embed(text))
            except EmbeddingProviderError as e:
                logger.warning("Embedding failed for batch item %d: %s", i, e)
                vectors.append(None)
        return vectors

    def clear(self) -> None:
        self._cache.clear()

    def stats(self) -> dict:
        return {
            "size": len(self._cache),
            "provider": type(self._provider).__name__,
            "model": getattr(self._provider, "model", "unknown"),
        }

    def __len__(self) -> int:
        return len(self._cache)


# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------


def cosine_similarity(
    a: Sequence[float] | None,
    b: Sequence[float] | None,
) -> float:
    """
    Cosine similarity in [-1, 1].

    Returns 0.0 when either vector is missing or empty, when the lengths
    differ, or when either norm is zero. Never raises for those cases.
    """
    if not a or not b or len(a) != len(b):
        return 0.0

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    similarity = dot / (math.sqrt(norm_a) * math.sqrt(norm_b))
    # Rounding can push |similarity| a hair past 1.0
    return max(-1.0, min(1.0, similarity))
