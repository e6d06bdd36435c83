# =============================================================================
# Word-Window Text Chunker
# =============================================================================
#
# Splits raw document text into overlapping fixed-size word windows.
# Each chunk is annotated with its source document name, its position
# within the document, and the offset of its first word.
#
# ALGORITHM:
# 1. Split the text on whitespace into a word sequence of length W
# 2. Start at word 0 and advance by (window_size - overlap) while < W
# 3. Each window takes up to window_size words, joined by single spaces
# 4. Trim; emit only non-empty windows
#
# The final window of a document may be shorter than window_size.
# Chunking is a pure function of (text, window_size, overlap).
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from rag_agent.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 500
DEFAULT_OVERLAP = 100


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Chunk:
    """
    A contiguous word-window slice of a document, the unit of retrieval.

    Identity for indexing is (source, index). Never mutated after creation.
    """

    text: str
    source: str       # Name of the document this chunk came from
    index: int        # 0-indexed position within the document
    word_start: int = 0  # Offset of the first word in the document's words

    @property
    def key(self) -> str:
        return f"{self.source}-{self.index}"


@dataclass(frozen=True)
class Document:
    """A loaded document with its derived chunks."""

    name: str
    raw_text: str
    chunks: tuple[Chunk, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_window(window_size: int, overlap: int) -> None:
    """Raise ConfigurationError unless 0 <= overlap < window_size."""
    if window_size <= 0:
        raise ConfigurationError(
            f"window_size must be positive, got {window_size}"
        )
    if overlap < 0:
        raise ConfigurationError(f"overlap must be >= 0, got {overlap}")
    if overlap >= window_size:
        raise ConfigurationError(
            f"overlap ({overlap}) must be smaller than window_size "
            f"({window_size})"
        )


def chunk_text(
    text: str,
    window_size: int = DEFAULT_WINDOW_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> list[str]:
    """
    Split text into overlapping word windows.

    Args:
        text: Raw document text.
        window_size: Maximum words per chunk (default 500).
        overlap: Words shared by consecutive chunks (default 100).

    Returns:
        Chunk strings in document order. Empty text yields [].

    Raises:
        ConfigurationError: If overlap >= window_size, or either value
            is out of range.
    """
    return [text for _, text in _windows(text, window_size, overlap)]


def build_document(
    name: str,
    text: str,
    window_size: int = DEFAULT_WINDOW_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> Document:
    """
    Chunk a document and wrap the result with source attribution.

    Chunk indices are sequential over the emitted chunks.
    """
    chunks = tuple(
        Chunk(text=chunk, source=name, index=i, word_start=start)
        for i, (start, chunk) in enumerate(_windows(text, window_size, overlap))
    )

    logger.info(
        "Chunked '%s' into %d chunks (window=%d, overlap=%d)",
        name, len(chunks), window_size, overlap,
    )
    return Document(name=name, raw_text=text, chunks=chunks)


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


def _windows(text: str, window_size: int, overlap: int) -> list[tuple[int, str]]:
    """Return (word_start, chunk_text) pairs for every non-empty window."""
    validate_window(window_size, overlap)

    words = text.split()
    step = window_size - overlap

    windows: list[tuple[int, str]] = []
    for start in range(0, len(words), step):
        chunk = " ".join(words[start:start + window_size]).strip()
        if chunk:
            windows.append((start, chunk))

    return windows
