# =============================================================================
# Document Source — Plain-Text Loading and Chunking
# =============================================================================
#
# The agent consumes documents as a mapping of name -> raw extracted text.
# PDF/DOCX extraction happens upstream; this module only reads formats that
# need no extraction library (.txt, .md, .json) and turns the mapping into
# chunked Document objects.
# =============================================================================

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path

from rag_agent.services.chunker import Document, build_document, validate_window

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".txt", ".md", ".json")


def read_text_documents(directory: str | Path) -> dict[str, str]:
    """
    Read every supported file in a directory (non-recursive).

    JSON files are re-serialised with two-space indentation. Files that
    cannot be read or decoded are logged and skipped. A missing directory
    yields an empty mapping.
    """
    root = Path(directory)
    if not root.is_dir():
        logger.warning("Document directory '%s' does not exist", root)
        return {}

    documents: dict[str, str] = {}
    for path in sorted(root.iterdir()):
        if not path.is_file() or path.suffix.lower() not in SUPPORTED_SUFFIXES:
            continue
        try:
            text = path.read_text(encoding="utf-8")
            if path.suffix.lower() == ".json":
                text = json.dumps(json.loads(text), indent=2)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Skipping '%s': %s", path.name, e)
            continue
        documents[path.name] = text

    logger.info("Loaded %d documents from %s", len(documents), root)
    return documents


def build_documents(
    sources: Mapping[str, str],
    window_size: int,
    overlap: int,
) -> list[Document]:
    """Chunk every (name, text) pair, preserving mapping order."""
    validate_window(window_size, overlap)
    return [
        build_document(name, text, window_size=window_size, overlap=overlap)
        for name, text in sources.items()
    ]
