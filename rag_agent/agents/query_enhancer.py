# =============================================================================
# Query Enhancer — Web-Search Query Rewriting
# =============================================================================
#
# Rewrites the user's question into a web-search-friendly query, using the
# retrieved document context as a hint. This is an optimisation only: on
# any failure the original query is returned unchanged.
# =============================================================================

from __future__ import annotations

import logging

from rag_agent.services.llm import TextGenerator
from rag_agent.services.retriever import has_context

logger = logging.getLogger(__name__)

# Only the head of the context goes into the prompt
CONTEXT_PREVIEW_CHARS = 500

_ENHANCE_PROMPT = """Given the user's query and document context, enhance \
the query to make it more effective for web search.

User Query: {query}

Document Context (first {limit} chars):
{context}

Provide an enhanced search query that will find relevant information on \
the web. Return ONLY the enhanced query, nothing else."""


async def enhance_query(
    query: str,
    document_context: str,
    generator: TextGenerator,
    provider: str,
    model: str,
) -> str:
    """
    Return a web-search-optimised version of the query.

    Skips the LLM call entirely when there is no document context.
    Never raises.
    """
    if not has_context(document_context):
        logger.info("No document context available; using original query")
        return query

    prompt = _ENHANCE_PROMPT.format(
        query=query,
        limit=CONTEXT_PREVIEW_CHARS,
        context=document_context[:CONTEXT_PREVIEW_CHARS],
    )

    try:
        enhanced = (await generator.generate(prompt, provider, model)).strip()
    except Exception as e:
        logger.warning("Query enhancement failed: %s. Using original query", e)
        return query

    # Models sometimes wrap the query in quotes
    enhanced = enhanced.strip('"').strip("'").strip()
    if not enhanced:
        logger.warning("Query enhancement returned nothing; using original query")
        return query

    logger.info("Enhanced query: '%s' -> '%s'", query[:80], enhanced[:80])
    return enhanced
