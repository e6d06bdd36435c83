# =============================================================================
# Draft Generator — First-Pass Answer from Documents and Web Results
# =============================================================================
#
# Builds the draft-answer prompt and calls the primary model. The prompt
# depends on what context is available:
#
#   documents   — uploaded documents are the PRIMARY source; live web
#                 results, if any, are labelled supplementary
#   web only    — documents had nothing relevant; answer from web results
#                 and say so
#   background  — no documents or live results, but the model answered the
#                 search from its own knowledge; answer from that, labelled
#                 as unverified
#   neither     — tell the user nothing relevant was found and suggest
#                 uploading documents
#
# A model-knowledge search answer never counts as web results. Where it
# appears it is labelled as background that is not live web data.
#
# The draft is load-bearing: GenerationError propagates to the caller.
# =============================================================================

from __future__ import annotations

import logging

from rag_agent.errors import GenerationError
from rag_agent.services.llm import TextGenerator
from rag_agent.services.retriever import has_context
from rag_agent.services.web_search import WebSearchResult, format_results

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Prompt Templates
# ---------------------------------------------------------------------------

DOCUMENT_PROMPT = """You are a specialized AI assistant with access to both \
uploaded documents and web search results. PRIORITIZE the uploaded document \
content as your PRIMARY source.

**User Query:**
{query}

**PRIMARY SOURCE - UPLOADED DOCUMENT CONTENT:**
{context}
{web_section}
**CRITICAL INSTRUCTIONS:**
1. **DOCUMENTS FIRST**: Base your answer PRIMARILY on the uploaded document content
2. **Comprehensive Document Analysis**: Present ALL relevant information from the documents
3. **Web as Supplement**: Use web search results ONLY to add recent information, \
broader context, or fill small gaps the documents leave
4. **Clear Source Attribution**: Label any web information as \
"Additional context from web search:"
5. **Direct Citations**: Reference specific details from the documents by their [n] number

**Your Response:**"""

WEB_SECTION = """
**SUPPLEMENTARY SOURCE - Web Search Results (for additional context):**
{web_results}
"""

WEB_ONLY_PROMPT = """You are a helpful AI assistant. The uploaded documents \
do not contain relevant information for this query. Use web search results \
as a fallback.

**User Query:**
{query}

**Document Context:** {context}

**Web Search Results:**
{web_results}

**Instructions:**
- Clearly state that the information comes from web search, not uploaded documents
- Provide a helpful answer based on the web results
- Suggest the user upload relevant documents if they have them

**Your Response:**"""

BACKGROUND_SECTION = """
**BACKGROUND - Model Knowledge (NOT live web data, may be outdated):**
{background}
"""

BACKGROUND_ONLY_PROMPT = """You are a helpful AI assistant. Neither the \
uploaded documents nor a live web search produced relevant information for \
this query. Live search was unavailable, so the background below comes from \
model knowledge only.

**User Query:**
{query}

**Document Context:** {context}

**Background (NOT live web data):**
{background}

**Instructions:**
- Answer from the background, and say plainly that it comes from general \
model knowledge, not from uploaded documents or live web results
- Point out anything that may have changed recently
- Suggest the user upload relevant documents if they have them

**Your Response:**"""

NO_SOURCES_PROMPT = """You are a helpful AI assistant.

**User Query:**
{query}

**Document Context:** {context}

**Web Search:** {web_summary}

**Your Response:**
Tell the user that no relevant uploaded documents or live web results are \
available for this query, and suggest they upload relevant documents to get \
an answer based on their own data."""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_draft_prompt(
    query: str,
    context: str,
    web_result: WebSearchResult | None,
) -> str:
    """Pick the prompt branch for the available context and fill it in."""
    has_web = web_result is not None and web_result.is_live and web_result.has_results
    background = (
        web_result.summary
        if web_result is not None and web_result.has_background else ""
    )

    if has_context(context):
        if has_web:
            web_section = WEB_SECTION.format(web_results=format_results(web_result))
        elif background:
            web_section = BACKGROUND_SECTION.format(background=background)
        else:
            web_section = ""
        return DOCUMENT_PROMPT.format(
            query=query, context=context, web_section=web_section,
        )

    if has_web:
        return WEB_ONLY_PROMPT.format(
            query=query, context=context, web_results=format_results(web_result),
        )

    if background:
        return BACKGROUND_ONLY_PROMPT.format(
            query=query, context=context, background=background,
        )

    return NO_SOURCES_PROMPT.format(
        query=query,
        context=context,
        web_summary=web_result.summary if web_result else "not performed",
    )


async def generate_draft(
    query: str,
    context: str,
    web_result: WebSearchResult | None,
    generator: TextGenerator,
    provider: str,
    model: str,
) -> str:
    """
    Generate the draft answer with the primary model.

    Raises:
        GenerationError: If the generation call fails.
    """
    prompt = build_draft_prompt(query, context, web_result)

    logger.info(
        "Generating draft: provider=%s, model=%s, documents=%s, web=%s",
        provider, model, has_context(context),
        web_result.origin if web_result else "none",
    )

    try:
        draft = await generator.generate(prompt, provider, model)
    except GenerationError:
        raise
    except Exception as e:
        raise GenerationError(
            f"Draft generation failed: {e}", provider=provider, model=model,
        ) from e

    logger.info("Draft generated (%d chars)", len(draft))
    return draft
