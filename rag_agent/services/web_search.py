# =============================================================================
# Web Search Adapter — Tavily Search API with Tagged Fallback
# =============================================================================
#
# Calls the Tavily search API over httpx and normalises the reply into a
# WebSearchResult. Search is supplementary, so search() never raises:
#
#   - No API key           → origin="unavailable", empty results
#   - Transport / non-2xx  → answer from the LLM's own knowledge,
#     or malformed reply     origin="model_knowledge", summary tagged
#                            "[Not live web data]", empty results
#                            (error is set if the fallback also fails)
#   - Success              → origin="live"
#
# Callers decide whether web content counts as a source by checking
# result.is_live, never by inspecting the summary text.
# A model-knowledge answer is usable only as labelled background
# (result.has_background).
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

import httpx

from rag_agent.config import settings
from rag_agent.services.llm import TextGenerator

logger = logging.getLogger(__name__)

WEB_SEARCH_UNAVAILABLE = (
    "Web search is not configured. Set TAVILY_API_KEY to enable live "
    "web results."
)
NOT_LIVE_TAG = "[Not live web data]"

_FALLBACK_PROMPT = """Live web search is unavailable. Answer the search \
query below from your own knowledge. Be concise and factual, and say so \
plainly if you are unsure or the topic may have changed recently.

Search query: {query}

Answer:"""


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WebResult:
    title: str
    url: str
    content: str


@dataclass(frozen=True)
class WebSearchResult:
    """Normalised search outcome."""

    summary: str
    results: list[WebResult] = field(default_factory=list)
    origin: Literal["live", "unavailable", "model_knowledge"] = "live"
    # Set when neither live search nor the fallback produced content
    error: str | None = None

    @property
    def is_live(self) -> bool:
        return self.origin == "live"

    @property
    def has_results(self) -> bool:
        return bool(self.results)

    @property
    def has_background(self) -> bool:
        return self.origin == "model_knowledge" and self.error is None


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class WebSearch:
    """
    Tavily-backed web search.

    Args:
        generator: Generation capability used for the model-knowledge
            fallback. Without one, failures return a tagged error summary.
        fallback_provider / fallback_model: Which model answers when live
            search fails.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str | None = None,
        generator: TextGenerator | None = None,
        fallback_provider: str | None = None,
        fallback_model: str | None = None,
        url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.tavily_api_key
        self._generator = generator
        self._fallback_provider = fallback_provider or settings.llm_provider
        self._fallback_model = fallback_model or settings.llm_model
        self._url = url or settings.web_search_url
        self._timeout = timeout or settings.web_search_timeout
        self._transport = transport

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def search(self, query: str, max_results: int | None = None) -> WebSearchResult:
        """Search the web. Never raises."""
        if not self.is_available():
            logger.info("Web search API key not set; skipping web search")
            return WebSearchResult(
                summary=WEB_SEARCH_UNAVAILABLE, results=[], origin="unavailable",
            )

        limit = max_results or settings.web_search_max_results
        logger.info("Searching web for '%s' (max_results=%d)", query[:80], limit)

        try:
            data = await self._post(query, limit)
            results = [
                WebResult(
                    title=str(r.get("title", "")),
                    url=str(r.get("url", "")),
                    content=str(r.get("content", "")),
                )
                for r in data["results"]
            ]
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning("Web search failed: %s. Falling back to model knowledge", e)
            return await self._fallback(query, e)

        logger.info("Found %d web results", len(results))
        return WebSearchResult(
            summary=data.get("answer") or "No AI summary available",
            results=results,
            origin="live",
        )

    async def _post(self, query: str, max_results: int) -> dict:
        payload = {
            "api_key": self._api_key,
            "query": query,
            "search_depth": "advanced",
            "max_results": max_results,
            "include_answer": True,
            "include_raw_content": False,
        }
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport,
        ) as client:
            resp = await client.post(self._url, json=payload)
            resp.raise_for_status()
            data = resp.json()

        if not isinstance(data, dict):
            raise ValueError("Search API returned a non-object JSON body")
        results = data.get("results")
        if results is None:
            data["results"] = []
        elif not isinstance(results, list):
            raise ValueError(
                f"Search API returned non-list results: {type(results).__name__}"
            )
        return data

    async def _fallback(self, query: str, error: Exception) -> WebSearchResult:
        """Answer from model knowledge, tagged so it is never mistaken for live data."""
        if self._generator is None:
            return WebSearchResult(
                summary=f"{NOT_LIVE_TAG} Web search failed: {error}",
                results=[],
                origin="model_knowledge",
                error=str(error),
            )

        try:
            answer = await self._generator.generate(
                _FALLBACK_PROMPT.format(query=query),
                self._fallback_provider,
                self._fallback_model,
            )
        except Exception as e:
            logger.warning("Model-knowledge fallback failed: %s", e)
            return WebSearchResult(
                summary=(
                    f"{NOT_LIVE_TAG} Web search failed ({error}) and the "
                    f"model-knowledge fallback also failed ({e})."
                ),
                results=[],
                origin="model_knowledge",
                error=str(e),
            )

        answer = answer.strip()
        if not answer:
            return WebSearchResult(
                summary=f"{NOT_LIVE_TAG} Web search failed: {error}",
                results=[],
                origin="model_knowledge",
                error="Model-knowledge fallback returned nothing",
            )

        return WebSearchResult(
            summary=f"{NOT_LIVE_TAG} {answer}",
            results=[],
            origin="model_knowledge",
        )


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def format_results(result: WebSearchResult) -> str:
    """
    Render a search result for prompt construction.

    Example output:
        AI Summary: Water boils at 100 °C at sea level.

        Web Results:

        1. Boiling point
           URL: https://example.com/boiling
           The boiling point of water...
    """
    formatted = f"AI Summary: {result.summary}\n\n"

    if result.results:
        formatted += "Web Results:\n"
        for i, item in enumerate(result.results, 1):
            formatted += f"\n{i}. {item.title}\n"
            formatted += f"   URL: {item.url}\n"
            formatted += f"   {item.content}\n"

    return formatted
