# =============================================================================
# LangGraph Orchestrator — RAG Multi-Judge Agent
# =============================================================================
#
# Wires retrieval, query enhancement, web search, drafting, concurrent
# evaluation and aggregation into a LangGraph StateGraph.
#
# GRAPH TOPOLOGY:
#   START ─▶ retrieve ─▶ enhance ─▶ search ─▶ draft ─▶ evaluate ─▶ aggregate ─▶ END
#
# Linear graph, no conditional edges. Fallback behaviour (no documents,
# no web results) lives inside the nodes, not as graph routing.
#
# One RAGAgent owns one session's retriever. The graph is compiled per
# agent because its nodes are bound to that agent's collaborators.
#
# FAILURE POLICY:
#   enhance / search / single judge → absorbed inside the node
#   embedding / draft / aggregation → propagate out of the graph, and
#   process() turns them into ProcessOutcome(success=False)
# =============================================================================

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from rag_agent.agents.aggregator import AggregationResult, aggregate
from rag_agent.agents.drafter import generate_draft
from rag_agent.agents.evaluator import Evaluation, evaluate_response, select_judges
from rag_agent.agents.query_enhancer import enhance_query
from rag_agent.config import get_settings
from rag_agent.models.requests import AgentConfig
from rag_agent.models.responses import ProcessOutcome, QueryResult
from rag_agent.services.documents import build_documents
from rag_agent.services.embedder import EmbeddingCache
from rag_agent.services.llm import LLMGateway, TextGenerator
from rag_agent.services.retriever import (
    RAGRetriever,
    RankedChunk,
    format_context,
    unique_sources,
)
from rag_agent.services.web_search import WebSearch, WebSearchResult

logger = logging.getLogger(__name__)

WEB_SOURCE_LABEL = "Web Search"


# ---------------------------------------------------------------------------
# Agent State Schema
# ---------------------------------------------------------------------------


class AgentState(TypedDict, total=False):
    """
    State that flows through the graph.

    total=False so nodes only return the keys they update.
    """

    # --- Input ---
    query: str

    # --- Set by nodes ---
    chunks: list[RankedChunk]
    context: str
    sources: list[str]
    enhanced_query: str
    web_result: WebSearchResult
    draft: str
    evaluations: list[Evaluation]
    aggregation: AggregationResult


@dataclass(frozen=True)
class RetrievedContext:
    chunks: list[RankedChunk]
    context: str
    sources: list[str]


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------


class RAGAgent:
    """
    Retrieval + multi-judge answer pipeline for one session.

    Collaborators are injected; anything omitted is built from Settings.
    """

    def __init__(
        self,
        config: AgentConfig | None = None,
        generator: TextGenerator | None = None,
        embeddings: EmbeddingCache | None = None,
        web_search: WebSearch | None = None,
    ) -> None:
        self.config = config or AgentConfig.from_settings(get_settings())
        self.generator = generator or LLMGateway()
        # An empty cache is falsy (__len__), so test against None
        self.retriever = RAGRetriever(
            embeddings if embeddings is not None else EmbeddingCache()
        )
        self.web_search = web_search or WebSearch(
            generator=self.generator,
            fallback_provider=self.config.primary_provider,
            fallback_model=self.config.primary_model,
        )
        self._graph = self._build_graph()

    # -----------------------------------------------------------------------
    # Indexing
    # -----------------------------------------------------------------------

    async def initialize(self, documents: Mapping[str, str]) -> None:
        """
        Chunk and index a session's documents (name -> raw text).

        An empty mapping still leaves the agent ready to answer.

        Raises:
            ConfigurationError: If the chunk window is invalid.
            EmbeddingProviderError: If any chunk fails to embed.
        """
        docs = build_documents(
            documents,
            window_size=self.config.chunk_size,
            overlap=self.config.chunk_overlap,
        )
        await self.retriever.index_documents(docs)
        logger.info("Agent ready: %s", self.retriever.stats())

    def clear(self) -> None:
        self.retriever.clear()

    # -----------------------------------------------------------------------
    # Pipeline Steps (usable on their own)
    # -----------------------------------------------------------------------

    async def retrieve_context(self, query: str) -> RetrievedContext:
        """
        Raises:
            NotReadyError: If initialize() has not completed.
        """
        chunks = await self.retriever.retrieve(query, self.config.top_k)
        return RetrievedContext(
            chunks=chunks,
            context=format_context(chunks),
            sources=unique_sources(chunks),
        )

    async def enhance(self, query: str, context: str) -> str:
        return await enhance_query(
            query,
            context,
            self.generator,
            self.config.primary_provider,
            self.config.primary_model,
        )

    async def search(self, query: str) -> WebSearchResult:
        return await self.web_search.search(query, self.config.web_max_results)

    async def enhanced_search(self, query: str, context: str) -> WebSearchResult:
        """Enhance the query with document context, then search the web."""
        return await self.search(await self.enhance(query, context))

    async def draft(
        self,
        query: str,
        context: str,
        web_result: WebSearchResult | None,
    ) -> str:
        return await generate_draft(
            query,
            context,
            web_result,
            self.generator,
            self.config.primary_provider,
            self.config.primary_model,
        )

    async def evaluate(
        self,
        query: str,
        draft: str,
        context: str,
        web_result: WebSearchResult | None,
        judge_count: int | None = None,
    ) -> list[Evaluation]:
        """Run judge_count judges (default: every configured judge)."""
        judges = select_judges(self.config.judges, judge_count)
        return await evaluate_response(
            query, draft, context, web_result, judges, self.generator,
        )

    async def aggregate(
        self,
        query: str,
        draft: str,
        evaluations: list[Evaluation],
        sources: list[str],
    ) -> AggregationResult:
        provider, model = self.config.resolved_aggregator
        return await aggregate(
            query, draft, evaluations, sources, self.generator, provider, model,
        )

    # -----------------------------------------------------------------------
    # Graph Nodes
    # -----------------------------------------------------------------------

    async def _retrieve_node(self, state: AgentState) -> dict:
        retrieved = await self.retrieve_context(state["query"])
        logger.info(
            "Retrieved %d chunks from %d source(s)",
            len(retrieved.chunks), len(retrieved.sources),
        )
        return {
            "chunks": retrieved.chunks,
            "context": retrieved.context,
            "sources": retrieved.sources,
        }

    async def _enhance_node(self, state: AgentState) -> dict:
        return {"enhanced_query": await self.enhance(state["query"], state["context"])}

    async def _search_node(self, state: AgentState) -> dict:
        return {"web_result": await self.search(state["enhanced_query"])}

    async def _draft_node(self, state: AgentState) -> dict:
        draft = await self.draft(state["query"], state["context"], state["web_result"])
        return {"draft": draft}

    async def _evaluate_node(self, state: AgentState) -> dict:
        evaluations = await self.evaluate(
            state["query"], state["draft"], state["context"], state["web_result"],
        )
        return {"evaluations": evaluations}

    async def _aggregate_node(self, state: AgentState) -> dict:
        result = await self.aggregate(
            state["query"],
            state["draft"],
            state["evaluations"],
            _all_sources(state["sources"], state["web_result"]),
        )
        return {"aggregation": result}

    def _build_graph(self):
        builder = StateGraph(AgentState)
        builder.add_node("retrieve", self._retrieve_node)
        builder.add_node("enhance", self._enhance_node)
        builder.add_node("search", self._search_node)
        builder.add_node("draft", self._draft_node)
        builder.add_node("evaluate", self._evaluate_node)
        builder.add_node("aggregate", self._aggregate_node)

        builder.add_edge(START, "retrieve")
        builder.add_edge("retrieve", "enhance")
        builder.add_edge("enhance", "search")
        builder.add_edge("search", "draft")
        builder.add_edge("draft", "evaluate")
        builder.add_edge("evaluate", "aggregate")
        builder.add_edge("aggregate", END)

        return builder.compile()

    # -----------------------------------------------------------------------
    # Public Entry Point
    # -----------------------------------------------------------------------

    async def process(self, query: str) -> ProcessOutcome:
        """
        Answer one query end to end. Never raises.

        Returns:
            ProcessOutcome with success=True and a QueryResult, or
            success=False with the error that stopped the pipeline.
        """
        start = time.monotonic()
        logger.info("Processing query: '%s'", query[:80])

        try:
            state: AgentState = await self._graph.ainvoke({"query": query})
        except Exception as e:
            elapsed = round(time.monotonic() - start, 2)
            logger.error(
                "Query failed after %.2fs: %s: %s", elapsed, type(e).__name__, e,
            )
            return ProcessOutcome(
                success=False,
                query=query,
                error=str(e),
                error_type=type(e).__name__,
                elapsed_seconds=elapsed,
            )

        elapsed = round(time.monotonic() - start, 2)
        aggregation: AggregationResult = state["aggregation"]
        provider, model = self.config.resolved_aggregator

        result = QueryResult(
            original_query=query,
            retrieved_context=state["context"],
            enhanced_query=state["enhanced_query"],
            web_search=state["web_result"],
            draft_answer=state["draft"],
            evaluations=state["evaluations"],
            final_answer=aggregation.final_answer,
            decision=aggregation.decision,
            improvements=aggregation.improvements,
            sources=_all_sources(state["sources"], state["web_result"]),
            elapsed_seconds=elapsed,
            metadata={
                "primary_model": f"{self.config.primary_provider}/{self.config.primary_model}",
                "aggregator_model": f"{provider}/{model}",
                "evaluators": [e.evaluator for e in state["evaluations"]],
                "evaluations_used": aggregation.evaluations_used,
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )

        logger.info(
            "Query complete in %.2fs: decision=%s, sources=%d",
            elapsed, aggregation.decision, len(result.sources),
        )
        return ProcessOutcome(
            success=True, query=query, result=result, elapsed_seconds=elapsed,
        )


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


def _all_sources(document_sources: list[str], web_result: WebSearchResult) -> list[str]:
    if web_result.is_live and web_result.has_results:
        return [*document_sources, WEB_SOURCE_LABEL]
    return list(document_sources)
