# =============================================================================
# Pipeline Result Models — Pydantic V2 Schemas
# =============================================================================
#
# The shape of data coming OUT of RAGAgent.process(). The HTTP layer that
# wraps this library serialises these directly.
#
# process() never raises across this boundary. It returns a ProcessOutcome:
#   success=True  → `result` holds the fully assembled QueryResult
#   success=False → `error` / `error_type` describe the load-bearing failure
# =============================================================================

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from rag_agent.agents.evaluator import Evaluation
from rag_agent.services.web_search import WebSearchResult


class QueryResult(BaseModel):
    """Everything produced while answering one query."""

    original_query: str
    retrieved_context: str = Field(
        description="Formatted document context, or the no-context sentinel",
    )
    enhanced_query: str
    web_search: WebSearchResult
    draft_answer: str
    evaluations: list[Evaluation]
    final_answer: str
    decision: Literal["Accept", "Enhance", "Rewrite"]
    improvements: str = ""
    sources: list[str] = Field(
        default_factory=list,
        description="Document names in rank order, plus 'Web Search' when live",
    )
    elapsed_seconds: float = Field(ge=0.0)
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class ProcessOutcome(BaseModel):
    """Discriminated success/failure wrapper returned by process()."""

    success: bool
    query: str
    result: QueryResult | None = None
    error: str | None = None
    error_type: str | None = Field(
        default=None,
        description="Exception class name, e.g. 'AggregationError'",
    )
    elapsed_seconds: float = 0.0

    model_config = ConfigDict(frozen=True)
