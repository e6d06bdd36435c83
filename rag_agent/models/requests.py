# =============================================================================
# Agent Configuration Models — Pydantic V2 Schemas
# =============================================================================
#
# Validated configuration structs handed to RAGAgent at construction time.
# Loosely structured input (env vars, request bodies) is validated here, at
# the boundary, so the pipeline code never re-checks it.
#
# Model ids use the same self-describing format everywhere:
#   "provider_type/model"  or  "provider_type/model@base_url"
# =============================================================================

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from rag_agent.config import Settings
from rag_agent.services.llm import parse_model_id

ProviderType = Literal["anthropic", "openai_compatible"]


class JudgeSpec(BaseModel):
    """One judge: a display name plus the model that does the judging."""

    name: str = Field(..., min_length=1, examples=["Evaluator-1"])
    provider: ProviderType
    model: str = Field(..., min_length=1, examples=["claude-sonnet-4-6"])

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_model_id(cls, name: str, model_id: str) -> JudgeSpec:
        provider, model = parse_model_id(model_id)
        return cls(name=name, provider=provider, model=model)

    @property
    def model_id(self) -> str:
        return f"{self.provider}/{self.model}"


class AgentConfig(BaseModel):
    """
    Everything one RAGAgent needs to know about models and retrieval.

    Example:
        {
            "primary_provider": "anthropic",
            "primary_model": "claude-sonnet-4-6",
            "judges": [
                {"name": "Evaluator-1", "provider": "anthropic",
                 "model": "claude-sonnet-4-6"},
                {"name": "Evaluator-2", "provider": "openai_compatible",
                 "model": "deepseek-chat@https://api.deepseek.com/v1"}
            ],
            "top_k": 3
        }
    """

    primary_provider: ProviderType = "anthropic"
    primary_model: str = Field(default="claude-sonnet-4-6", min_length=1)

    judges: list[JudgeSpec] = Field(
        ...,
        min_length=1,
        description="Judges run concurrently, in this order, on every draft.",
    )

    # Empty aggregator fields fall back to the primary model
    aggregator_provider: ProviderType | None = None
    aggregator_model: str | None = None

    top_k: int = Field(default=3, ge=0, description="Chunks retrieved per query")
    chunk_size: int = Field(default=500, gt=0, description="Words per chunk")
    chunk_overlap: int = Field(default=100, ge=0, description="Shared words")
    web_max_results: int = Field(default=3, ge=1, le=20)

    @model_validator(mode="after")
    def _check_overlap(self) -> AgentConfig:
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        return self

    @property
    def resolved_aggregator(self) -> tuple[str, str]:
        """(provider, model) for the aggregation call."""
        return (
            self.aggregator_provider or self.primary_provider,
            self.aggregator_model or self.primary_model,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> AgentConfig:
        """Build a config from environment-backed Settings."""
        judges = [
            JudgeSpec.from_model_id(f"Evaluator-{i}", model_id)
            for i, model_id in enumerate(settings.judge_models, 1)
        ]

        aggregator_provider = aggregator_model = None
        if settings.aggregator_model:
            aggregator_provider, aggregator_model = parse_model_id(
                settings.aggregator_model
            )

        return cls(
            primary_provider=settings.llm_provider,
            primary_model=settings.llm_model,
            judges=judges,
            aggregator_provider=aggregator_provider,
            aggregator_model=aggregator_model,
            top_k=settings.retrieval_top_k,
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            web_max_results=settings.web_search_max_results,
        )
