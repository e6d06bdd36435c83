# =============================================================================
# Shared Test Fixtures
# =============================================================================

from __future__ import annotations

import pytest
from fakes import HashingEmbeddingProvider, ScriptedGenerator

from rag_agent.models.requests import AgentConfig, JudgeSpec
from rag_agent.services.embedder import EmbeddingCache


@pytest.fixture
def embedding_provider() -> HashingEmbeddingProvider:
    return HashingEmbeddingProvider()


@pytest.fixture
def embeddings(embedding_provider: HashingEmbeddingProvider) -> EmbeddingCache:
    return EmbeddingCache(embedding_provider)


@pytest.fixture
def generator() -> ScriptedGenerator:
    return ScriptedGenerator()


@pytest.fixture
def judges() -> list[JudgeSpec]:
    return [
        JudgeSpec(name="Evaluator-1", provider="anthropic", model="judge-a"),
        JudgeSpec(name="Evaluator-2", provider="openai_compatible", model="judge-b"),
        JudgeSpec(name="Evaluator-3", provider="anthropic", model="judge-c"),
    ]


@pytest.fixture
def agent_config(judges: list[JudgeSpec]) -> AgentConfig:
    return AgentConfig(
        primary_provider="anthropic",
        primary_model="primary",
        judges=judges,
        aggregator_provider="anthropic",
        aggregator_model="aggregator",
        top_k=3,
    )
