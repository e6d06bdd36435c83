# =============================================================================
# Integration Tests — RAGAgent Pipeline
# =============================================================================
#
# Runs the full LangGraph pipeline (retrieve → enhance → search → draft →
# evaluate → aggregate) through RAGAgent.process() with fake embeddings,
# a scripted generator and a mocked Tavily endpoint.
# =============================================================================

from __future__ import annotations

import asyncio

import httpx
import pytest
from fakes import HashingEmbeddingProvider, ScriptedGenerator

from rag_agent.agents.orchestrator import WEB_SOURCE_LABEL, RAGAgent
from rag_agent.errors import AggregationError, GenerationError
from rag_agent.models.requests import AgentConfig
from rag_agent.services.embedder import EmbeddingCache
from rag_agent.services.retriever import NO_CONTEXT
from rag_agent.services.web_search import NOT_LIVE_TAG, WebSearch

DOCUMENTS = {
    "facts.txt": "The sky is blue. Water boils at 100 degrees Celsius.",
    "fruit.md": "Bananas are yellow and grow in bunches.",
}

TAVILY_REPLY = {
    "answer": "Rayleigh scattering makes the sky blue.",
    "results": [
        {"title": "Sky", "url": "https://example.com/sky", "content": "Blue light scatters."},
    ],
}


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _offline_search(generator) -> WebSearch:
    return WebSearch(api_key="", generator=generator)


def _mock_search(generator, status: int = 200) -> WebSearch:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=TAVILY_REPLY)

    return WebSearch(
        api_key="tvly-test",
        generator=generator,
        fallback_provider="anthropic",
        fallback_model="primary",
        url="https://search.test/search",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def make_agent(agent_config, embeddings):
    def factory(generator=None, web_search=None, config=None, cache=None):
        generator = generator or ScriptedGenerator()
        return RAGAgent(
            config=config or agent_config,
            generator=generator,
            embeddings=cache if cache is not None else embeddings,
            web_search=web_search or _offline_search(generator),
        )

    return factory


# ---------------------------------------------------------------------------
# Test: Successful runs
# ---------------------------------------------------------------------------


class TestProcessSuccess:

    def test_documents_without_web(self, make_agent):
        generator = ScriptedGenerator()
        agent = make_agent(generator)
        _run(agent.initialize(DOCUMENTS))

        outcome = _run(agent.process("What color is the sky?"))

        assert outcome.success
        assert outcome.error is None
        result = outcome.result
        assert result.original_query == "What color is the sky?"
        assert result.retrieved_context.startswith("Relevant document context:")
        assert "From facts.txt" in result.retrieved_context
        assert result.enhanced_query == "sky colour physics"
        assert result.web_search.origin == "unavailable"
        assert result.draft_answer == "Draft: the sky is blue."
        assert len(result.evaluations) == 3
        assert result.final_answer == "The sky is blue [1]."
        assert result.decision == "Enhance"
        assert result.improvements == "Added a citation."
        assert WEB_SOURCE_LABEL not in result.sources
        assert result.sources[0] == "facts.txt"
        assert result.elapsed_seconds >= 0

    def test_steps_run_in_pipeline_order(self, make_agent):
        generator = ScriptedGenerator()
        agent = make_agent(generator)
        _run(agent.initialize(DOCUMENTS))

        _run(agent.process("What color is the sky?"))

        kinds = [call[0] for call in generator.calls]
        assert kinds == ["enhance", "draft", "judge", "judge", "judge", "aggregate"]

    def test_metadata_names_models_and_evaluators(self, make_agent):
        agent = make_agent()
        _run(agent.initialize(DOCUMENTS))

        metadata = _run(agent.process("sky?")).result.metadata

        assert metadata["primary_model"] == "anthropic/primary"
        assert metadata["aggregator_model"] == "anthropic/aggregator"
        assert metadata["evaluators"] == ["Evaluator-1", "Evaluator-2", "Evaluator-3"]
        assert metadata["evaluations_used"] == 3
        assert "timestamp" in metadata

    def test_live_web_results_become_a_source(self, make_agent):
        generator = ScriptedGenerator()
        agent = make_agent(generator, web_search=_mock_search(generator))
        _run(agent.initialize(DOCUMENTS))

        result = _run(agent.process("What color is the sky?")).result

        assert result.web_search.is_live
        assert result.sources[-1] == WEB_SOURCE_LABEL
        draft_prompt = generator.calls_of("draft")[0][1]
        assert "SUPPLEMENTARY SOURCE" in draft_prompt
        assert "https://example.com/sky" in draft_prompt

    def test_fallback_web_answer_is_not_a_source(self, make_agent):
        generator = ScriptedGenerator()
        agent = make_agent(generator, web_search=_mock_search(generator, status=502))
        _run(agent.initialize(DOCUMENTS))

        result = _run(agent.process("What color is the sky?")).result

        assert result.web_search.origin == "model_knowledge"
        assert result.web_search.summary.startswith(NOT_LIVE_TAG)
        assert WEB_SOURCE_LABEL not in result.sources

        [(_, draft_prompt, _, _)] = generator.calls_of("draft")
        assert "BACKGROUND - Model Knowledge" in draft_prompt
        assert "From memory: Rayleigh scattering." in draft_prompt
        assert "SUPPLEMENTARY SOURCE" not in draft_prompt

    def test_aggregator_defaults_to_primary_model(self, make_agent, judges):
        generator = ScriptedGenerator()
        config = AgentConfig(primary_model="primary", judges=judges)
        agent = make_agent(generator, config=config)
        _run(agent.initialize(DOCUMENTS))

        _run(agent.process("sky?"))

        [(_, _, provider, model)] = generator.calls_of("aggregate")
        assert (provider, model) == ("anthropic", "primary")


# ---------------------------------------------------------------------------
# Test: Empty index (no documents)
# ---------------------------------------------------------------------------


class TestNoDocuments:

    def test_empty_index_drafts_with_sentinel(self, make_agent):
        generator = ScriptedGenerator()
        agent = make_agent(generator)
        _run(agent.initialize({}))

        outcome = _run(agent.process("What color is the sky?"))

        assert outcome.success
        result = outcome.result
        assert result.retrieved_context == NO_CONTEXT
        assert result.sources == []
        # No context means the enhancer does not call the model
        assert result.enhanced_query == "What color is the sky?"
        assert generator.calls_of("enhance") == []
        [(_, draft_prompt, _, _)] = generator.calls_of("draft")
        assert NO_CONTEXT in draft_prompt

    def test_top_k_zero_behaves_like_no_context(self, make_agent, judges):
        generator = ScriptedGenerator()
        config = AgentConfig(primary_model="primary", judges=judges, top_k=0)
        agent = make_agent(generator, config=config)
        _run(agent.initialize(DOCUMENTS))

        result = _run(agent.process("sky?")).result

        assert result.retrieved_context == NO_CONTEXT


# ---------------------------------------------------------------------------
# Test: Partial and fatal failures
# ---------------------------------------------------------------------------


class TestProcessFailures:

    def test_not_initialised_returns_failed_outcome(self, make_agent):
        outcome = _run(make_agent().process("sky?"))

        assert not outcome.success
        assert outcome.result is None
        assert outcome.error_type == "NotReadyError"

    def test_draft_failure_is_fatal(self, make_agent):
        generator = ScriptedGenerator(fail={"draft": GenerationError("primary down")})
        agent = make_agent(generator)
        _run(agent.initialize(DOCUMENTS))

        outcome = _run(agent.process("sky?"))

        assert not outcome.success
        assert outcome.error_type == "GenerationError"
        assert "primary down" in outcome.error
        assert generator.calls_of("judge") == []

    def test_aggregation_failure_is_fatal(self, make_agent):
        generator = ScriptedGenerator(fail={"aggregate": GenerationError("agg down")})
        agent = make_agent(generator)
        _run(agent.initialize(DOCUMENTS))

        outcome = _run(agent.process("sky?"))

        assert not outcome.success
        assert outcome.error_type == AggregationError.__name__

    def test_query_embedding_failure_is_fatal(self, make_agent):
        provider = HashingEmbeddingProvider(fail_on=lambda t: t == "poison query")
        agent = make_agent(cache=EmbeddingCache(provider))
        _run(agent.initialize(DOCUMENTS))

        outcome = _run(agent.process("poison query"))

        assert not outcome.success
        assert outcome.error_type == "EmbeddingProviderError"

    def test_single_judge_failure_is_absorbed(self, make_agent):
        generator = ScriptedGenerator(fail={"judge-c": GenerationError("judge down")})
        agent = make_agent(generator)
        _run(agent.initialize(DOCUMENTS))

        outcome = _run(agent.process("sky?"))

        assert outcome.success
        evaluations = outcome.result.evaluations
        assert [e.failed for e in evaluations] == [False, False, True]
        assert outcome.result.metadata["evaluations_used"] == 2

    def test_all_judges_failing_forces_accept(self, make_agent):
        error = GenerationError("down")
        generator = ScriptedGenerator(fail={"judge": error})
        agent = make_agent(generator)
        _run(agent.initialize(DOCUMENTS))

        outcome = _run(agent.process("sky?"))

        assert outcome.success
        assert all(e.failed for e in outcome.result.evaluations)
        assert outcome.result.decision == "Accept"

    def test_enhancer_failure_falls_back_to_original_query(self, make_agent):
        generator = ScriptedGenerator(fail={"enhance": RuntimeError("flaky")})
        agent = make_agent(generator)
        _run(agent.initialize(DOCUMENTS))

        result = _run(agent.process("sky?")).result

        assert result.enhanced_query == "sky?"


# ---------------------------------------------------------------------------
# Test: Individual steps
# ---------------------------------------------------------------------------


class TestPipelineSteps:

    def test_evaluate_with_more_judges_than_configured(self, make_agent):
        generator = ScriptedGenerator()
        agent = make_agent(generator)

        evaluations = _run(agent.evaluate("q", "draft", NO_CONTEXT, None, judge_count=5))

        assert len(evaluations) == 5
        assert [e.model for e in evaluations][3:] == ["judge-a", "judge-b"]

    def test_enhanced_search_passes_rewrite_to_search(self, make_agent):
        generator = ScriptedGenerator()
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = request.content
            return httpx.Response(200, json=TAVILY_REPLY)

        search = WebSearch(
            api_key="k", generator=generator, transport=httpx.MockTransport(handler),
        )
        agent = make_agent(generator, web_search=search)
        _run(agent.initialize(DOCUMENTS))
        context = _run(agent.retrieve_context("sky")).context

        result = _run(agent.enhanced_search("sky", context))

        assert result.is_live
        assert b"sky colour physics" in seen["body"]

    def test_clear_returns_agent_to_not_ready(self, make_agent):
        agent = make_agent()
        _run(agent.initialize(DOCUMENTS))
        agent.clear()

        assert _run(agent.process("sky?")).error_type == "NotReadyError"
