# =============================================================================
# Unit Tests — Web Search Adapter
# =============================================================================
#
# The Tavily endpoint is replaced with httpx.MockTransport, so these tests
# exercise the real request/response path without network access.
# =============================================================================

from __future__ import annotations

import asyncio
import json

import httpx
import pytest
from fakes import ScriptedGenerator

from rag_agent.errors import GenerationError
from rag_agent.services.web_search import (
    NOT_LIVE_TAG,
    WEB_SEARCH_UNAVAILABLE,
    WebResult,
    WebSearch,
    WebSearchResult,
    format_results,
)

TAVILY_REPLY = {
    "answer": "Water boils at 100 °C at sea level.",
    "results": [
        {
            "title": "Boiling point",
            "url": "https://example.com/boiling",
            "content": "The boiling point of water is 100 °C.",
        },
        {
            "title": "Altitude",
            "url": "https://example.com/altitude",
            "content": "Water boils at lower temperatures at altitude.",
        },
    ],
}


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _search(handler, generator=None) -> WebSearch:
    return WebSearch(
        api_key="tvly-test",
        generator=generator,
        fallback_provider="anthropic",
        fallback_model="fallback-model",
        url="https://search.test/search",
        transport=httpx.MockTransport(handler),
    )


class TestUnavailable:

    def test_no_key_returns_unavailable_without_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        search = WebSearch(api_key="", transport=httpx.MockTransport(handler))
        result = _run(search.search("anything"))

        assert not search.is_available()
        assert result.summary == WEB_SEARCH_UNAVAILABLE
        assert result.results == []
        assert result.origin == "unavailable"
        assert not result.is_live


class TestLiveSearch:

    def test_success_normalises_results(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json=TAVILY_REPLY)

        result = _run(_search(handler).search("boiling point of water", max_results=2))

        assert result.is_live
        assert result.summary == TAVILY_REPLY["answer"]
        assert result.results[0] == WebResult(
            title="Boiling point",
            url="https://example.com/boiling",
            content="The boiling point of water is 100 °C.",
        )
        assert len(result.results) == 2

        payload = seen["payload"]
        assert payload["query"] == "boiling point of water"
        assert payload["max_results"] == 2
        assert payload["include_answer"] is True
        assert payload["api_key"] == "tvly-test"

    def test_missing_answer_gets_placeholder_summary(self):
        def handler(request):
            return httpx.Response(200, json={"results": []})

        result = _run(_search(handler).search("q"))

        assert result.is_live
        assert result.summary == "No AI summary available"
        assert not result.has_results


class TestFallback:

    def test_server_error_falls_back_to_tagged_model_knowledge(self):
        generator = ScriptedGenerator()

        def handler(request):
            return httpx.Response(500, json={"detail": "boom"})

        result = _run(_search(handler, generator).search("why is the sky blue"))

        assert result.origin == "model_knowledge"
        assert not result.is_live
        assert result.results == []
        assert result.summary.startswith(NOT_LIVE_TAG)
        assert "Rayleigh scattering" in result.summary
        assert result.has_background
        assert result.error is None

        [(kind, prompt, provider, model)] = generator.calls
        assert kind == "fallback"
        assert "why is the sky blue" in prompt
        assert (provider, model) == ("anthropic", "fallback-model")

    def test_transport_error_falls_back(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        result = _run(_search(handler, ScriptedGenerator()).search("q"))

        assert result.origin == "model_knowledge"

    @pytest.mark.parametrize("body", [
        b"not json",
        b"[1, 2, 3]",
        b'{"results": [1]}',
        b'{"results": 5}',
        b'{"results": true}',
        b'{"results": "text"}',
    ])
    def test_malformed_body_falls_back(self, body):
        def handler(request):
            return httpx.Response(200, content=body)

        result = _run(_search(handler).search("q"))

        assert result.origin == "model_knowledge"
        assert result.summary.startswith(NOT_LIVE_TAG)

    def test_fallback_failure_still_returns_tagged_result(self):
        generator = ScriptedGenerator(fail={"fallback": GenerationError("down")})

        def handler(request):
            return httpx.Response(503)

        result = _run(_search(handler, generator).search("q"))

        assert result.origin == "model_knowledge"
        assert result.summary.startswith(NOT_LIVE_TAG)
        assert "also failed" in result.summary
        assert result.error == "down"
        assert not result.has_background

    def test_no_generator_records_error_and_gives_no_background(self):
        def handler(request):
            return httpx.Response(502)

        result = _run(_search(handler).search("q"))

        assert result.origin == "model_knowledge"
        assert result.error
        assert not result.has_background

    def test_blank_fallback_answer_gives_no_background(self):
        generator = ScriptedGenerator(replies={"fallback": "   "})

        def handler(request):
            return httpx.Response(503)

        result = _run(_search(handler, generator).search("q"))

        assert result.summary.startswith(NOT_LIVE_TAG)
        assert result.error
        assert not result.has_background


class TestFormatResults:

    def test_summary_and_numbered_results(self):
        result = WebSearchResult(
            summary="Short answer.",
            results=[WebResult("Title A", "https://a.test", "Content A")],
        )
        text = format_results(result)

        assert text.startswith("AI Summary: Short answer.\n\n")
        assert "Web Results:\n" in text
        assert "\n1. Title A\n   URL: https://a.test\n   Content A\n" in text

    def test_no_results_section_when_empty(self):
        text = format_results(WebSearchResult(summary="s", origin="unavailable"))
        assert text == "AI Summary: s\n\n"
