# =============================================================================
# Evaluation Orchestrator — Concurrent Independent Judges
# =============================================================================
#
# Runs N "judge" calls against one draft answer and collects their textual
# evaluations. Every judge gets the identical rubric prompt; judges differ
# only in which provider/model they target.
#
# CONCURRENCY: all judge coroutines are created first and awaited together
# with asyncio.gather(). Each leg catches its own failure, so gather()
# always waits for every judge to settle and one failure never cancels a
# sibling. No retries.
#
# ORDER: gather() returns results in the order the coroutines were passed,
# i.e. judge configuration order, not completion order.
# =============================================================================

from __future__ import annotations

import asyncio
import itertools
import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime

from rag_agent.models.requests import JudgeSpec
from rag_agent.services.llm import TextGenerator
from rag_agent.services.retriever import has_context
from rag_agent.services.web_search import WebSearchResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Evaluation:
    """One judge's verdict on a draft answer."""

    evaluator: str
    model: str
    provider: str
    text: str
    timestamp: str  # ISO-8601, UTC
    failed: bool = False
    # Best-effort parse of the rubric; missing keys were not found in text
    scores: dict[str, float] = field(default_factory=dict)
    recommendation: str | None = None


# ---------------------------------------------------------------------------
# Rubric Prompt
# ---------------------------------------------------------------------------

RUBRIC_PROMPT = """You are an expert evaluator. Analyze the following \
response to a user query. The response was generated using document context \
and web search results where available.

**User Query:** "{query}"

**Response to Evaluate:**
\"\"\"
{draft}
\"\"\"

**Available Context:**
- Document Context: {has_documents}
- Web Search Results: {has_web}

Evaluate the response on:
1. **Accuracy Score** (0-10): Factual correctness
2. **Relevance Score** (0-10): Alignment with query
3. **Completeness Score** (0-10): Comprehensiveness
4. **Source Integration** (0-10): How well it uses documents and web results
5. **Clarity Score** (0-10): Clear communication
6. **Overall Score** (0-10): Holistic assessment
7. **Key Strengths**: Main strengths
8. **Areas for Improvement**: What could be better
9. **Recommendation**: Accept/Enhance/Rewrite

Provide a structured evaluation using exactly these headings."""

_SCORE_LABELS: dict[str, str] = {
    "accuracy": r"accuracy(?:\s+score)?",
    "relevance": r"relevance(?:\s+score)?",
    "completeness": r"completeness(?:\s+score)?",
    "source_integration": r"source\s+integration(?:\s+score)?",
    "clarity": r"clarity(?:\s+score)?",
    "overall": r"overall(?:\s+score)?",
}
_SCORE_TAIL = r"[\s*]*(?:\(0\s*-\s*10\))?[\s*:\-–]*(\d+(?:\.\d+)?)"
_RECOMMENDATION_RE = re.compile(
    r"recommendation[\s*:\-–]*\**\s*(accept|enhance|rewrite|reject)",
    re.IGNORECASE,
)


def build_rubric_prompt(
    query: str,
    draft: str,
    context: str,
    web_result: WebSearchResult | None,
) -> str:
    return RUBRIC_PROMPT.format(
        query=query,
        draft=draft,
        has_documents="Yes" if has_context(context) else "No",
        has_web="Yes" if web_result is not None and web_result.has_results else "No",
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def select_judges(judges: list[JudgeSpec], judge_count: int | None) -> list[JudgeSpec]:
    """
    Take the first judge_count judges, cycling through the configured list
    when more are requested than configured. None means all of them.
    """
    if judge_count is None:
        return list(judges)
    if judge_count <= 0 or not judges:
        return []

    selected = list(itertools.islice(itertools.cycle(judges), judge_count))
    if judge_count > len(judges):
        # Keep display names unique when the list wraps around
        selected = [
            judge if i < len(judges)
            else judge.model_copy(update={"name": f"Evaluator-{i + 1}"})
            for i, judge in enumerate(selected)
        ]
    return selected


async def evaluate_response(
    query: str,
    draft: str,
    context: str,
    web_result: WebSearchResult | None,
    judges: list[JudgeSpec],
    generator: TextGenerator,
) -> list[Evaluation]:
    """
    Run every judge concurrently and wait for all of them to settle.

    Returns exactly one Evaluation per judge, in judge order. Failed
    judges have failed=True and the error description as their text.
    Never raises for a judge failure.
    """
    prompt = build_rubric_prompt(query, draft, context, web_result)

    logger.info("Evaluating draft with %d judges", len(judges))

    async def run_one(judge: JudgeSpec) -> Evaluation:
        logger.debug("%s (%s) is evaluating", judge.name, judge.model_id)
        try:
            text = await generator.generate(prompt, judge.provider, judge.model)
        except Exception as e:
            logger.warning("%s (%s) failed: %s", judge.name, judge.model_id, e)
            return Evaluation(
                evaluator=judge.name,
                model=judge.model,
                provider=judge.provider,
                text=f"Error: {e}",
                timestamp=_now_iso(),
                failed=True,
            )

        logger.debug("%s completed evaluation", judge.name)
        return Evaluation(
            evaluator=judge.name,
            model=judge.model,
            provider=judge.provider,
            text=text,
            timestamp=_now_iso(),
            scores=parse_scores(text),
            recommendation=parse_recommendation(text),
        )

    evaluations: list[Evaluation] = await asyncio.gather(
        *(run_one(judge) for judge in judges)
    )

    failed = sum(1 for e in evaluations if e.failed)
    logger.info(
        "All evaluations settled: %d succeeded, %d failed",
        len(evaluations) - failed, failed,
    )
    return evaluations


# ---------------------------------------------------------------------------
# Parsing Helpers
# ---------------------------------------------------------------------------


def parse_scores(text: str) -> dict[str, float]:
    """
    Pull rubric scores (0-10) out of free-form judge text.

    Matches lines such as "**Accuracy Score** (0-10): 8" or
    "Source Integration: 7.5/10". Out-of-range numbers are ignored.
    """
    scores: dict[str, float] = {}
    for key, label in _SCORE_LABELS.items():
        match = re.search(label + _SCORE_TAIL, text, re.IGNORECASE)
        if match:
            value = float(match.group(1))
            if 0.0 <= value <= 10.0:
                scores[key] = value
    return scores


def parse_recommendation(text: str) -> str | None:
    match = _RECOMMENDATION_RE.search(text)
    return match.group(1).capitalize() if match else None


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()
