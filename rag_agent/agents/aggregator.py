# =============================================================================
# Aggregator — Meta-Evaluation and Final Answer Synthesis
# =============================================================================
#
# Merges the surviving judge evaluations and the draft into one final
# answer plus an Accept / Enhance / Rewrite decision, via a single call to
# the aggregator model.
#
# - Failed evaluations are dropped before the prompt is built.
# - If every evaluation failed, the prompt says so and the decision is
#   forced to Accept (best effort).
# - The synthesis call is load-bearing: any failure raises
#   AggregationError. There is no local fallback.
# =============================================================================

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Literal

from rag_agent.agents.evaluator import Evaluation
from rag_agent.errors import AggregationError
from rag_agent.services.llm import TextGenerator

logger = logging.getLogger(__name__)

Decision = Literal["Accept", "Enhance", "Rewrite"]
DEFAULT_DECISION: Decision = "Accept"

NO_EVALUATIONS_NOTE = (
    "No expert evaluations were available (all evaluators failed). "
    "Review the initial response yourself and keep it unless it is "
    "clearly wrong."
)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AggregationResult:
    decision: Decision
    final_answer: str
    improvements: str
    reasoning: str
    raw_text: str
    evaluations_used: int


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

AGGREGATION_PROMPT = """You are a meta-evaluator synthesizing expert \
evaluations to produce the best possible final response.

**Original User Query:**
"{query}"

**Initial Response:**
\"\"\"
{draft}
\"\"\"

**Sources Used:**
{sources}

**Expert Evaluations:**
{evaluations}

**Your Task:**
1. Analyze all expert evaluations
2. Identify common strengths and weaknesses
3. Decide: Accept/Enhance/Rewrite
4. Generate the FINAL RESPONSE incorporating all feedback

**Output Format:**
- **Decision**: [Accept/Enhance/Rewrite]
- **Reasoning**: Brief explanation
- **Final Response**: Best possible answer (original or improved)
- **Improvements Made**: List any improvements
- **Sources**: Cite sources used"""

_SECTION_RE = re.compile(
    r"^[ \t>*#-]*\**\s*(decision|reasoning|final response|improvements made|sources)"
    r"\s*\**\s*:\s*\**[ \t]*",
    re.IGNORECASE | re.MULTILINE,
)
_DECISION_WORD_RE = re.compile(r"\b(accept|enhance|rewrite)\b", re.IGNORECASE)


def build_aggregation_prompt(
    query: str,
    draft: str,
    evaluations: list[Evaluation],
    sources: list[str],
) -> str:
    """Build the synthesis prompt from successful evaluations only."""
    usable = [e for e in evaluations if not e.failed]
    if usable:
        summary = "\n\n".join(
            f"### {e.evaluator} Evaluation:\n{e.text}" for e in usable
        )
    else:
        summary = NO_EVALUATIONS_NOTE

    return AGGREGATION_PROMPT.format(
        query=query,
        draft=draft,
        sources=", ".join(sources) if sources else "None",
        evaluations=summary,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def aggregate(
    query: str,
    draft: str,
    evaluations: list[Evaluation],
    sources: list[str],
    generator: TextGenerator,
    provider: str,
    model: str,
) -> AggregationResult:
    """
    Synthesize evaluations into the final answer.

    Raises:
        AggregationError: If the aggregator model call fails.
    """
    usable = sum(1 for e in evaluations if not e.failed)
    prompt = build_aggregation_prompt(query, draft, evaluations, sources)

    logger.info(
        "Aggregating %d/%d evaluations with %s/%s",
        usable, len(evaluations), provider, model,
    )

    try:
        raw = await generator.generate(prompt, provider, model)
    except Exception as e:
        logger.error("Aggregation failed: %s", e)
        raise AggregationError(f"Aggregation failed ({provider}/{model}): {e}") from e

    sections = parse_sections(raw)

    decision = parse_decision(raw, sections) if usable else DEFAULT_DECISION
    final_answer = (
        sections.get("final response") or raw.strip() or draft
    )

    logger.info("Aggregation complete: decision=%s", decision)

    return AggregationResult(
        decision=decision,
        final_answer=final_answer,
        improvements=sections.get("improvements made", ""),
        reasoning=sections.get("reasoning", ""),
        raw_text=raw,
        evaluations_used=usable,
    )


# ---------------------------------------------------------------------------
# Parsing Helpers
# ---------------------------------------------------------------------------


def parse_sections(text: str) -> dict[str, str]:
    """
    Split aggregator output into its labelled sections.

    Keys are lower-case headings ("decision", "final response", ...).
    A heading that appears twice keeps its first occurrence.
    """
    matches = list(_SECTION_RE.finditer(text))
    sections: dict[str, str] = {}
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        name = " ".join(match.group(1).lower().split())
        sections.setdefault(name, text[match.end():end].strip())
    return sections


def parse_decision(text: str, sections: dict[str, str] | None = None) -> Decision:
    """Read the decision label; anything unrecognisable means Accept."""
    if sections is None:
        sections = parse_sections(text)

    match = _DECISION_WORD_RE.search(sections.get("decision", ""))
    if match is None:
        return DEFAULT_DECISION
    return match.group(1).capitalize()  # type: ignore[return-value]
