# =============================================================================
# Agents Package — Answer Pipeline
# =============================================================================
#   - orchestrator.py: LangGraph graph: retrieve → enhance → search → draft
#     → evaluate → aggregate, behind RAGAgent.process()
#   - query_enhancer.py: rewrites the query for web search (fail-open)
#   - drafter.py: documents-first draft answer
#   - evaluator.py: N judges run concurrently against the draft
#   - aggregator.py: merges evaluations into the final answer + decision
# =============================================================================
