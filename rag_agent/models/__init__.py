# =============================================================================
# Models Package — Pydantic V2 Schemas
# =============================================================================
#   - requests.py: validated agent configuration (AgentConfig, JudgeSpec)
#   - responses.py: pipeline results (QueryResult, ProcessOutcome)
# =============================================================================
