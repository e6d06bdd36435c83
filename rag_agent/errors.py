# =============================================================================
# Error Taxonomy
# =============================================================================
#
# Load-bearing failures (embedding, draft generation, aggregation, querying
# an index that is not ready) raise one of these and propagate up to
# RAGAgent.process(), which converts them into a failed ProcessOutcome.
#
# Supplementary steps (query enhancement, web search, a single judge) never
# raise these to their callers. They log and substitute a fallback value.
# =============================================================================


class RAGAgentError(Exception):
    """Base class for every error raised by the agent core."""


class ConfigurationError(RAGAgentError, ValueError):
    """Invalid configuration, e.g. chunk overlap >= chunk size."""


class EmbeddingProviderError(RAGAgentError):
    """The embedding upstream failed (network, quota, malformed response)."""


class NotReadyError(RAGAgentError):
    """Retrieval was attempted before indexing completed."""


class GenerationError(RAGAgentError):
    """The generation capability failed for a given provider/model."""

    def __init__(self, message: str, provider: str = "", model: str = "") -> None:
        super().__init__(message)
        self.provider = provider
        self.model = model


class AggregationError(RAGAgentError):
    """The final synthesis call failed. Fatal to the query."""
