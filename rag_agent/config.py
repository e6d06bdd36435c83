# =============================================================================
# Application Configuration — Pydantic Settings
# =============================================================================
#
# Pydantic V2 `BaseSettings` loads values in this priority order:
#   1. Environment variables (e.g., `LLM_MODEL=...`)
#   2. Values from the .env file
#   3. Default values defined below
#
# USAGE:
#   from rag_agent.config import settings
#   print(settings.llm_model)
#
# Per-agent, validated configuration lives in rag_agent.models.requests
# (AgentConfig). Settings only supplies its defaults.
# =============================================================================

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every setting has a default suitable for local development. API keys
    default to empty and must be provided via the environment.
    """

    # -------------------------------------------------------------------------
    # API Keys — External Services
    # -------------------------------------------------------------------------
    # ANTHROPIC_API_KEY: Claude (draft, judges, aggregator)
    # OPENAI_API_KEY:    embeddings, and OpenAI-compatible generation
    # TAVILY_API_KEY:    web search. Empty means search is unavailable,
    #                    which is a valid state rather than an error.
    # -------------------------------------------------------------------------
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    tavily_api_key: str = ""

    # -------------------------------------------------------------------------
    # LLM Configuration — Multi-Provider
    # -------------------------------------------------------------------------
    # Provider types:
    #   - "anthropic": Claude via native Anthropic SDK
    #   - "openai_compatible": any OpenAI-compatible API (DeepSeek, Qwen,
    #     GLM-5, Kimi, MiniMax, OpenAI itself)
    # -------------------------------------------------------------------------
    llm_provider: str = "anthropic"  # "anthropic" or "openai_compatible"
    llm_base_url: str | None = None  # Only needed for openai_compatible
    llm_api_key: str | None = None   # Overrides provider-specific key if set
    llm_model: str = "claude-sonnet-4-6"
    llm_temperature: float = 0.1
    llm_max_tokens: int = 4096

    # -------------------------------------------------------------------------
    # Judges & Aggregator
    # -------------------------------------------------------------------------
    # Model ids use the "provider_type/model" format. Judges may repeat the
    # same model; each entry is still an independent call.
    # Set JUDGE_MODELS as a JSON list in the environment, e.g.
    #   JUDGE_MODELS='["anthropic/claude-sonnet-4-6", "openai_compatible/gpt-4.1"]'
    # An empty aggregator_model means "use the primary llm_provider/llm_model".
    # -------------------------------------------------------------------------
    judge_models: list[str] = [
        "anthropic/claude-sonnet-4-6",
        "anthropic/claude-sonnet-4-6",
        "anthropic/claude-sonnet-4-6",
    ]
    aggregator_model: str = ""

    # -------------------------------------------------------------------------
    # Embedding Configuration
    # -------------------------------------------------------------------------
    embedding_model: str = "text-embedding-3-small"
    embedding_base_url: str | None = None
    embedding_dimensions: int | None = 1536
    embedding_batch_size: int = 100  # Texts per embeddings API call

    # -------------------------------------------------------------------------
    # Chunking Configuration
    # -------------------------------------------------------------------------
    # Word windows, not tokens. Consecutive chunks share `chunk_overlap`
    # words; chunk_overlap must stay below chunk_size.
    # -------------------------------------------------------------------------
    chunk_size: int = 500
    chunk_overlap: int = 100

    # -------------------------------------------------------------------------
    # Retrieval Configuration
    # -------------------------------------------------------------------------
    retrieval_top_k: int = 3

    # -------------------------------------------------------------------------
    # Web Search (Tavily)
    # -------------------------------------------------------------------------
    web_search_url: str = "https://api.tavily.com/search"
    web_search_max_results: int = 3
    web_search_timeout: float = 30.0

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Create and cache a Settings instance.

    In tests, build a fresh Settings(...) and pass it to
    AgentConfig.from_settings() instead of patching the environment.
    """
    return Settings()


# ---------------------------------------------------------------------------
# Module-level convenience instance
# ---------------------------------------------------------------------------
settings = Settings()
