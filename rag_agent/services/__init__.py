# =============================================================================
# Services Package — Building Blocks
# =============================================================================
#   - chunker.py: overlapping word-window chunking
#   - documents.py: plain-text document loading, mapping → Documents
#   - embedder.py: embedding provider, memoizing cache, cosine similarity
#   - retriever.py: in-memory chunk index, ranking, context formatting
#   - llm.py: multi-provider generation (Anthropic, OpenAI-compatible)
#   - web_search.py: Tavily search with tagged model-knowledge fallback
#   - session_store.py: session id → agent registry
# =============================================================================
