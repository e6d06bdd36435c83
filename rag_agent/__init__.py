# =============================================================================
# RAG Multi-Judge Agent
# =============================================================================
# Answers questions over a small, per-session document collection:
# retrieve relevant chunks by cosine similarity, optionally add web search
# results, draft an answer, have several independent judges review the
# draft concurrently, and merge their feedback into one final answer.
#
# Package structure:
#   rag_agent/
#   ├── agents/       → LangGraph pipeline, query enhancer, drafter,
#   │                    concurrent judges, aggregator
#   ├── models/       → Pydantic V2 config and result schemas
#   ├── services/     → chunking, embeddings, in-memory retriever, LLM
#   │                    gateway, web search, documents, session store
#   ├── config.py     → environment-backed Settings
#   └── errors.py     → error taxonomy
# =============================================================================
