"""Pluggable providers: splitters, embeddings, LLMs and vector storage."""
