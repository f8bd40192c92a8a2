"""Persistent vector storage backends (ChromaDB embedding cache)."""
