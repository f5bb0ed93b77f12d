# src/embeddings/__init__.py — v1
"""Embedding providers, vector packing and the reuse resolver."""
