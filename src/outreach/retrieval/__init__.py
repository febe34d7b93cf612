"""Retrieval: scoped similarity search, multi-category retrieval and context assembly."""

from .context import ContextBundle, assemble
from .retriever import DEFAULT_POLICIES, CategoryPolicy, Retriever, build_base_query, deduplicate
from .search import search

__all__ = [
    "CategoryPolicy",
    "ContextBundle",
    "DEFAULT_POLICIES",
    "Retriever",
    "assemble",
    "build_base_query",
    "deduplicate",
    "search",
]
