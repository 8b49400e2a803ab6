"""
Query tokenization.

Search terms are the lowercase, whitespace-separated words of the raw
query. An empty result means "no free-text query": the caller falls back
to filter-only browsing.
"""

from typing import List, Optional


def tokenize(query: Optional[str]) -> List[str]:
    """
    Split a raw query into lowercase, non-empty terms.

    >>> tokenize("  Red  Silk DRESS ")
    ['red', 'silk', 'dress']
    >>> tokenize("   ")
    []
    """
    if not query:
        return []
    return query.lower().split()


def normalize_query(query: Optional[str]) -> str:
    """Trimmed query text, case preserved (key for trending/history)."""
    return (query or "").strip()
