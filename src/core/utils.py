"""
Core Utility Functions.

Small helpers shared by the search modules and routes.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class KeyedLocks:
    """
    One lock per key, created on first use.

    Serializes read-modify-write cycles on the same key (a query, a user)
    while letting different keys proceed in parallel.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def get(self, key: str) -> threading.Lock:
        lock = self._locks.get(key)
        if lock is None:
            with self._registry_lock:
                lock = self._locks.get(key)
                if lock is None:
                    lock = threading.Lock()
                    self._locks[key] = lock
        return lock


def normalize_string_set(items: Optional[Iterable[str]]) -> Set[str]:
    """
    Normalize strings to a set of lowercase, stripped values.

    None and empty strings are dropped.

    >>> sorted(normalize_string_set(["Red ", "red", "", None]))
    ['red']
    """
    if not items:
        return set()
    return {s.lower().strip() for s in items if s and s.strip()}


def split_csv(value: Optional[str]) -> Optional[List[str]]:
    """
    Split a comma-separated query parameter.

    Returns None when the parameter is absent or blank, so the
    corresponding filter stays unset.

    >>> split_csv("red, blue,,")
    ['red', 'blue']
    """
    if value is None:
        return None
    parts = [p.strip() for p in value.split(",") if p.strip()]
    return parts or None


def safe_get(obj: Any, *keys: str, default: Any = None) -> Any:
    """
    Safely get nested dictionary values.

    >>> safe_get({'rating': {'average': 4.5}}, 'rating', 'average')
    4.5
    >>> safe_get({'rating': {}}, 'rating', 'count', default=0)
    0
    """
    current = obj
    for key in keys:
        if isinstance(current, dict):
            current = current.get(key)
        elif hasattr(current, key):
            current = getattr(current, key)
        else:
            return default
        if current is None:
            return default
    return current


def percentage(part: float, whole: float, digits: int = 2) -> float:
    """Percentage of ``part`` over ``whole``, 0 when ``whole`` is 0."""
    if not whole:
        return 0.0
    return round(part / whole * 100, digits)
