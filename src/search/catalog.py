"""
Catalog readers.

Search never writes to the catalog; it only needs the active item set
and lookups by id. Two backends:

1. InMemoryCatalog: seeded from a list or a JSON file (development/tests)
2. SupabaseCatalog: reads the products table, with a short TTL cache
"""

import json
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from core.errors import SearchFailure
from core.logging import get_logger
from search.models import SearchableItem

logger = get_logger(__name__)


class CatalogReader(Protocol):
    """What the search core needs from the catalog."""

    def list_items(self) -> List[SearchableItem]:
        """All active items."""
        ...

    def get_item(self, item_id: str) -> Optional[SearchableItem]:
        """One active item by id, or None."""
        ...


# =============================================================================
# In-Memory Backend
# =============================================================================

class InMemoryCatalog:
    """Catalog held in process memory. Inactive items are hidden from reads."""

    def __init__(self, items: Optional[Sequence[SearchableItem]] = None):
        self._items: Dict[str, SearchableItem] = {}
        self._lock = threading.Lock()
        for item in items or []:
            self._items[item.id] = item

    @classmethod
    def from_records(cls, records: Sequence[Dict[str, Any]]) -> "InMemoryCatalog":
        return cls([SearchableItem.from_record(r) for r in records])

    @classmethod
    def from_json_file(cls, path: Path) -> "InMemoryCatalog":
        """Load a JSON array of product records (flat or nested shape)."""
        with open(path, encoding="utf-8") as f:
            records = json.load(f)
        catalog = cls.from_records(records)
        logger.info("Loaded seed catalog", path=str(path), items=len(catalog._items))
        return catalog

    def upsert(self, item: SearchableItem) -> None:
        with self._lock:
            self._items[item.id] = item

    def list_items(self) -> List[SearchableItem]:
        with self._lock:
            return [item for item in self._items.values() if item.is_active]

    def get_item(self, item_id: str) -> Optional[SearchableItem]:
        item = self._items.get(item_id)
        return item if item is not None and item.is_active else None

    def __len__(self) -> int:
        return len(self._items)


# =============================================================================
# Supabase Backend
# =============================================================================

_CACHE_TTL_SECONDS = 30


class SupabaseCatalog:
    """
    Catalog backed by a Supabase table.

    The full active set is cached for a few seconds; ranking is done in
    process, so one table read serves every search in the window.
    """

    def __init__(self, client, table: str = "products", ttl_seconds: int = _CACHE_TTL_SECONDS):
        self._client = client
        self._table = table
        self._ttl = ttl_seconds
        self._cache: Optional[Tuple[float, List[SearchableItem]]] = None
        self._lock = threading.Lock()

    def _fetch(self) -> List[SearchableItem]:
        try:
            resp = (
                self._client.table(self._table)
                .select("*")
                .eq("is_active", True)
                .execute()
            )
        except Exception as e:
            raise SearchFailure("Search failed", detail=f"Catalog read failed: {e}") from e

        items = []
        for row in resp.data or []:
            try:
                items.append(SearchableItem.from_record(row))
            except ValueError as e:
                logger.warning("Skipping malformed catalog row", row_id=row.get("id"), error=str(e))
        return items

    def list_items(self) -> List[SearchableItem]:
        now = time.time()
        cached = self._cache
        if cached and now - cached[0] < self._ttl:
            return cached[1]

        items = self._fetch()
        with self._lock:
            self._cache = (now, items)
        return items

    def get_item(self, item_id: str) -> Optional[SearchableItem]:
        for item in self.list_items():
            if item.id == item_id:
                return item
        return None

    def invalidate(self) -> None:
        with self._lock:
            self._cache = None
