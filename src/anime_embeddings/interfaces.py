"""
Collaborator Interfaces

Narrow, structural interfaces for everything the engine consumes but does not
own. SQL-backed implementations live in ``anime_embeddings.db``; tests supply
in-memory fakes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Sequence, Tuple

from .embeddings.models import ItemEmbedding


# ---------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------

class CatalogReader(Protocol):
    async def get_item_text(self, item_id: str) -> Optional[str]:
        """Description of the item, ``""`` if it has none, ``None`` if it does not exist."""
        ...

    async def get_item_tags(self, item_id: str) -> List[str]:
        ...

    async def get_item_updated_at(self, item_id: str) -> Optional[datetime]:
        ...

    def iter_items_with_text(self) -> AsyncIterator[Tuple[str, str]]:
        """Yield ``(item_id, text)`` for every item whose text is non-empty."""
        ...

    async def count_items(self) -> int:
        ...

    async def list_item_ids(self, offset: int, limit: int) -> List[str]:
        """Page through all item ids in a stable order."""
        ...


class TagDirectory(Protocol):
    async def list_known_tags(self) -> List[str]:
        """All tag ids in the stable order that fixes categorical vector positions."""
        ...


# ---------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------

class EmbeddingRepository(Protocol):
    """
    Durable storage for vector triples.

    Rows are returned as plain mappings so that corrupt data can be detected
    by the caller instead of failing inside the adapter.
    """

    async def read_embedding(self, item_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def write_embedding(self, embedding: ItemEmbedding) -> None:
        """Atomically insert or replace the whole triple."""
        ...

    async def delete_embedding(self, item_id: str) -> bool:
        ...

    async def list_candidates(
        self,
        exclude_ids: Sequence[str],
        limit: int,
        term_epoch: str,
        tag_epoch: Optional[str] = None,
        require_description: bool = False,
    ) -> List[Dict[str, Any]]:
        ...

    async def count_embeddings(self) -> int:
        ...

    async def sample_vector_size(self) -> int:
        ...


# ---------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------

class Cache(Protocol):
    async def get(self, key: str) -> Any | None:
        ...

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        ...

    async def delete(self, key: str) -> bool:
        ...
