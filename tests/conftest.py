"""
In-memory collaborators for engine tests.

These fakes implement the catalog, tag directory and embedding repository
interfaces so the engine can be exercised without PostgreSQL or Redis.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import pytest

from anime_embeddings.config import Settings
from anime_embeddings.core.cache import InMemoryCache
from anime_embeddings.core.errors import CatalogReadError
from anime_embeddings.embeddings.models import ItemEmbedding
from anime_embeddings.service import SemanticEngine


EPOCH_START = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeCatalog:
    def __init__(self) -> None:
        self.items: Dict[str, Dict[str, Any]] = {}
        self.fail_reads = False
        self.full_scans = 0

    def add(
        self,
        item_id: str,
        text: str = "",
        tags: Sequence[str] = (),
        updated_at: datetime = EPOCH_START,
    ) -> None:
        self.items[item_id] = {
            "text": text,
            "tags": list(tags),
            "updated_at": updated_at,
        }

    async def get_item_text(self, item_id: str) -> Optional[str]:
        item = self.items.get(item_id)
        return item["text"] if item is not None else None

    async def get_item_tags(self, item_id: str) -> List[str]:
        item = self.items.get(item_id)
        return list(item["tags"]) if item is not None else []

    async def get_item_updated_at(self, item_id: str) -> Optional[datetime]:
        item = self.items.get(item_id)
        return item["updated_at"] if item is not None else None

    async def iter_items_with_text(self):
        self.full_scans += 1
        if self.fail_reads:
            raise CatalogReadError("catalog unavailable")

        for item_id, item in self.items.items():
            if item["text"]:
                yield item_id, item["text"]

    async def count_items(self) -> int:
        return len(self.items)

    async def list_item_ids(self, offset: int, limit: int) -> List[str]:
        return sorted(self.items)[offset : offset + limit]


class FakeTagDirectory:
    def __init__(self, tags: Sequence[str] = ()) -> None:
        self.tags = list(tags)

    async def list_known_tags(self) -> List[str]:
        return list(self.tags)


class FakeRepository:
    def __init__(self) -> None:
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.writes = 0
        self.fail_writes = False

    async def read_embedding(self, item_id: str) -> Optional[Dict[str, Any]]:
        row = self.rows.get(item_id)
        return dict(row) if row is not None else None

    async def write_embedding(self, embedding: ItemEmbedding) -> None:
        if self.fail_writes:
            raise ConnectionError("database is read-only")
        self.writes += 1
        self.rows[embedding.item_id] = embedding.model_dump()

    async def delete_embedding(self, item_id: str) -> bool:
        return self.rows.pop(item_id, None) is not None

    async def list_candidates(
        self,
        exclude_ids: Sequence[str],
        limit: int,
        term_epoch: str,
        tag_epoch: Optional[str] = None,
        require_description: bool = False,
    ) -> List[Dict[str, Any]]:
        excluded = set(exclude_ids)
        rows = []
        for item_id in sorted(self.rows):
            row = self.rows[item_id]
            if item_id in excluded or row.get("combined_vector") is None:
                continue
            if row.get("term_epoch") != term_epoch:
                continue
            if tag_epoch is not None and row.get("tag_epoch") != tag_epoch:
                continue
            if require_description and row.get("description_vector") is None:
                continue
            rows.append(dict(row))
        return rows[:limit]

    async def count_embeddings(self) -> int:
        return sum(1 for row in self.rows.values() if row.get("combined_vector") is not None)

    async def sample_vector_size(self) -> int:
        for row in self.rows.values():
            if isinstance(row.get("combined_vector"), list):
                return len(row["combined_vector"])
        return 0


# ---------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------

@pytest.fixture
def catalog():
    catalog = FakeCatalog()
    catalog.add("A", "Giant robots fight for justice", ["mecha", "action"])
    catalog.add("B", "Giant robots fight for justice", ["mecha", "action"])
    catalog.add("C", "A quiet slice of life story about cooking in a small village", ["slice"])
    catalog.add("D", "Magical girls protect the city from demons", ["magic"])
    return catalog


@pytest.fixture
def tag_directory():
    return FakeTagDirectory(["action", "magic", "mecha", "slice"])


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def engine(catalog, tag_directory, repository, cache):
    return SemanticEngine(
        catalog=catalog,
        tag_directory=tag_directory,
        repository=repository,
        cache=cache,
        config=Settings(),
    )
