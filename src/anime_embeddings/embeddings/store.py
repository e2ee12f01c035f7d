"""
Embedding Store

Owns the lifecycle of per-item vector triples: lookup, lazy (re)build,
atomic persistence and explicit invalidation.

Freshness
---------
A stored triple is reused only when all of the following hold:

- it parses (corrupt rows are treated as missing and rebuilt)
- its combined vector is present
- its format version equals ``settings.embedding_version``
- its term and tag epochs equal the current ones
- the catalog item was not updated after the triple was written
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from .builder import VectorBuilder
from .models import EmbeddingStats, ItemEmbedding
from ..config import Settings, settings as default_settings
from ..core.errors import CorruptEmbeddingError, EmbeddingPersistenceError
from ..interfaces import CatalogReader, EmbeddingRepository

logger = logging.getLogger("anime_embeddings.store")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_embedding(row: Dict[str, Any]) -> ItemEmbedding:
    """
    Validate a raw repository row.

    Raises
    ------
    CorruptEmbeddingError
        If the row is not a well-formed vector triple.
    """
    try:
        return ItemEmbedding.model_validate(row)
    except ValidationError as exc:
        raise CorruptEmbeddingError(
            f"Malformed embedding row for item {row.get('item_id')!r}"
        ) from exc


class EmbeddingStore:
    """
    Read-through store for item embeddings.

    Concurrent builds of the same item are tolerated: the computation is
    deterministic and the repository write replaces the whole triple, so the
    last writer wins.
    """

    def __init__(
        self,
        catalog: CatalogReader,
        repository: EmbeddingRepository,
        builder: VectorBuilder,
        config: Optional[Settings] = None,
    ) -> None:
        self._catalog = catalog
        self._repository = repository
        self._builder = builder
        self._settings = config or default_settings

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def lookup(self, item_id: str) -> Optional[ItemEmbedding]:
        """Return the stored triple if it is fresh, without building anything."""
        epochs = await self._builder.current_epochs()
        return await self._read_fresh(item_id, epochs)

    async def get_or_build(self, item_id: str) -> Optional[ItemEmbedding]:
        """
        Return a fresh triple for ``item_id``, building and persisting it if needed.

        Returns
        -------
        Optional[ItemEmbedding]
            ``None`` when the item does not exist in the catalog.

        Raises
        ------
        EmbeddingPersistenceError
            If the new triple could not be written. The computed triple is
            available as ``exc.embedding``.
        """
        epochs = await self._builder.current_epochs()

        existing = await self._read_fresh(item_id, epochs)
        if existing is not None:
            return existing

        text = await self._catalog.get_item_text(item_id)
        if text is None:
            return None

        tags = await self._catalog.get_item_tags(item_id)
        embedding = await self._builder.build(item_id, text, tags)

        try:
            await self._repository.write_embedding(embedding)
        except Exception as exc:
            logger.error(
                "Embedding write failed for %s (%s): %s",
                item_id,
                type(exc).__name__,
                str(exc),
            )
            raise EmbeddingPersistenceError(item_id, embedding) from exc

        return embedding

    async def invalidate(self, item_id: str) -> bool:
        """Delete the stored triple so the next access rebuilds it."""
        return await self._repository.delete_embedding(item_id)

    async def candidates(
        self,
        exclude_ids: Sequence[str],
        term_epoch: str,
        tag_epoch: Optional[str] = None,
        require_description: bool = False,
        limit: Optional[int] = None,
    ) -> List[ItemEmbedding]:
        """
        Return up to ``limit`` stored triples built in the given epochs.

        Corrupt rows are skipped.
        """
        rows = await self._repository.list_candidates(
            exclude_ids=list(exclude_ids),
            limit=limit or self._settings.candidate_pool_size,
            term_epoch=term_epoch,
            tag_epoch=tag_epoch,
            require_description=require_description,
        )

        embeddings: List[ItemEmbedding] = []
        for row in rows:
            try:
                embeddings.append(parse_embedding(row))
            except CorruptEmbeddingError as exc:
                logger.warning("Skipping candidate: %s", exc)
        return embeddings

    async def stats(self) -> EmbeddingStats:
        total = await self._catalog.count_items()
        embedded = await self._repository.count_embeddings()
        vector_size = await self._repository.sample_vector_size()

        return EmbeddingStats(
            total_items=total,
            with_embeddings=embedded,
            coverage=embedded / total if total > 0 else 0.0,
            average_vector_size=vector_size,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _read_fresh(
        self,
        item_id: str,
        epochs: Tuple[str, str],
    ) -> Optional[ItemEmbedding]:
        row = await self._repository.read_embedding(item_id)
        if row is None or row.get("combined_vector") is None:
            return None

        try:
            embedding = parse_embedding(row)
        except CorruptEmbeddingError as exc:
            logger.warning("Rebuilding corrupt embedding: %s", exc)
            return None

        if embedding.version != self._settings.embedding_version:
            return None

        if (embedding.term_epoch, embedding.tag_epoch) != epochs:
            return None

        item_updated_at = await self._catalog.get_item_updated_at(item_id)
        if item_updated_at is not None and (
            _as_utc(item_updated_at) > _as_utc(embedding.updated_at)
        ):
            return None

        return embedding
