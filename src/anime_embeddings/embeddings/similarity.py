"""
Similarity Engine

Ranks stored catalog items against a source item or a free-text query.

Responsibilities
----------------
- Resolve the source embedding (building it on demand)
- Fetch a bounded, epoch-compatible candidate pool
- Score candidates with cosine similarity
- Apply the acceptance threshold and limit
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .builder import VectorBuilder
from .idf import IdfIndex
from .models import ItemEmbedding, SimilarityResult
from .store import EmbeddingStore
from .vectors import cosine_similarity, rank_by_similarity
from ..config import Settings, settings as default_settings
from ..core.errors import EmbeddingPersistenceError

logger = logging.getLogger("anime_embeddings.similarity")


class SimilarityEngine:
    def __init__(
        self,
        store: EmbeddingStore,
        builder: VectorBuilder,
        idf_index: IdfIndex,
        config: Optional[Settings] = None,
    ) -> None:
        self._store = store
        self._builder = builder
        self._idf = idf_index
        self._settings = config or default_settings

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embedding_for(self, item_id: str) -> Optional[ItemEmbedding]:
        """
        Resolve an embedding for a read request.

        A failed write does not fail the request; the vectors computed for
        this call are used instead.
        """
        try:
            return await self._store.get_or_build(item_id)
        except EmbeddingPersistenceError as exc:
            logger.warning("Using unsaved embedding for %s", item_id)
            return exc.embedding

    async def find_similar(
        self,
        item_id: str,
        limit: int = 20,
        exclude_ids: Iterable[str] = (),
    ) -> List[SimilarityResult]:
        """
        Return up to ``limit`` items whose combined vectors are closest to
        ``item_id``'s, best first.

        The source item and ``exclude_ids`` never appear in the result.
        """
        source = await self.embedding_for(item_id)
        if source is None or not source.combined_vector:
            return []

        excluded = set(exclude_ids)
        excluded.add(item_id)

        candidates = await self._store.candidates(
            exclude_ids=sorted(excluded),
            term_epoch=source.term_epoch,
            tag_epoch=source.tag_epoch,
        )

        ranked = rank_by_similarity(
            source.combined_vector,
            (
                (c.item_id, c.combined_vector)
                for c in candidates
                if c.item_id not in excluded
            ),
            self._settings.similarity_threshold,
        )
        return ranked[:limit]

    async def search_by_text(
        self,
        query: str,
        limit: int = 10,
        exclude_ids: Iterable[str] = (),
    ) -> List[SimilarityResult]:
        """
        Rank items by similarity between ``query`` and their descriptions.

        Queries shorter than the minimum length return an empty list.
        """
        if not query or len(query.strip()) < self._settings.min_query_length:
            return []

        snapshot = await self._idf.get()
        query_vector = await self._builder.build_description_vector(
            query[: self._settings.max_query_length],
            snapshot=snapshot,
        )
        if not query_vector:
            return []

        excluded = set(exclude_ids)
        candidates = await self._store.candidates(
            exclude_ids=sorted(excluded),
            term_epoch=snapshot.term_epoch(self._builder.dimensions),
            require_description=True,
        )

        ranked = rank_by_similarity(
            query_vector,
            (
                (c.item_id, c.description_vector)
                for c in candidates
                if c.item_id not in excluded
            ),
            self._settings.text_search_threshold,
        )
        return ranked[:limit]

    async def similarity_between(self, first_id: str, second_id: str) -> float:
        """Cosine similarity of two items' combined vectors; 0 if either is missing."""
        # Adapters may share one AsyncSession, which does not allow concurrent use.
        first = await self.embedding_for(first_id)
        second = await self.embedding_for(second_id)

        if first is None or second is None:
            return 0.0
        return cosine_similarity(first.combined_vector, second.combined_vector)
