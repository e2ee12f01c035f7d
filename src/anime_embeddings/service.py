"""
Semantic Engine Facade

Single entry point used by the surrounding application (recommendation
routers, admin tooling, schedulers). It wires the components together and
exposes the public operations:

- get_anime_embedding
- find_similar_anime_by_embedding
- search_by_semantic_similarity
- calculate_semantic_similarity
- calculate_confidence_score
- generate_all_anime_embeddings
- get_embedding_stats

Design Goals
------------
- Every collaborator is injected, so tests can substitute fakes
- No ambient singletons: each engine owns its IDF index and store
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings, settings as default_settings
from .core.cache import InMemoryCache, RedisCache
from .embeddings.builder import VectorBuilder
from .embeddings.confidence import calculate_confidence_score
from .embeddings.idf import IdfIndex
from .embeddings.jobs import EmbeddingGenerationJob, ProgressCallback
from .embeddings.models import (
    EmbeddingStats,
    GenerationReport,
    ItemEmbedding,
    SimilarityResult,
)
from .embeddings.similarity import SimilarityEngine
from .embeddings.store import EmbeddingStore
from .interfaces import Cache, CatalogReader, EmbeddingRepository, TagDirectory

logger = logging.getLogger("anime_embeddings.service")


class SemanticEngine:
    """
    Composition root for the embedding subsystem.

    Parameters
    ----------
    catalog : CatalogReader
        Read access to item text, tags and timestamps.
    tag_directory : TagDirectory
        Ordered list of known tags.
    repository : EmbeddingRepository
        Durable storage for vector triples.
    cache : Cache
        Shared cache holding the IDF snapshot.
    config : Optional[Settings]
        Overrides for thresholds and sizes. Defaults to global settings.
    """

    def __init__(
        self,
        catalog: CatalogReader,
        tag_directory: TagDirectory,
        repository: EmbeddingRepository,
        cache: Cache,
        config: Optional[Settings] = None,
    ) -> None:
        self.settings = config or default_settings
        self.catalog = catalog

        self.idf_index = IdfIndex(catalog, cache, config=self.settings)
        self.builder = VectorBuilder(self.idf_index, tag_directory, self.settings)
        self.store = EmbeddingStore(catalog, repository, self.builder, self.settings)
        self.similarity = SimilarityEngine(
            self.store,
            self.builder,
            self.idf_index,
            self.settings,
        )

    # ------------------------------------------------------------------
    # Embeddings
    # ------------------------------------------------------------------

    async def get_anime_embedding(self, anime_id: str) -> Optional[ItemEmbedding]:
        return await self.similarity.embedding_for(anime_id)

    async def invalidate_anime_embedding(self, anime_id: str) -> bool:
        """Call when an anime's description or genres change."""
        return await self.store.invalidate(anime_id)

    # ------------------------------------------------------------------
    # Similarity
    # ------------------------------------------------------------------

    async def find_similar_anime_by_embedding(
        self,
        anime_id: str,
        limit: int = 20,
        exclude_ids: Iterable[str] = (),
    ) -> List[SimilarityResult]:
        return await self.similarity.find_similar(anime_id, limit, exclude_ids)

    async def search_by_semantic_similarity(
        self,
        query_text: str,
        limit: int = 10,
        exclude_ids: Iterable[str] = (),
    ) -> List[SimilarityResult]:
        return await self.similarity.search_by_text(query_text, limit, exclude_ids)

    async def calculate_semantic_similarity(self, anime_id_a: str, anime_id_b: str) -> float:
        return await self.similarity.similarity_between(anime_id_a, anime_id_b)

    @staticmethod
    def calculate_confidence_score(
        content_score: float,
        collaborative_score: Optional[float],
        embedding_score: Optional[float],
        user_rating_count: int,
        similar_user_count: int,
    ) -> float:
        return calculate_confidence_score(
            content_score,
            collaborative_score,
            embedding_score,
            user_rating_count,
            similar_user_count,
        )

    # ------------------------------------------------------------------
    # Batch & monitoring
    # ------------------------------------------------------------------

    async def generate_all_anime_embeddings(
        self,
        batch_size: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GenerationReport:
        job = EmbeddingGenerationJob(
            self.catalog,
            self.store,
            batch_size=batch_size or self.settings.batch_size,
            on_progress=on_progress,
        )
        return await job.run()

    async def get_embedding_stats(self) -> EmbeddingStats:
        return await self.store.stats()


# ---------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------

def build_cache(config: Optional[Settings] = None) -> Cache:
    """Redis when ``redis_url`` is configured, otherwise an in-process cache."""
    config = config or default_settings
    if config.redis_url:
        return RedisCache(config.redis_url)

    logger.info("REDIS_URL not set; IDF snapshots are cached in-process only")
    return InMemoryCache()


def build_sql_engine(
    session: AsyncSession,
    cache: Optional[Cache] = None,
    config: Optional[Settings] = None,
) -> SemanticEngine:
    """Create an engine backed by PostgreSQL adapters sharing ``session``."""
    from .db.catalog import SqlCatalogReader, SqlTagDirectory
    from .db.vector_store import VectorStore

    config = config or default_settings
    return SemanticEngine(
        catalog=SqlCatalogReader(session),
        tag_directory=SqlTagDirectory(session),
        repository=VectorStore(session),
        cache=cache or build_cache(config),
        config=config,
    )
