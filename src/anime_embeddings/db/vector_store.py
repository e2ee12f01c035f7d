"""
Vector Store

PostgreSQL-backed persistence for anime embedding triples.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.dialects.postgresql import insert as pg_insert

from .models import AnimeEmbedding
from ..embeddings.models import ItemEmbedding


def _to_row(record: AnimeEmbedding) -> Dict[str, Any]:
    """Map an ORM row to the repository's plain-mapping contract."""
    return {
        "item_id": record.anime_id,
        "description_vector": record.description_vector,
        "categorical_vector": record.categorical_vector,
        "combined_vector": record.combined_vector,
        "version": record.version,
        "term_epoch": record.term_epoch,
        "tag_epoch": record.tag_epoch,
        "updated_at": record.updated_at,
    }


class VectorStore:
    """
    Embedding repository on top of an async SQLAlchemy session.

    Writes and deletes commit immediately so each triple replacement is
    durable on its own.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize with an async database session.

        Parameters
        ----------
        session : AsyncSession
            SQLAlchemy async session for database operations.
        """
        self._session = session

    async def read_embedding(self, item_id: str) -> Optional[Dict[str, Any]]:
        result = await self._session.execute(
            select(AnimeEmbedding).where(AnimeEmbedding.anime_id == item_id)
        )
        record = result.scalar_one_or_none()
        return _to_row(record) if record is not None else None

    async def write_embedding(self, embedding: ItemEmbedding) -> None:
        """
        Insert or replace the whole triple in a single upsert statement.
        """
        values = {
            "description_vector": embedding.description_vector,
            "categorical_vector": embedding.categorical_vector,
            "combined_vector": embedding.combined_vector,
            "version": embedding.version,
            "term_epoch": embedding.term_epoch,
            "tag_epoch": embedding.tag_epoch,
            "updated_at": embedding.updated_at,
        }

        stmt = pg_insert(AnimeEmbedding).values(
            anime_id=embedding.item_id,
            **values,
        ).on_conflict_do_update(
            index_elements=[AnimeEmbedding.anime_id],
            set_=values,
        )

        try:
            await self._session.execute(stmt)
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise

    async def delete_embedding(self, item_id: str) -> bool:
        """
        Remove the triple for an item.

        Returns True if a row was deleted.
        """
        stmt = delete(AnimeEmbedding).where(AnimeEmbedding.anime_id == item_id)
        try:
            result = await self._session.execute(stmt)
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise
        return result.rowcount > 0

    async def list_candidates(
        self,
        exclude_ids: Sequence[str],
        limit: int,
        term_epoch: str,
        tag_epoch: Optional[str] = None,
        require_description: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Return up to ``limit`` stored triples built in the given epochs.

        Parameters
        ----------
        exclude_ids : Sequence[str]
            Anime ids to leave out.
        limit : int
            Maximum number of rows.
        term_epoch : str
            Required term-window fingerprint.
        tag_epoch : Optional[str]
            Required tag-ordering fingerprint; ignored when None.
        require_description : bool
            Only return rows with a description vector.
        """
        stmt = (
            select(AnimeEmbedding)
            .where(
                AnimeEmbedding.term_epoch == term_epoch,
                AnimeEmbedding.combined_vector.is_not(None),
            )
            .order_by(AnimeEmbedding.anime_id)
            .limit(limit)
        )

        if exclude_ids:
            stmt = stmt.where(AnimeEmbedding.anime_id.not_in(list(exclude_ids)))

        if tag_epoch is not None:
            stmt = stmt.where(AnimeEmbedding.tag_epoch == tag_epoch)

        if require_description:
            stmt = stmt.where(AnimeEmbedding.description_vector.is_not(None))

        result = await self._session.execute(stmt)
        return [_to_row(record) for record in result.scalars().all()]

    async def count_embeddings(self) -> int:
        stmt = select(func.count()).select_from(AnimeEmbedding).where(
            AnimeEmbedding.combined_vector.is_not(None)
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def sample_vector_size(self) -> int:
        """
        Length of one stored combined vector, or 0 if none exist.
        """
        stmt = (
            select(func.jsonb_array_length(AnimeEmbedding.combined_vector))
            .where(AnimeEmbedding.combined_vector.is_not(None))
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0
