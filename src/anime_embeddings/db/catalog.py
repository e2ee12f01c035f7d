"""
Catalog Adapters

Read-only access to the anime catalog and genre directory for the embedding
engine. Database failures are raised as ``CatalogReadError``.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import AsyncIterator, Iterator, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Anime, AnimeGenre, Genre
from ..core.errors import CatalogReadError


@contextmanager
def _reading(what: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise CatalogReadError(
            f"Catalog read failed ({what}): {type(exc).__name__}"
        ) from exc


class SqlCatalogReader:
    """Catalog reader backed by the ``anime`` and ``anime_genres`` tables."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_item_text(self, item_id: str) -> Optional[str]:
        with _reading("item text"):
            result = await self._session.execute(
                select(Anime.id, Anime.description).where(Anime.id == item_id)
            )
            row = result.one_or_none()

        if row is None:
            return None
        return row.description or ""

    async def get_item_tags(self, item_id: str) -> List[str]:
        with _reading("item tags"):
            result = await self._session.execute(
                select(AnimeGenre.genre_id).where(AnimeGenre.anime_id == item_id)
            )
            return list(result.scalars().all())

    async def get_item_updated_at(self, item_id: str) -> Optional[datetime]:
        with _reading("item timestamp"):
            result = await self._session.execute(
                select(Anime.updated_at).where(Anime.id == item_id)
            )
            return result.scalar_one_or_none()

    async def iter_items_with_text(self) -> AsyncIterator[Tuple[str, str]]:
        stmt = (
            select(Anime.id, Anime.description)
            .where(Anime.description.is_not(None), Anime.description != "")
            .execution_options(yield_per=1000)
        )
        with _reading("all descriptions"):
            result = await self._session.stream(stmt)
            async for row in result:
                yield row.id, row.description

    async def count_items(self) -> int:
        with _reading("item count"):
            result = await self._session.execute(
                select(func.count()).select_from(Anime)
            )
            return result.scalar() or 0

    async def list_item_ids(self, offset: int, limit: int) -> List[str]:
        with _reading("item page"):
            result = await self._session.execute(
                select(Anime.id).order_by(Anime.id).offset(offset).limit(limit)
            )
            return list(result.scalars().all())


class SqlTagDirectory:
    """Genre directory; genres are ordered by name, then id."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_known_tags(self) -> List[str]:
        with _reading("genres"):
            result = await self._session.execute(
                select(Genre.id).order_by(Genre.name, Genre.id)
            )
            return list(result.scalars().all())
