"""
Corpus Statistics (IDF Index)

Computes inverse document frequency weights over the whole catalog and keeps
the result in a shared cache for a bounded time.

Key Properties
--------------
- Snapshots are recomputed wholesale, never patched
- Every vector built inside one validity window sees the same snapshot
- A failed catalog read never writes a partial snapshot to the cache
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from pydantic import ValidationError

from .models import IdfSnapshot
from .tokenizer import tokenize
from ..config import Settings, settings as default_settings
from ..interfaces import Cache, CatalogReader

logger = logging.getLogger("anime_embeddings.idf")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IdfIndex:
    """
    Cached IDF snapshot provider.

    The last snapshot is also memoized in-process until its validity window
    ends, so hot paths do not deserialize it on every vector build.
    """

    def __init__(
        self,
        catalog: CatalogReader,
        cache: Cache,
        ttl_seconds: Optional[int] = None,
        cache_key: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
        config: Optional[Settings] = None,
    ) -> None:
        self._catalog = catalog
        self._cache = cache
        self._settings = config or default_settings
        self._ttl = ttl_seconds if ttl_seconds is not None else self._settings.idf_cache_ttl_seconds
        self._key = cache_key if cache_key is not None else self._settings.idf_cache_key
        self._clock = clock

        self._snapshot: Optional[IdfSnapshot] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get(self) -> IdfSnapshot:
        """
        Return the current snapshot, recomputing it on a cache miss.

        Raises
        ------
        Exception
            Whatever the catalog raises while a recompute reads it.
        """
        if self._snapshot is not None and not self._expired(self._snapshot):
            return self._snapshot

        snapshot = await self._load_cached()
        if snapshot is None:
            snapshot = await self.compute()
            await self._cache.set(
                self._key,
                snapshot.model_dump(mode="json"),
                ttl=self._ttl,
            )

        self._snapshot = snapshot
        return snapshot

    async def compute(self) -> IdfSnapshot:
        """
        Compute a fresh snapshot from the full catalog without touching the cache.
        """
        document_frequency: Counter[str] = Counter()
        document_count = 0

        async for _item_id, text in self._catalog.iter_items_with_text():
            if not text:
                continue

            document_count += 1
            document_frequency.update(set(self._tokenize(text)))

        scores = {
            term: math.log(document_count / df)
            for term, df in document_frequency.items()
        }

        logger.info(
            "Computed IDF snapshot: documents=%d, terms=%d",
            document_count,
            len(scores),
        )

        return IdfSnapshot(
            scores=scores,
            document_count=document_count,
            computed_at=self._clock(),
        )

    async def invalidate(self) -> None:
        """Drop the cached snapshot so the next ``get`` recomputes it."""
        self._snapshot = None
        await self._cache.delete(self._key)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _tokenize(self, text: str) -> List[str]:
        return tokenize(
            text,
            max_length=self._settings.max_text_length,
            min_token_length=self._settings.min_token_length,
            max_token_length=self._settings.max_token_length,
        )

    def _expired(self, snapshot: IdfSnapshot) -> bool:
        return self._clock() >= snapshot.computed_at + timedelta(seconds=self._ttl)

    async def _load_cached(self) -> Optional[IdfSnapshot]:
        raw = await self._cache.get(self._key)
        if raw is None:
            return None

        try:
            snapshot = IdfSnapshot.model_validate(raw)
        except ValidationError:
            logger.warning("Discarding malformed IDF snapshot under key %s", self._key)
            return None

        if self._expired(snapshot):
            return None
        return snapshot
