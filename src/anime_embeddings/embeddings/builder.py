"""
Vector Builder

Builds the description, categorical and combined vectors of a catalog item
against the current IDF snapshot and tag directory.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Collection, List, Optional, Sequence, Tuple

from .idf import IdfIndex
from .models import IdfSnapshot, ItemEmbedding, fingerprint
from .tokenizer import tokenize
from .vectors import categorical_vector, combine_vectors, description_vector
from ..config import Settings, settings as default_settings
from ..interfaces import TagDirectory


class VectorBuilder:
    """
    Stateless builder; all corpus state comes from the injected IDF index
    and tag directory.
    """

    def __init__(
        self,
        idf_index: IdfIndex,
        tag_directory: TagDirectory,
        config: Optional[Settings] = None,
    ) -> None:
        self._idf = idf_index
        self._tags = tag_directory
        self._settings = config or default_settings

    @property
    def dimensions(self) -> int:
        return self._settings.description_dimensions

    # ------------------------------------------------------------------
    # Single vectors
    # ------------------------------------------------------------------

    async def build_description_vector(
        self,
        text: str,
        snapshot: Optional[IdfSnapshot] = None,
        max_length: Optional[int] = None,
    ) -> List[float]:
        tokens = tokenize(
            text,
            max_length=max_length if max_length is not None else self._settings.max_text_length,
            min_token_length=self._settings.min_token_length,
            max_token_length=self._settings.max_token_length,
        )
        if not tokens:
            return []

        if snapshot is None:
            snapshot = await self._idf.get()
        return description_vector(tokens, snapshot, self.dimensions)

    async def build_categorical_vector(
        self,
        tag_ids: Collection[str],
        known_tags: Optional[Sequence[str]] = None,
    ) -> List[float]:
        if known_tags is None:
            known_tags = await self._tags.list_known_tags()
        return categorical_vector(tag_ids, known_tags)

    def combine(self, desc: Sequence[float], cat: Sequence[float]) -> List[float]:
        return combine_vectors(
            desc,
            cat,
            self._settings.description_weight,
            self._settings.categorical_weight,
        )

    # ------------------------------------------------------------------
    # Epochs
    # ------------------------------------------------------------------

    async def current_epochs(self) -> Tuple[str, str]:
        """Return ``(term_epoch, tag_epoch)`` for vectors built right now."""
        snapshot = await self._idf.get()
        known_tags = await self._tags.list_known_tags()
        return snapshot.term_epoch(self.dimensions), fingerprint(known_tags)

    async def current_term_epoch(self) -> str:
        snapshot = await self._idf.get()
        return snapshot.term_epoch(self.dimensions)

    # ------------------------------------------------------------------
    # Full triple
    # ------------------------------------------------------------------

    async def build(
        self,
        item_id: str,
        text: str,
        tag_ids: Collection[str],
    ) -> ItemEmbedding:
        """
        Build the full vector triple for one item.

        One snapshot and one tag listing are used for all three vectors.
        """
        snapshot = await self._idf.get()
        known_tags = await self._tags.list_known_tags()

        desc = await self.build_description_vector(text, snapshot=snapshot)
        cat = await self.build_categorical_vector(tag_ids, known_tags=known_tags)

        return ItemEmbedding(
            item_id=item_id,
            description_vector=desc,
            categorical_vector=cat,
            combined_vector=self.combine(desc, cat),
            version=self._settings.embedding_version,
            term_epoch=snapshot.term_epoch(self.dimensions),
            tag_epoch=fingerprint(known_tags),
            updated_at=datetime.now(timezone.utc),
        )
