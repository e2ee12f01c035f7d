"""
Engine Errors

This module defines the exception hierarchy raised by the embedding engine.

Policy
------
- Input problems (oversized text, short queries) never raise; they are
  truncated or answered with an empty result.
- Missing data (unknown item, no embedding yet) is returned as ``None`` or
  an empty list, never raised.
- Collaborator failures (catalog reads, cache, persistent store) propagate
  to the caller. Persistence failures are wrapped so the caller can still
  use the vectors computed for the current call.
- Corrupt stored records are handled inside the store and never escape.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..embeddings.models import ItemEmbedding


class EmbeddingEngineError(RuntimeError):
    """Base error for all embedding engine failures."""


class CatalogReadError(EmbeddingEngineError):
    """Raised by catalog adapters when the catalog cannot be read."""


class EmbeddingPersistenceError(EmbeddingEngineError):
    """
    Raised when a freshly built embedding could not be written.

    The computed vectors are attached as ``embedding`` so request handlers
    can still answer the current call.
    """

    def __init__(self, item_id: str, embedding: "ItemEmbedding") -> None:
        super().__init__(f"Failed to persist embedding for item {item_id!r}")
        self.item_id = item_id
        self.embedding = embedding


class CorruptEmbeddingError(EmbeddingEngineError):
    """Raised internally when a stored vector triple cannot be parsed."""
