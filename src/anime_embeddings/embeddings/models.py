"""
Embedding Data Models

This module defines the canonical data models shared by the embedding engine:

- ``IdfSnapshot``: one immutable corpus-statistics snapshot
- ``ItemEmbedding``: the persisted vector triple of one catalog item
- ``SimilarityResult``: one ranked match
- ``EmbeddingStats`` / ``GenerationReport``: monitoring payloads
"""

from __future__ import annotations

import hashlib
import heapq
from datetime import datetime
from typing import Dict, Iterable, List, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    computed_field,
    model_validator,
)


def fingerprint(values: Iterable[str]) -> str:
    """Short, order-sensitive digest of a sequence of identifiers."""
    digest = hashlib.sha1()
    for value in values:
        digest.update(value.encode("utf-8"))
        digest.update(b"\x00")
    return digest.hexdigest()[:16]


class IdfSnapshot(BaseModel):
    """
    Inverse document frequency scores computed over the whole catalog.

    A snapshot is never patched: a recompute produces a new instance. Its
    sorted key set is the term universe that fixes description vector
    positions.
    """

    scores: Dict[str, float] = Field(
        default_factory=dict,
        description="term -> ln(N / df)",
    )

    document_count: int = Field(
        ...,
        ge=0,
        description="Number of catalog items with non-empty text.",
    )

    computed_at: datetime

    model_config = ConfigDict(frozen=True, extra="forbid")

    # size -> (window, epoch); scores never change after construction
    _windows: Dict[int, Tuple[List[str], str]] = PrivateAttr(default_factory=dict)

    @property
    def term_universe_size(self) -> int:
        return len(self.scores)

    def window(self, size: int) -> List[str]:
        """Return the first ``size`` terms of the lexicographic term universe."""
        return self._window_and_epoch(size)[0]

    def term_epoch(self, size: int) -> str:
        """Fingerprint of the term window; vectors with equal epochs are comparable."""
        return self._window_and_epoch(size)[1]

    def _window_and_epoch(self, size: int) -> Tuple[List[str], str]:
        cached = self._windows.get(size)
        if cached is None:
            terms = heapq.nsmallest(size, self.scores)
            cached = (terms, fingerprint(terms))
            self._windows[size] = cached
        return cached


class ItemEmbedding(BaseModel):
    """
    The vector triple stored for one catalog item.

    The triple is always written and replaced as a whole.
    """

    item_id: str = Field(..., min_length=1)
    description_vector: List[float]
    categorical_vector: List[float]
    combined_vector: List[float]

    version: str = Field(..., min_length=1)
    term_epoch: str = Field(..., min_length=1)
    tag_epoch: str = Field(..., min_length=1)
    updated_at: datetime

    model_config = ConfigDict(frozen=True, extra="ignore")

    @model_validator(mode="after")
    def _check_combined_length(self) -> "ItemEmbedding":
        expected = max(len(self.description_vector), len(self.categorical_vector))
        if len(self.combined_vector) != expected:
            raise ValueError(
                f"combined vector has {len(self.combined_vector)} dims, expected {expected}"
            )
        return self


class SimilarityResult(BaseModel):
    """A candidate item and its cosine similarity to the query."""

    item_id: str
    similarity: float = Field(..., ge=-1.0, le=1.0)

    model_config = ConfigDict(frozen=True)


class EmbeddingStats(BaseModel):
    total_items: int = Field(..., ge=0)
    with_embeddings: int = Field(..., ge=0)
    coverage: float = Field(..., ge=0.0)
    average_vector_size: int = Field(..., ge=0)


class GenerationReport(BaseModel):
    """
    Counters produced by one batch generation run.

    ``visited`` counts every catalog item the run looked at; ``processed``
    counts build attempts only (``successful + failed``), so items that
    already had a fresh embedding show up in ``skipped`` and nowhere else.
    """

    total: int = 0
    visited: int = 0
    processed: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    duration_seconds: float = 0.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def errors(self) -> int:
        return self.failed
