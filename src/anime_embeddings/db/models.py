"""
SQLAlchemy Models

Defines the database schema for:
- Catalog tables read by the engine (anime, genres, anime/genre links)
- Persisted embedding triples
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, List

from sqlalchemy import (
    String,
    Text,
    DateTime,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ---------------------------------------------------------------------
# Catalog Models (read-only for this package)
# ---------------------------------------------------------------------

class Anime(Base):
    """
    A catalog item. Owned by the catalog service; only read here.
    """
    __tablename__ = "anime"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class Genre(Base):
    """
    A categorical tag. Ordering by name fixes categorical vector positions.
    """
    __tablename__ = "genres"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)


class AnimeGenre(Base):
    __tablename__ = "anime_genres"

    anime_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("anime.id", ondelete="CASCADE"),
        primary_key=True,
    )
    genre_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("genres.id", ondelete="CASCADE"),
        primary_key=True,
    )


# ---------------------------------------------------------------------
# Embedding Model
# ---------------------------------------------------------------------

class AnimeEmbedding(Base):
    """
    Vector triple for one anime.

    Vectors are JSONB arrays: their length depends on the term universe and
    tag directory of the epoch they were built in, and may be zero.
    """
    __tablename__ = "anime_embeddings"

    anime_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("anime.id", ondelete="CASCADE"),
        primary_key=True,
    )
    description_vector: Mapped[Optional[List[float]]] = mapped_column(JSONB, nullable=True)
    categorical_vector: Mapped[Optional[List[float]]] = mapped_column(JSONB, nullable=True)
    combined_vector: Mapped[Optional[List[float]]] = mapped_column(JSONB, nullable=True)

    version: Mapped[str] = mapped_column(String(16), nullable=False)
    term_epoch: Mapped[str] = mapped_column(String(32), nullable=False)
    tag_epoch: Mapped[str] = mapped_column(String(32), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_embedding_epochs", "term_epoch", "tag_epoch"),
    )
