"""
Database Package

Provides SQLAlchemy async session management, model definitions and the
SQL-backed catalog and embedding adapters for PostgreSQL.
"""

from .session import session_scope, dispose_engine, async_engine, AsyncSessionLocal
from .models import Base, Anime, Genre, AnimeGenre, AnimeEmbedding
from .catalog import SqlCatalogReader, SqlTagDirectory
from .vector_store import VectorStore

__all__ = [
    "session_scope",
    "dispose_engine",
    "async_engine",
    "AsyncSessionLocal",
    "Base",
    "Anime",
    "Genre",
    "AnimeGenre",
    "AnimeEmbedding",
    "SqlCatalogReader",
    "SqlTagDirectory",
    "VectorStore",
]
