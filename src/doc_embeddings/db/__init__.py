"""
Database Package

Provides SQLAlchemy async session management, model definitions and the
pgvector-backed stores for PostgreSQL.
"""

from .session import session_scope, init_db, async_engine, AsyncSessionLocal
from .models import Base, Document, DocumentEmbedding
from .documents import DocumentRepository
from .vector_store import VectorStore

__all__ = [
    "session_scope",
    "init_db",
    "async_engine",
    "AsyncSessionLocal",
    "Base",
    "Document",
    "DocumentEmbedding",
    "DocumentRepository",
    "VectorStore",
]
