"""
SQLAlchemy Models

Defines the database schema for:
- Documents (owned by the CRUD layer, read-only here)
- Document embeddings (vector storage with pgvector)
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from pgvector.sqlalchemy import Vector

from ..config import settings


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ---------------------------------------------------------------------
# Document Model
# ---------------------------------------------------------------------

class Document(Base):
    """
    A user-authored text document.

    The embedding subsystem reads the content and visibility flags but
    never writes to this table.
    """
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    embedding: Mapped[Optional["DocumentEmbedding"]] = relationship(
        "DocumentEmbedding",
        back_populates="document",
        uselist=False,
        passive_deletes=True,
    )


# ---------------------------------------------------------------------
# Document Embedding Model
# ---------------------------------------------------------------------

class DocumentEmbedding(Base):
    """
    The single current embedding of one document.

    ``text_content`` keeps the exact text that was embedded, which may
    drift from the document's current content after an edit.
    """
    __tablename__ = "document_embeddings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )
    model: Mapped[str] = mapped_column(Text, nullable=False)
    text_content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # pgvector column, dimension agreed with the provider model
    embedding = Column(Vector(settings.embedding_dimensions), nullable=False)

    document: Mapped["Document"] = relationship("Document", back_populates="embedding")

    __table_args__ = (
        UniqueConstraint("document_id", name="uq_document_embeddings_document_id"),
        Index(
            "idx_document_embeddings_hnsw",
            "embedding",
            postgresql_using="hnsw",
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ),
    )
