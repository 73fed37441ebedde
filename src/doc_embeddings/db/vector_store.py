"""
Vector Store

PostgreSQL + pgvector based storage and similarity search for document
embeddings. Distance computation is delegated to pgvector's cosine
operator (``<=>``); this class only builds and runs the queries.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import select, func, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Document, DocumentEmbedding
from ..config import settings
from ..core.errors import EmbeddingConflictError, VectorStoreError
from ..embeddings.models import DocumentSnapshot, EmbeddingRecord

UNIQUE_DOCUMENT_CONSTRAINT = "uq_document_embeddings_document_id"

# pgvector rejects hnsw.ef_search above this
HNSW_EF_SEARCH_MAX = 1000


class VectorStore:
    """
    PostgreSQL-backed embedding store using pgvector for similarity search.

    Enforces one embedding per document through the unique constraint on
    ``document_id``.
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

    async def commit(self) -> None:
        """
        Commit the current transaction.
        """
        await self._session.commit()

    async def rollback(self) -> None:
        """
        Roll back the current transaction.
        """
        await self._session.rollback()

    async def get_embedding(self, document_id: int) -> Optional[EmbeddingRecord]:
        """
        Return the embedding stored for a document, or None.
        """
        stmt = select(DocumentEmbedding).where(DocumentEmbedding.document_id == document_id)

        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            raise VectorStoreError(
                f"Failed to load embedding for document {document_id}"
            ) from exc

        row = result.scalar_one_or_none()
        return EmbeddingRecord.model_validate(row) if row is not None else None

    async def add_embedding(
        self,
        document_id: int,
        embedding: List[float],
        model: str,
        text_content: str,
    ) -> EmbeddingRecord:
        """
        Insert the embedding for a document.

        Parameters
        ----------
        document_id : int
            Owning document.
        embedding : List[float]
            Vector produced by the provider.
        model : str
            Identifier of the model that produced the vector.
        text_content : str
            Exact text that was embedded.

        Returns
        -------
        EmbeddingRecord
            The inserted record.

        Raises
        ------
        EmbeddingConflictError
            If the document already has an embedding.
        VectorStoreError
            On any other database failure.
        """
        stmt = (
            pg_insert(DocumentEmbedding)
            .values(
                document_id=document_id,
                embedding=embedding,
                model=model,
                text_content=text_content,
            )
            .on_conflict_do_nothing(index_elements=[DocumentEmbedding.document_id])
            .returning(DocumentEmbedding)
        )

        try:
            result = await self._session.execute(stmt)
        except IntegrityError as exc:
            if UNIQUE_DOCUMENT_CONSTRAINT in str(exc.orig):
                raise EmbeddingConflictError(document_id) from exc
            raise VectorStoreError(
                f"Failed to save embedding for document {document_id}"
            ) from exc
        except SQLAlchemyError as exc:
            raise VectorStoreError(
                f"Failed to save embedding for document {document_id}"
            ) from exc

        row = result.scalar_one_or_none()
        if row is None:
            # ON CONFLICT DO NOTHING returns no row
            raise EmbeddingConflictError(document_id)

        return EmbeddingRecord.model_validate(row)

    async def nearest(
        self,
        query_embedding: List[float],
        k: int,
        exclude_document_id: Optional[int] = None,
        require_approved: bool = False,
    ) -> List[Tuple[DocumentSnapshot, str, float]]:
        """
        Return the k nearest visible documents by cosine distance.

        Only active, non-deleted documents are considered. Similarity is
        ``1 - cosine distance``; no threshold is applied here.

        Parameters
        ----------
        query_embedding : List[float]
            Query vector.
        k : int
            Number of neighbours to return.
        exclude_document_id : Optional[int]
            Document whose embedding must not be returned.
        require_approved : bool
            If True, only approved documents are returned.

        Returns
        -------
        List[Tuple[DocumentSnapshot, str, float]]
            (document, embedded text, similarity) ordered by ascending distance.
        """
        cosine_distance = DocumentEmbedding.embedding.cosine_distance(query_embedding)

        stmt = (
            select(
                Document,
                DocumentEmbedding.text_content,
                (1 - cosine_distance).label("similarity"),
            )
            .select_from(DocumentEmbedding)
            .join(Document, DocumentEmbedding.document_id == Document.id)
            .where(
                Document.is_deleted.is_(False),
                Document.is_active.is_(True),
            )
            .order_by(cosine_distance)
            .limit(k)
        )

        if require_approved:
            stmt = stmt.where(Document.is_approved.is_(True))

        if exclude_document_id is not None:
            stmt = stmt.where(DocumentEmbedding.document_id != exclude_document_id)

        try:
            await self._widen_index_scan(k)
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            raise VectorStoreError("Nearest-neighbour query failed") from exc

        return [
            (
                DocumentSnapshot.model_validate(row.Document),
                row.text_content,
                float(row.similarity),
            )
            for row in result.all()
        ]

    async def _widen_index_scan(self, k: int) -> None:
        """
        Let an HNSW scan yield at least k candidates in this transaction.

        The index scan stops after ``hnsw.ef_search`` rows and the WHERE
        filters run afterwards, so a smaller value silently truncates the
        result. ``set_config(..., true)`` is the bindable form of SET LOCAL.
        """
        ef_search = min(max(settings.hnsw_ef_search_min, k), HNSW_EF_SEARCH_MAX)
        await self._session.execute(
            text("SELECT set_config('hnsw.ef_search', :value, true)"),
            {"value": str(ef_search)},
        )
        if settings.hnsw_iterative_scan:
            await self._session.execute(
                text("SELECT set_config('hnsw.iterative_scan', :value, true)"),
                {"value": settings.hnsw_iterative_scan},
            )

    async def missing_document_ids(self, limit: int = 100, after_id: int = 0) -> List[int]:
        """
        Return IDs above ``after_id`` of visible documents that have no embedding yet.
        """
        stmt = (
            select(Document.id)
            .outerjoin(DocumentEmbedding, DocumentEmbedding.document_id == Document.id)
            .where(
                DocumentEmbedding.id.is_(None),
                Document.id > after_id,
                Document.is_deleted.is_(False),
                Document.is_active.is_(True),
            )
            .order_by(Document.id)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [row[0] for row in result.all()]

    async def get_stats(self) -> dict:
        """
        Return ``total_embeddings`` (one per embedded document) and
        ``missing_documents`` (visible documents without an embedding).
        """
        total_stmt = select(func.count()).select_from(DocumentEmbedding)
        total_result = await self._session.execute(total_stmt)
        total_embeddings = total_result.scalar() or 0

        missing_stmt = (
            select(func.count())
            .select_from(Document)
            .outerjoin(DocumentEmbedding, DocumentEmbedding.document_id == Document.id)
            .where(
                DocumentEmbedding.id.is_(None),
                Document.is_deleted.is_(False),
                Document.is_active.is_(True),
            )
        )
        missing_result = await self._session.execute(missing_stmt)
        missing_documents = missing_result.scalar() or 0

        return {
            "total_embeddings": total_embeddings,
            "missing_documents": missing_documents,
        }
