"""
Read-only access to documents owned by the CRUD layer.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Document
from ..core.errors import VectorStoreError
from ..embeddings.models import DocumentSnapshot


class DocumentRepository:
    """Looks up documents by ID. Never writes."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_document_by_id(self, document_id: int) -> Optional[DocumentSnapshot]:
        try:
            result = await self._session.execute(
                select(Document).where(Document.id == document_id)
            )
        except SQLAlchemyError as exc:
            raise VectorStoreError(f"Failed to load document {document_id}") from exc

        document = result.scalar_one_or_none()
        return DocumentSnapshot.model_validate(document) if document is not None else None
