"""
Capability contracts injected into the embedding components.

Production implementations live in ``db/`` (PostgreSQL + pgvector) and
``embeddings/provider.py`` (HTTP); tests supply in-memory doubles.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Tuple, runtime_checkable

from .models import DocumentSnapshot, EmbeddingRecord


@runtime_checkable
class TextEmbedder(Protocol):
    """Turns text into a fixed-dimension vector."""

    model: str

    async def generate(self, text: str) -> List[float]:
        ...


@runtime_checkable
class DocumentSource(Protocol):
    """Read access to documents owned by the CRUD layer."""

    async def get_document_by_id(self, document_id: int) -> Optional[DocumentSnapshot]:
        ...


@runtime_checkable
class EmbeddingVectorStore(Protocol):
    """
    Persistence and ranked retrieval of document embeddings.

    ``add_embedding`` must raise ``EmbeddingConflictError`` when the
    document already has an embedding.
    """

    async def get_embedding(self, document_id: int) -> Optional[EmbeddingRecord]:
        ...

    async def add_embedding(
        self,
        document_id: int,
        embedding: List[float],
        model: str,
        text_content: str,
    ) -> EmbeddingRecord:
        ...

    async def nearest(
        self,
        query_embedding: List[float],
        k: int,
        exclude_document_id: Optional[int] = None,
        require_approved: bool = False,
    ) -> List[Tuple[DocumentSnapshot, str, float]]:
        """Return (document, embedded text, similarity) ordered by distance."""
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...
