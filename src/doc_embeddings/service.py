"""
Document Embedding Service

Library boundary of the embedding subsystem. Wires the provider, the
PostgreSQL stores and the embedding components together and exposes the
four entry points used by the document layer:

- generate_for_document: embed one document (errors surface)
- generate_batch: embed many documents (per-item errors are collected)
- find_similar: ad-hoc similarity search (errors surface)
- on_document_created: creation-time augmentation (errors are absorbed)

Every call runs in its own database session.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator, List, NamedTuple, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .config import settings
from .db import AsyncSessionLocal, DocumentRepository, VectorStore, session_scope
from .embeddings.batch import BatchEmbeddingOrchestrator
from .embeddings.ingestion import IngestionPipeline
from .embeddings.interfaces import TextEmbedder
from .embeddings.models import (
    BatchResult,
    DocumentSnapshot,
    EmbeddingRecord,
    IngestionResult,
    SimilarityResult,
)
from .embeddings.provider import EmbeddingProvider
from .embeddings.search import SimilaritySearchEngine
from .embeddings.store import EmbeddingStore

logger = logging.getLogger("doc_embeddings.service")


@lru_cache
def get_provider() -> EmbeddingProvider:
    return EmbeddingProvider(expected_dimensions=settings.embedding_dimensions)


class Components(NamedTuple):
    """Embedding components sharing one database session."""
    store: EmbeddingStore
    search: SimilaritySearchEngine


class DocumentEmbeddingService:
    """
    Session-scoped facade over the embedding components.
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        provider: Optional[TextEmbedder] = None,
    ) -> None:
        self._session_factory = session_factory or AsyncSessionLocal
        self._provider = provider or get_provider()

    @asynccontextmanager
    async def components(self) -> AsyncIterator[Components]:
        """
        Open a session and build the components on top of it.
        """
        async with session_scope(self._session_factory) as session:
            vectors = VectorStore(session)
            yield Components(
                store=EmbeddingStore(DocumentRepository(session), vectors, self._provider),
                search=SimilaritySearchEngine(self._provider, vectors),
            )

    @asynccontextmanager
    async def store_scope(self) -> AsyncIterator[EmbeddingStore]:
        async with self.components() as components:
            yield components.store

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def generate_for_document(self, document_id: int) -> EmbeddingRecord:
        """
        Embed one document, or return its existing embedding.
        """
        async with self.components() as components:
            return await components.store.ensure_embedding(document_id)

    async def generate_batch(self, document_ids: Sequence[int]) -> BatchResult:
        """
        Embed many documents, each in its own session.
        """
        orchestrator = BatchEmbeddingOrchestrator(self.store_scope)
        return await orchestrator.process_batch(document_ids)

    async def find_similar(
        self,
        query: str,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
        exclude_document_id: Optional[int] = None,
    ) -> List[SimilarityResult]:
        """
        Ad-hoc similarity search over visible documents.
        """
        async with self.components() as components:
            return await components.search.search(
                query,
                limit=limit,
                threshold=threshold,
                exclude_document_id=exclude_document_id,
            )

    async def on_document_created(self, document: DocumentSnapshot) -> IngestionResult:
        """
        Embed a newly created document and surface related ones.

        Must be called after the document is committed. Never raises.
        """
        try:
            async with self.components() as components:
                pipeline = IngestionPipeline(components.store, components.search)
                return await pipeline.on_document_created(document)
        except Exception:
            logger.exception(
                "Embedding pipeline unavailable for new document %d", document.id
            )
            return IngestionResult(document=document)
