"""
Embedding Store

Get-or-create access to the single embedding of each document.

Workflow of ``ensure_embedding``
--------------------------------
1. Resolve the document (DocumentNotFound if absent).
2. Return the existing embedding unchanged, if any.
3. Embed the document's current content.
4. Insert and commit the new record.

Two callers racing on the same document may both reach step 4. The vector
store refuses the second insert with EmbeddingConflictError, and the loser
returns the winner's record instead of failing.
"""

from __future__ import annotations

import logging

from .interfaces import DocumentSource, EmbeddingVectorStore, TextEmbedder
from .models import EmbeddingRecord
from ..core.errors import (
    DocumentNotFound,
    EmbeddingConflictError,
    EmbeddingGenerationFailed,
    EmbeddingServiceError,
)

logger = logging.getLogger("doc_embeddings.store")


class EmbeddingStore:
    """
    Owns the one-embedding-per-document invariant.
    """

    def __init__(
        self,
        documents: DocumentSource,
        vectors: EmbeddingVectorStore,
        provider: TextEmbedder,
    ) -> None:
        self._documents = documents
        self._vectors = vectors
        self._provider = provider

    async def ensure_embedding(self, document_id: int) -> EmbeddingRecord:
        """
        Return the embedding of a document, generating it on first use.

        Parameters
        ----------
        document_id : int
            ID of the document to embed.

        Returns
        -------
        EmbeddingRecord
            The stored (possibly pre-existing) embedding.

        Raises
        ------
        DocumentNotFound
            If the document does not exist.
        EmbeddingGenerationFailed
            If generating or persisting the vector fails. Nothing is stored.
        """
        document = await self._documents.get_document_by_id(document_id)
        if document is None:
            raise DocumentNotFound(document_id)

        existing = await self._vectors.get_embedding(document_id)
        if existing is not None:
            logger.debug("Embedding already exists for document %d", document_id)
            return existing

        try:
            vector = await self._provider.generate(document.content)
        except EmbeddingServiceError as exc:
            logger.warning(
                "Embedding generation failed for document %d: %s",
                document_id,
                exc,
            )
            raise EmbeddingGenerationFailed(document_id, exc) from exc

        try:
            record = await self._vectors.add_embedding(
                document_id=document_id,
                embedding=vector,
                model=self._provider.model,
                text_content=document.content,
            )
            await self._vectors.commit()
        except EmbeddingConflictError:
            await self._vectors.rollback()
            return await self._load_concurrent_winner(document_id)
        except EmbeddingServiceError as exc:
            await self._vectors.rollback()
            logger.warning(
                "Failed to save embedding for document %d: %s",
                document_id,
                exc,
            )
            raise EmbeddingGenerationFailed(document_id, exc) from exc

        logger.info("Created embedding for document %d", document_id)
        return record

    async def _load_concurrent_winner(self, document_id: int) -> EmbeddingRecord:
        logger.info(
            "Embedding for document %d was created concurrently, reusing it",
            document_id,
        )
        try:
            existing = await self._vectors.get_embedding(document_id)
        except EmbeddingServiceError as exc:
            raise EmbeddingGenerationFailed(document_id, exc) from exc

        if existing is None:
            conflict = EmbeddingConflictError(document_id)
            raise EmbeddingGenerationFailed(document_id, conflict)

        return existing
