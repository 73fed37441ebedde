"""
Creation-time retrieval augmentation.

Runs after a document has been durably created: embeds it, then looks up
related prior documents using its own text as the query. Neither step can
make document creation fail; problems are only logged.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .models import DocumentSnapshot, IngestionResult, SimilarityResult
from .search import SimilaritySearchEngine
from .store import EmbeddingStore
from ..config import settings
from ..core.errors import EmbeddingServiceError

logger = logging.getLogger("doc_embeddings.ingestion")


class IngestionPipeline:
    """
    Embeds new documents and surfaces related ones.
    """

    def __init__(
        self,
        store: EmbeddingStore,
        search: SimilaritySearchEngine,
        related_limit: Optional[int] = None,
        related_threshold: Optional[float] = None,
    ) -> None:
        self._store = store
        self._search = search
        self.related_limit = related_limit or settings.related_limit
        self.related_threshold = (
            related_threshold
            if related_threshold is not None
            else settings.related_threshold
        )

    async def on_document_created(self, document: DocumentSnapshot) -> IngestionResult:
        """
        Augment a freshly created document with related documents.

        Never raises: embedding or search failures yield an empty
        related-documents list.
        """
        related: List[SimilarityResult] = []

        if await self._embed(document) and document.content.strip():
            related = await self._find_related(document)

        return IngestionResult(document=document, related_documents=related)

    async def _embed(self, document: DocumentSnapshot) -> bool:
        try:
            await self._store.ensure_embedding(document.id)
        except EmbeddingServiceError as exc:
            logger.warning(
                "Failed to generate embedding for new document %d: %s",
                document.id,
                exc,
            )
            return False
        except Exception:
            logger.exception("Unexpected error embedding new document %d", document.id)
            return False
        return True

    async def _find_related(self, document: DocumentSnapshot) -> List[SimilarityResult]:
        # Long documents are compared on their leading text only
        query = document.content.strip()[: self._search.max_query_length]

        try:
            return await self._search.search(
                query,
                limit=self.related_limit,
                threshold=self.related_threshold,
                exclude_document_id=document.id,
                require_approved=True,
            )
        except EmbeddingServiceError as exc:
            logger.warning(
                "Related-document lookup failed for document %d: %s",
                document.id,
                exc,
            )
        except Exception:
            logger.exception("Unexpected error finding related documents for %d", document.id)
        return []
