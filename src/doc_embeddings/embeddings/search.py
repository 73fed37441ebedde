"""
Similarity Search

Ranks stored documents against a free-text query.

Responsibilities
----------------
- Validate the query, limit and threshold
- Embed the query
- Over-fetch ``2 * limit`` nearest neighbours from the vector store
- Keep candidates whose similarity clears the threshold, best first
- Return at most ``limit`` results

Ranking is left to the store; acceptance against the threshold is a plain
float comparison done here, so the store never has to filter on the
derived similarity itself.
"""

from __future__ import annotations

import logging
from numbers import Real
from typing import List, Optional

from .interfaces import EmbeddingVectorStore, TextEmbedder
from .models import SimilarityResult
from ..config import settings
from ..core.errors import EmbeddingServiceError, SearchFailed, ValidationError

logger = logging.getLogger("doc_embeddings.search")

OVERFETCH_FACTOR = 2


def clamp_similarity(score: float) -> float:
    """Bound a ``1 - cosine distance`` score to [0, 1]."""
    return min(1.0, max(0.0, score))


class SimilaritySearchEngine:
    """
    Threshold-filtered nearest-neighbour search over document embeddings.
    """

    def __init__(
        self,
        provider: TextEmbedder,
        vectors: EmbeddingVectorStore,
        max_limit: Optional[int] = None,
        max_query_length: Optional[int] = None,
    ) -> None:
        self._provider = provider
        self._vectors = vectors
        self.max_limit = max_limit or settings.search_max_limit
        self.max_query_length = max_query_length or settings.search_query_max_length

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self, query_text: str, limit: int, threshold: float) -> str:
        if not isinstance(query_text, str) or not query_text.strip():
            raise ValidationError("Query text must be a non-empty string.")

        query = query_text.strip()
        if len(query) > self.max_query_length:
            raise ValidationError(
                f"Query text must be at most {self.max_query_length} characters."
            )

        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ValidationError("Limit must be an integer.")
        if not 1 <= limit <= self.max_limit:
            raise ValidationError(f"Limit must be between 1 and {self.max_limit}.")

        if isinstance(threshold, bool) or not isinstance(threshold, Real):
            raise ValidationError("Threshold must be a number.")
        if not 0.0 <= threshold <= 1.0:
            raise ValidationError("Threshold must be between 0 and 1.")

        return query

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def search(
        self,
        query_text: str,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
        exclude_document_id: Optional[int] = None,
        require_approved: bool = False,
    ) -> List[SimilarityResult]:
        """
        Find documents similar to a query text.

        Parameters
        ----------
        query_text : str
            Free text to compare against stored embeddings.

        limit : Optional[int]
            Maximum number of results. Defaults to settings.search_default_limit.

        threshold : Optional[float]
            Minimum similarity in [0, 1]. Defaults to settings.search_default_threshold.

        exclude_document_id : Optional[int]
            Document to leave out of the results, typically the query's source.

        require_approved : bool
            Restrict results to approved documents.

        Returns
        -------
        List[SimilarityResult]
            Results in non-increasing similarity order. Empty if nothing
            clears the threshold.

        Raises
        ------
        ValidationError
            If the query, limit or threshold is malformed.
        SearchFailed
            If the provider or the vector store fails.
        """
        if limit is None:
            limit = settings.search_default_limit
        if threshold is None:
            threshold = settings.search_default_threshold

        query = self._validate(query_text, limit, threshold)

        try:
            query_embedding = await self._provider.generate(query)
            candidates = await self._vectors.nearest(
                query_embedding,
                k=limit * OVERFETCH_FACTOR,
                exclude_document_id=exclude_document_id,
                require_approved=require_approved,
            )
        except EmbeddingServiceError as exc:
            logger.warning("Similarity search failed: %s", exc)
            raise SearchFailed(exc) from exc

        accepted = [
            SimilarityResult(
                document_id=document.id,
                content=document.content,
                text_content=text_content,
                similarity=clamp_similarity(score),
                is_approved=document.is_approved,
                user_id=document.user_id,
                created_at=document.created_at,
            )
            for document, text_content, score in candidates
            if clamp_similarity(score) >= threshold
        ]

        # Stable: equal scores keep the store's order
        accepted.sort(key=lambda result: result.similarity, reverse=True)

        logger.debug(
            "Similarity search kept %d of %d candidates (threshold=%.2f)",
            len(accepted),
            len(candidates),
            threshold,
        )
        return accepted[:limit]
