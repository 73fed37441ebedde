"""
Batch embedding orchestration.

Each document ID is embedded in its own unit of work, fanned out over a
bounded pool of concurrent tasks. A failing item is recorded and never
aborts the rest of the batch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncContextManager, Callable, List, Optional, Sequence, Union

from .models import BatchFailure, BatchResult, EmbeddingRecord
from .store import EmbeddingStore
from ..config import settings
from ..core.errors import EmbeddingServiceError, ValidationError, describe_error

logger = logging.getLogger("doc_embeddings.batch")

StoreScope = Callable[[], AsyncContextManager[EmbeddingStore]]
Outcome = Union[EmbeddingRecord, BatchFailure]


class BatchEmbeddingOrchestrator:
    """
    Best-effort embedding of many documents.

    ``store_scope`` must open a fresh EmbeddingStore (with its own
    database session) on every call, since an async session cannot be
    shared between concurrent tasks.
    """

    def __init__(
        self,
        store_scope: StoreScope,
        max_batch_size: Optional[int] = None,
        concurrency: Optional[int] = None,
    ) -> None:
        self._store_scope = store_scope
        self.max_batch_size = max_batch_size or settings.batch_max_size
        self.concurrency = max(1, concurrency or settings.batch_concurrency)

    def _validate(self, document_ids: Sequence[int]) -> List[int]:
        if not isinstance(document_ids, (list, tuple)) or not document_ids:
            raise ValidationError("Document IDs must be a non-empty list.")

        if len(document_ids) > self.max_batch_size:
            raise ValidationError(
                f"At most {self.max_batch_size} document IDs can be processed per batch."
            )

        for document_id in document_ids:
            if isinstance(document_id, bool) or not isinstance(document_id, int) or document_id < 1:
                raise ValidationError(
                    f"Document IDs must be positive integers, got {document_id!r}."
                )

        return list(document_ids)

    async def process_batch(self, document_ids: Sequence[int]) -> BatchResult:
        """
        Ensure an embedding exists for every document ID.

        Parameters
        ----------
        document_ids : Sequence[int]
            Non-empty list of positive document IDs, at most max_batch_size.

        Returns
        -------
        BatchResult
            Successful records in input order plus one failure entry per
            document that could not be embedded.

        Raises
        ------
        ValidationError
            If the list itself is empty, too long, or holds invalid IDs.
        """
        ids = self._validate(document_ids)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _bounded(document_id: int) -> Outcome:
            async with semaphore:
                return await self._process_one(document_id)

        outcomes = await asyncio.gather(*(_bounded(document_id) for document_id in ids))

        successful = [o for o in outcomes if isinstance(o, EmbeddingRecord)]
        failed = [o for o in outcomes if isinstance(o, BatchFailure)]

        result = BatchResult(
            successful=successful,
            failed=failed,
            total_processed=len(ids),
        )
        logger.info(
            "Batch embedding finished: %d processed, %d succeeded, %d failed",
            result.total_processed,
            result.success_count,
            result.failure_count,
        )
        return result

    async def _process_one(self, document_id: int) -> Outcome:
        try:
            async with self._store_scope() as store:
                return await store.ensure_embedding(document_id)
        except EmbeddingServiceError as exc:
            logger.warning(
                "Failed to create embedding for document %d: %s",
                document_id,
                exc,
            )
            return self._failure(document_id, exc)
        except Exception as exc:
            logger.exception("Unexpected error embedding document %d", document_id)
            return self._failure(document_id, exc)

    @staticmethod
    def _failure(document_id: int, exc: Exception) -> BatchFailure:
        # describe_error hides the message of anything outside the taxonomy
        return BatchFailure(
            document_id=document_id,
            reason=describe_error(exc)["detail"],
            error_type=type(exc).__name__,
        )
