import asyncio
import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from doc_embeddings.config import settings
from doc_embeddings.core.logging_setup import configure_logging
from doc_embeddings.db import VectorStore, init_db, session_scope
from doc_embeddings.service import DocumentEmbeddingService


async def main():
    configure_logging()

    print("Ensuring schema...")
    await init_db()

    service = DocumentEmbeddingService()
    total_ok = 0
    total_failed = 0
    last_id = 0

    while True:
        # 1. Find documents still missing an embedding
        async with session_scope() as session:
            store = VectorStore(session)
            pending = await store.missing_document_ids(
                limit=settings.batch_max_size,
                after_id=last_id,
            )

        if not pending:
            break

        # Failed documents stay missing; keyset paging moves past them
        last_id = pending[-1]
        print(f"Embedding documents {pending[0]}..{pending[-1]} ({len(pending)})...")

        # 2. Embed them as one batch
        result = await service.generate_batch(pending)
        total_ok += result.success_count
        total_failed += result.failure_count

        for failure in result.failed:
            print(f"  failed {failure.document_id}: {failure.error_type}: {failure.reason}")

    async with session_scope() as session:
        stats = await VectorStore(session).get_stats()

    print(f"Done. Created or confirmed {total_ok}, failed {total_failed}.")
    print(
        f"Embeddings stored: {stats['total_embeddings']}, "
        f"documents still missing: {stats['missing_documents']}"
    )

if __name__ == "__main__":
    asyncio.run(main())
