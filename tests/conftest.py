"""
Shared fixtures and in-memory doubles for the embedding components.

The doubles implement the same protocols as the PostgreSQL stores and the
HTTP provider, so the components can be exercised without a database or
network access.
"""

import asyncio
import math
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

import pytest

from doc_embeddings.core.errors import EmbeddingConflictError, ProviderUnavailable
from doc_embeddings.embeddings.models import DocumentSnapshot, EmbeddingRecord
from doc_embeddings.embeddings.search import SimilaritySearchEngine
from doc_embeddings.embeddings.store import EmbeddingStore


VOCABULARY = ["alpha", "beta", "gamma", "delta", "epsilon"]


def cosine_similarity(a: List[float], b: List[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class KeywordEmbedder:
    """
    Deterministic bag-of-words embedder.

    One dimension per vocabulary word plus one for every other token, so
    any non-empty text yields a non-zero vector.
    """

    model = "test-keyword-model"

    def __init__(self, delay: float = 0.0) -> None:
        self.calls: List[str] = []
        self.delay = delay
        self.active = 0
        self.max_active = 0

    async def generate(self, text: str) -> List[float]:
        self.calls.append(text)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            tokens = text.lower().split()
            vector = [float(tokens.count(word)) for word in VOCABULARY]
            vector.append(float(sum(1 for t in tokens if t not in VOCABULARY)))
            return vector
        finally:
            self.active -= 1


class FailingEmbedder:
    """Provider double that always fails the remote call."""

    model = "test-failing-model"

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error or ProviderUnavailable("provider offline")
        self.calls = 0

    async def generate(self, text: str) -> List[float]:
        self.calls += 1
        raise self.error


class InMemoryDocuments:
    def __init__(self) -> None:
        self.docs: Dict[int, DocumentSnapshot] = {}

    def add(self, document_id: int, content: str, **flags) -> DocumentSnapshot:
        flags.setdefault("is_approved", True)
        doc = DocumentSnapshot(id=document_id, content=content, **flags)
        self.docs[document_id] = doc
        return doc

    async def get_document_by_id(self, document_id: int) -> Optional[DocumentSnapshot]:
        return self.docs.get(document_id)


class InMemoryVectorStore:
    """Vector store double enforcing one embedding per document."""

    def __init__(self, documents: InMemoryDocuments) -> None:
        self.documents = documents
        self.records: Dict[int, EmbeddingRecord] = {}
        self.nearest_calls: List[dict] = []
        self.commits = 0
        self.rollbacks = 0

    async def get_embedding(self, document_id: int) -> Optional[EmbeddingRecord]:
        return self.records.get(document_id)

    async def add_embedding(self, document_id, embedding, model, text_content):
        if document_id in self.records:
            raise EmbeddingConflictError(document_id)
        record = EmbeddingRecord(
            id=len(self.records) + 1,
            document_id=document_id,
            embedding=embedding,
            model=model,
            text_content=text_content,
        )
        self.records[document_id] = record
        return record

    async def nearest(self, query_embedding, k, exclude_document_id=None, require_approved=False):
        self.nearest_calls.append(
            {
                "k": k,
                "exclude_document_id": exclude_document_id,
                "require_approved": require_approved,
            }
        )
        rows = []
        for document_id, record in self.records.items():
            doc = self.documents.docs.get(document_id)
            if doc is None or doc.is_deleted or not doc.is_active:
                continue
            if require_approved and not doc.is_approved:
                continue
            if document_id == exclude_document_id:
                continue
            score = cosine_similarity(query_embedding, record.embedding)
            rows.append((doc, record.text_content, score))

        rows.sort(key=lambda row: 1 - row[2])
        return rows[:k]

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


def scope_for(store: EmbeddingStore):
    """Build a store_scope factory that always yields the same store."""

    @asynccontextmanager
    async def _scope():
        yield store

    return _scope


# ---------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------

@pytest.fixture
def documents():
    return InMemoryDocuments()


@pytest.fixture
def vectors(documents):
    return InMemoryVectorStore(documents)


@pytest.fixture
def embedder():
    return KeywordEmbedder()


@pytest.fixture
def store(documents, vectors, embedder):
    return EmbeddingStore(documents, vectors, embedder)


@pytest.fixture
def engine(embedder, vectors):
    return SimilaritySearchEngine(embedder, vectors, max_limit=50, max_query_length=1000)
