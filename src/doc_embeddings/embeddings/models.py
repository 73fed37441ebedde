"""
Embedding Data Models

This module defines the canonical, session-independent data models that
flow between the embedding components:

- DocumentSnapshot: the read-only view of a document
- EmbeddingRecord: the single stored embedding of a document
- SimilarityResult: a ranked, ephemeral search hit
- BatchResult / BatchFailure: the outcome of a batch request
- IngestionResult: the outcome of the creation-time augmentation
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ConfigDict, computed_field, field_validator


class DocumentSnapshot(BaseModel):
    """
    Immutable view of a document as seen by the embedding subsystem.
    """

    id: int = Field(..., ge=1)
    content: str
    user_id: Optional[int] = None
    is_approved: bool = False
    is_active: bool = True
    is_deleted: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,
    )


class EmbeddingRecord(BaseModel):
    """
    The single current vector representation of one document.
    """

    id: Optional[int] = None
    document_id: int = Field(..., ge=1)
    embedding: List[float] = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    text_content: str = Field(
        ...,
        description="Exact text that was embedded, kept for auditing.",
    )
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,
    )

    @field_validator("embedding", mode="before")
    @classmethod
    def _coerce_vector(cls, value: Any) -> Any:
        # pgvector hands back numpy arrays
        if hasattr(value, "tolist"):
            return value.tolist()
        return value


class SimilarityResult(BaseModel):
    """
    A document ranked against a query vector. Never persisted.
    """

    document_id: int
    content: str
    text_content: str
    similarity: float = Field(..., ge=0.0, le=1.0)
    is_approved: bool = False
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class BatchFailure(BaseModel):
    """
    One document that could not be embedded during a batch request.
    """

    document_id: int
    reason: str
    error_type: str

    model_config = ConfigDict(extra="forbid", frozen=True)


class BatchResult(BaseModel):
    """
    Best-effort outcome of a batch embedding request.

    ``successful`` follows the input order of the IDs that succeeded.
    """

    successful: List[EmbeddingRecord] = Field(default_factory=list)
    failed: List[BatchFailure] = Field(default_factory=list)
    total_processed: int = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success_count(self) -> int:
        return len(self.successful)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failure_count(self) -> int:
        return len(self.failed)


class IngestionResult(BaseModel):
    """
    A freshly created document together with related prior documents.
    """

    document: DocumentSnapshot
    related_documents: List[SimilarityResult] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def related_count(self) -> int:
        return len(self.related_documents)
