"""
Error Taxonomy

This module defines every exception raised by the embedding subsystem,
rooted at a single base class so callers can catch the whole family.

Design Goals
------------
- One exception type per distinguishable failure condition
- Original causes preserved via exception chaining
- A deterministic, machine-readable description for callers that map
  errors onto user-visible responses, without leaking internals
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional


class EmbeddingServiceError(RuntimeError):
    """Base class for all embedding subsystem failures."""


# ---------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------

class ValidationError(EmbeddingServiceError, ValueError):
    """Raised when a caller passes a malformed query, limit, threshold or batch."""


# ---------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------

class DocumentNotFound(EmbeddingServiceError):
    """Raised when a document ID does not resolve to a document."""

    def __init__(self, document_id: int) -> None:
        super().__init__(f"Document with ID {document_id} not found")
        self.document_id = document_id


# ---------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------

class ProviderError(EmbeddingServiceError):
    """Base class for inference provider failures."""


class ProviderUnavailable(ProviderError):
    """Raised when the remote embedding call cannot be completed."""


class ProviderStatusError(ProviderUnavailable):
    """Raised when the provider answers with a non-success HTTP status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderResponseInvalid(ProviderError):
    """Raised when the provider call succeeds but returns no usable data."""


class DegradedProviderError(ProviderError):
    """Raised when the provider returns a well-formed but all-zero vector."""


# ---------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------

class VectorStoreError(EmbeddingServiceError):
    """Raised when the vector store cannot complete an operation."""


class EmbeddingConflictError(VectorStoreError):
    """Raised when an embedding already exists for the document being inserted."""

    def __init__(self, document_id: int) -> None:
        super().__init__(f"Embedding already exists for document {document_id}")
        self.document_id = document_id


# ---------------------------------------------------------------------
# Operation-level wrappers
# ---------------------------------------------------------------------

class EmbeddingGenerationFailed(EmbeddingServiceError):
    """Raised when generating or persisting a document embedding fails."""

    def __init__(self, document_id: int, cause: Exception) -> None:
        super().__init__(
            f"Failed to generate embedding for document {document_id}: {cause}"
        )
        self.document_id = document_id
        self.cause = cause


class SearchFailed(EmbeddingServiceError):
    """Raised when a similarity search cannot be completed."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"Failed to find similar documents: {cause}")
        self.cause = cause


# ---------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def error_kind(exc: BaseException) -> str:
    """
    Return the snake_case kind of an exception, e.g. ``document_not_found``.
    """
    return _CAMEL_BOUNDARY.sub("_", type(exc).__name__).lower()


def describe_error(exc: Exception) -> Dict[str, Any]:
    """
    Build a minimal, deterministic error payload.

    Subsystem errors expose their own message. Anything else is reported
    as a generic internal error so stack details never reach a client.

    Parameters
    ----------
    exc : Exception
        The exception to describe.

    Returns
    -------
    Dict[str, Any]
        ``{"error": <kind>, "detail": <message>}``, plus ``document_id``
        when the error is tied to a single document.
    """
    if not isinstance(exc, EmbeddingServiceError):
        return {
            "error": "internal_server_error",
            "detail": "Internal server error",
        }

    payload: Dict[str, Any] = {
        "error": error_kind(exc),
        "detail": str(exc),
    }

    document_id: Optional[int] = getattr(exc, "document_id", None)
    if document_id is not None:
        payload["document_id"] = document_id

    return payload
