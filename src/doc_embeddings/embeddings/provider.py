"""
Embedding Provider

This module implements the client for an OpenAI-compatible embeddings API
(Cloudflare Workers AI by default). It is responsible for:

- Turning one text, or a batch of texts, into embedding vectors
- Distinguishing transport, status and payload failures
- Rejecting all-zero vectors returned by a degraded provider

The class is stateless and safe to reuse across requests. It performs no
retries; retry policy belongs to the caller.
"""

from __future__ import annotations

from typing import List, Optional, Sequence
import logging
import httpx

from ..config import settings
from ..core.errors import (
    DegradedProviderError,
    ProviderResponseInvalid,
    ProviderStatusError,
    ProviderUnavailable,
    ValidationError,
)

logger = logging.getLogger("doc_embeddings.provider")


def is_zero_vector(vector: Sequence[float]) -> bool:
    """Return True when every component is exactly zero."""
    return all(component == 0 for component in vector)


class EmbeddingProvider:
    """
    Asynchronous embedding generator.

    This class performs no caching; persistent reuse of vectors is the job
    of EmbeddingStore.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        expected_dimensions: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize an EmbeddingProvider.

        Parameters
        ----------
        api_key : Optional[str]
            Optional override for the API key. Defaults to settings.embedding_api_key.

        model : Optional[str]
            Optional override for the model. Defaults to settings.embedding_model.

        endpoint : Optional[str]
            Full URL of the embeddings endpoint. Defaults to settings.embeddings_endpoint.

        timeout : Optional[float]
            HTTP timeout for each request. Defaults to settings.embedding_timeout.

        expected_dimensions : Optional[int]
            When set, vectors of any other length are rejected.

        transport : Optional[httpx.AsyncBaseTransport]
            Custom httpx transport, mainly for tests.
        """
        self.api_key = api_key or settings.embedding_api_key.get_secret_value()
        self.model = model or settings.embedding_model
        self.endpoint = endpoint or settings.embeddings_endpoint
        self.timeout = timeout if timeout is not None else settings.embedding_timeout
        self.expected_dimensions = expected_dimensions
        self._transport = transport

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(self, text: str) -> List[float]:
        """
        Generate the embedding for a single text.

        Parameters
        ----------
        text : str
            Input text. Leading and trailing whitespace is trimmed.

        Returns
        -------
        List[float]
            The embedding vector.

        Raises
        ------
        ValidationError
            If the text is empty after trimming.
        ProviderUnavailable
            If the remote call cannot be completed.
        ProviderResponseInvalid
            If the call succeeds but returns no usable data.
        DegradedProviderError
            If the returned vector is all zeros.
        """
        cleaned = self._clean(text)

        async with self._client() as client:
            embeddings = await self._request(client, [cleaned])

        return embeddings[0]

    async def generate_many(
        self,
        texts: Sequence[str],
        batch_size: int = 20,
    ) -> List[List[float]]:
        """
        Generate embeddings for several texts, in input order.

        Parameters
        ----------
        texts : Sequence[str]
            Input texts. Each is trimmed and must be non-empty.

        batch_size : int
            Maximum number of inputs per request.

        Returns
        -------
        List[List[float]]
            One vector per input text.
        """
        if not texts:
            return []

        cleaned = [self._clean(text) for text in texts]
        all_embeddings: List[List[float]] = []

        async with self._client() as client:
            for start in range(0, len(cleaned), batch_size):
                batch = cleaned[start : start + batch_size]
                all_embeddings.extend(await self._request(client, batch))

        return all_embeddings

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _clean(text: str) -> str:
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Text to embed must be a non-empty string.")
        return text.strip()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _request(
        self,
        client: httpx.AsyncClient,
        batch: List[str],
    ) -> List[List[float]]:
        # A single input is sent as a bare string, as OpenAI-style APIs expect
        payload = {
            "model": self.model,
            "input": batch[0] if len(batch) == 1 else batch,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            response = await client.post(
                self.endpoint,
                json=payload,
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Embedding request rejected: status=%d, batch size=%d",
                exc.response.status_code,
                len(batch),
            )
            raise ProviderStatusError(
                exc.response.status_code,
                f"Embedding provider returned HTTP {exc.response.status_code}",
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "Embedding request failed (%s): batch size=%d, error=%s",
                type(exc).__name__,
                len(batch),
                str(exc),
            )
            raise ProviderUnavailable(
                f"Embedding provider unreachable: {type(exc).__name__}"
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderResponseInvalid("Embedding response is not valid JSON.") from exc

        embeddings = self._extract_embeddings(data)

        if len(embeddings) != len(batch):
            raise ProviderResponseInvalid(
                f"Expected {len(batch)} embeddings, received {len(embeddings)}."
            )

        for index, vector in enumerate(embeddings):
            self._validate_vector(index, vector)

        return embeddings

    def _validate_vector(self, index: int, vector: List[float]) -> None:
        if self.expected_dimensions and len(vector) != self.expected_dimensions:
            raise ProviderResponseInvalid(
                f"Embedding at index {index} has {len(vector)} dimensions, "
                f"expected {self.expected_dimensions}."
            )

        if is_zero_vector(vector):
            logger.error(
                "Provider returned an all-zero vector (model=%s, index=%d)",
                self.model,
                index,
            )
            raise DegradedProviderError(
                f"Embedding provider returned an all-zero vector for model {self.model}."
            )

    @staticmethod
    def _extract_embeddings(data: object) -> List[List[float]]:
        """
        Parse and validate embedding output format.

        OpenAI-compatible providers return:
            { "data": [ {"embedding": [...], "index": 0}, ... ] }

        Raises
        ------
        ProviderResponseInvalid
            If the response carries no data or an unexpected structure.
        """
        if not isinstance(data, dict) or "data" not in data:
            raise ProviderResponseInvalid("Embedding response missing 'data' field.")

        records = data["data"]
        if not isinstance(records, list):
            raise ProviderResponseInvalid("'data' field must be a list.")

        if not records:
            raise ProviderResponseInvalid("No embedding data received from provider.")

        embeddings: List[List[float]] = []

        for index, record in enumerate(records):
            if not isinstance(record, dict) or "embedding" not in record:
                raise ProviderResponseInvalid(
                    f"Malformed embedding record at index {index}: {record!r}"
                )

            emb = record["embedding"]
            if (
                not isinstance(emb, list)
                or not emb
                or not all(
                    isinstance(x, (float, int)) and not isinstance(x, bool)
                    for x in emb
                )
            ):
                raise ProviderResponseInvalid(
                    f"Invalid embedding vector at index {index}: must be a non-empty float list."
                )

            embeddings.append([float(x) for x in emb])

        return embeddings
