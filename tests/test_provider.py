"""
EmbeddingProvider Tests

Exercises the HTTP client against httpx.MockTransport:
- Payload shape and whitespace trimming
- Transport, status and payload failures
- Degraded (all-zero) vector detection
- Multi-input batching
"""

import json

import httpx
import pytest

from doc_embeddings.core.errors import (
    DegradedProviderError,
    ProviderResponseInvalid,
    ProviderStatusError,
    ProviderUnavailable,
    ValidationError,
)
from doc_embeddings.embeddings.provider import EmbeddingProvider, is_zero_vector

ENDPOINT = "https://embeddings.test/v1/embeddings"


def make_provider(handler, **kwargs):
    return EmbeddingProvider(
        api_key="test-key",
        model="test-model",
        endpoint=ENDPOINT,
        timeout=5.0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def ok(*vectors):
    return httpx.Response(
        200,
        json={
            "object": "list",
            "data": [
                {"object": "embedding", "embedding": v, "index": i}
                for i, v in enumerate(vectors)
            ],
            "model": "test-model",
        },
    )


@pytest.mark.asyncio
async def test_generate_sends_trimmed_text():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return ok([0.1, 0.2, 0.3])

    provider = make_provider(handler)
    vector = await provider.generate("  hello world \n")

    assert vector == [0.1, 0.2, 0.3]
    assert len(seen) == 1
    body = json.loads(seen[0].content)
    assert body == {"model": "test-model", "input": "hello world"}
    assert seen[0].headers["Authorization"] == "Bearer test-key"
    assert str(seen[0].url) == ENDPOINT


@pytest.mark.asyncio
async def test_integer_components_are_converted_to_float():
    provider = make_provider(lambda request: ok([1, 0, 2]))
    vector = await provider.generate("text")
    assert vector == [1.0, 0.0, 2.0]
    assert all(isinstance(x, float) for x in vector)


@pytest.mark.asyncio
async def test_empty_text_rejected_without_calling_provider():
    calls = []

    def handler(request):
        calls.append(request)
        return ok([0.1])

    provider = make_provider(handler)

    with pytest.raises(ValidationError):
        await provider.generate("   ")
    assert calls == []


@pytest.mark.asyncio
async def test_transport_failure_is_provider_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = make_provider(handler)

    with pytest.raises(ProviderUnavailable) as excinfo:
        await provider.generate("text")
    assert not isinstance(excinfo.value, ProviderStatusError)
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_non_success_status_is_provider_status_error():
    provider = make_provider(lambda request: httpx.Response(503, json={"error": "busy"}))

    with pytest.raises(ProviderStatusError) as excinfo:
        await provider.generate("text")
    assert excinfo.value.status_code == 503
    # Status failures are still "unavailable" for callers that don't care
    assert isinstance(excinfo.value, ProviderUnavailable)


@pytest.mark.asyncio
async def test_empty_data_is_response_invalid():
    provider = make_provider(lambda request: httpx.Response(200, json={"data": []}))

    with pytest.raises(ProviderResponseInvalid):
        await provider.generate("text")


@pytest.mark.asyncio
async def test_missing_data_field_is_response_invalid():
    provider = make_provider(lambda request: httpx.Response(200, json={"result": {}}))

    with pytest.raises(ProviderResponseInvalid):
        await provider.generate("text")


@pytest.mark.asyncio
async def test_non_json_body_is_response_invalid():
    provider = make_provider(lambda request: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(ProviderResponseInvalid):
        await provider.generate("text")


@pytest.mark.asyncio
async def test_all_zero_vector_is_degraded():
    provider = make_provider(lambda request: ok([0.0] * 8))

    with pytest.raises(DegradedProviderError):
        await provider.generate("text")


@pytest.mark.asyncio
async def test_dimension_mismatch_is_response_invalid():
    provider = make_provider(lambda request: ok([0.1, 0.2]), expected_dimensions=4)

    with pytest.raises(ProviderResponseInvalid):
        await provider.generate("text")


@pytest.mark.asyncio
async def test_generate_many_batches_and_keeps_order():
    requests = []

    def handler(request):
        body = json.loads(request.content)
        inputs = body["input"] if isinstance(body["input"], list) else [body["input"]]
        requests.append(inputs)
        return ok(*[[float(len(text)), 1.0] for text in inputs])

    provider = make_provider(handler)
    vectors = await provider.generate_many(["a", "bb", "ccc"], batch_size=2)

    assert requests == [["a", "bb"], ["ccc"]]
    assert vectors == [[1.0, 1.0], [2.0, 1.0], [3.0, 1.0]]


@pytest.mark.asyncio
async def test_generate_many_rejects_count_mismatch():
    provider = make_provider(lambda request: ok([0.1, 0.2]))

    with pytest.raises(ProviderResponseInvalid):
        await provider.generate_many(["one", "two"])


@pytest.mark.asyncio
async def test_generate_many_empty_input():
    provider = make_provider(lambda request: ok([0.1]))
    assert await provider.generate_many([]) == []


def test_is_zero_vector():
    assert is_zero_vector([0.0, 0, -0.0])
    assert not is_zero_vector([0.0, 1e-9])
