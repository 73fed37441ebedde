import asyncio
import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from doc_embeddings.config import settings
from doc_embeddings.core.errors import DegradedProviderError, EmbeddingServiceError
from doc_embeddings.embeddings.provider import EmbeddingProvider

SAMPLES = [
    "This is a simple test sentence",
    "Hello world! How are you today? This is a longer sentence with more content to embed.",
]


async def main():
    model = sys.argv[1] if len(sys.argv) > 1 else None
    provider = EmbeddingProvider(model=model)

    print(f"Endpoint: {provider.endpoint}")
    print(f"Model: {provider.model} (expected dimensions: {settings.embedding_dimensions})")

    healthy = True
    for text in SAMPLES:
        print(f"\nInput: {text!r}")
        try:
            vector = await provider.generate(text)
        except DegradedProviderError as e:
            healthy = False
            print(f"  DEGRADED: {e}")
            continue
        except EmbeddingServiceError as e:
            healthy = False
            print(f"  FAILED ({type(e).__name__}): {e}")
            continue

        non_zero = sum(1 for v in vector if v != 0)
        print(f"  dimensions={len(vector)} non-zero={non_zero}/{len(vector)}")
        print(f"  first values: {[round(v, 4) for v in vector[:5]]}")
        if len(vector) != settings.embedding_dimensions:
            healthy = False
            print("  WARNING: dimension mismatch with EMBEDDING_DIMENSIONS")

    sys.exit(0 if healthy else 1)

if __name__ == "__main__":
    asyncio.run(main())
