from .base import EmbeddingProvider, GenerationProvider, SeriesDataProvider
from .calls import call_with_retry, invoke
from .openai_provider import OpenAIGenerationProvider, ProviderUnavailable

__all__ = [
    "EmbeddingProvider",
    "GenerationProvider",
    "SeriesDataProvider",
    "call_with_retry",
    "invoke",
    "OpenAIGenerationProvider",
    "ProviderUnavailable",
]
