"""External services used by the pipeline."""

from .credentials import KeyProvider, KeySelector, KeyStore, settings_key_provider
from .gemini_client import GenerationClient, parse_size
from .product_fetcher import ProductImageFetcher
from .resilient import classify_backend_error, invoke_with_retry

__all__ = [
    "KeyProvider",
    "KeySelector",
    "KeyStore",
    "settings_key_provider",
    "GenerationClient",
    "parse_size",
    "ProductImageFetcher",
    "classify_backend_error",
    "invoke_with_retry",
]
