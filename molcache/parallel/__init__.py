from .executor import FetchOutcome, Provider, ProviderExecutor, call_provider
from .fetcher import CompoundFetcher, InvalidKeyError, InvalidProviderError

__all__ = [
    "CompoundFetcher",
    "FetchOutcome",
    "InvalidKeyError",
    "InvalidProviderError",
    "Provider",
    "ProviderExecutor",
    "call_provider",
]
