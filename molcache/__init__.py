"""Local cache for compound records fetched from PubChem."""

from .core import (
    FORMAT_VERSION,
    PROPERTY_NAMES,
    CacheError,
    CompoundCache,
    CompoundProperties,
    DeserializationError,
    Namespace,
    SerCompound,
    SerializationError,
)
from .parallel import CompoundFetcher, FetchOutcome, InvalidKeyError, InvalidProviderError, ProviderExecutor

__version__ = "0.1.0"

__all__ = [
    "CacheError",
    "CompoundCache",
    "CompoundFetcher",
    "CompoundProperties",
    "DeserializationError",
    "FetchOutcome",
    "FORMAT_VERSION",
    "InvalidKeyError",
    "InvalidProviderError",
    "Namespace",
    "PROPERTY_NAMES",
    "ProviderExecutor",
    "SerCompound",
    "SerializationError",
]
