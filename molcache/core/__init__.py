from .cache import CompoundCache
from .key import Namespace, SerCompound
from .record import PROPERTY_NAMES, CompoundProperties
from .serialization import CacheError, DeserializationError, FORMAT_VERSION, SerializationError

__all__ = [
    "CacheError",
    "CompoundCache",
    "CompoundProperties",
    "DeserializationError",
    "FORMAT_VERSION",
    "Namespace",
    "PROPERTY_NAMES",
    "SerCompound",
    "SerializationError",
]
