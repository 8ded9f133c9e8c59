import os
from typing import IO, Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import pandas as pd

from .key import SerCompound
from .record import PUBCHEM_NAMES, CompoundProperties
from .serialization import dumps, loads

PathOrStream = Union[str, "os.PathLike[str]", IO[str], IO[bytes]]


class CompoundCache:
    """In-memory cache of compound records keyed by :class:`SerCompound`.

    The cache never contacts the provider: a caller looks a key up with
    :meth:`get`, fetches on a miss and stores the result with :meth:`insert`.
    Persistence is explicit through :meth:`save` and :meth:`load`.

    Not thread-safe. Wrap the whole instance in a lock when sharing it.
    """

    def __init__(self):
        self.cache: Dict[SerCompound, CompoundProperties] = {}

    @classmethod
    def from_mapping(cls, mapping: Mapping[SerCompound, Any]) -> "CompoundCache":
        cache = cls()
        for key, record in mapping.items():
            cache.insert(key, record)
        return cache

    @staticmethod
    def _check_key(key: Any) -> SerCompound:
        if not isinstance(key, SerCompound):
            raise TypeError(f"Cache keys must be SerCompound, got {type(key).__name__}")
        return key

    def get(self, key: SerCompound) -> Optional[CompoundProperties]:
        """Get a copy of the cached record, or None on a miss."""
        record = self.cache.get(self._check_key(key))
        return None if record is None else record.clone()

    def insert(self, key: SerCompound, record: Union[CompoundProperties, Mapping[str, Any]]) -> Optional[CompoundProperties]:
        """Store a record, replacing any existing one.

        Args:
            key: Compound key
            record: Record to store; mappings are validated into CompoundProperties

        Raises:
            ValidationError: If the record holds values that cannot be saved

        Returns:
            The record previously stored under ``key``, if any
        """
        self._check_key(key)
        if isinstance(record, CompoundProperties):
            # revalidate; model_construct() bypasses field and extra checks
            record = CompoundProperties.model_validate(record.model_dump())
        elif isinstance(record, Mapping):
            record = CompoundProperties.model_validate(record)
        else:
            raise TypeError(f"Records must be CompoundProperties, got {type(record).__name__}")
        previous = self.cache.get(key)
        self.cache[key] = record.clone()
        return previous

    def remove(self, key: SerCompound) -> Optional[CompoundProperties]:
        """Remove and return the record for ``key``; None if it was absent."""
        return self.cache.pop(self._check_key(key), None)

    def __len__(self) -> int:
        return len(self.cache)

    def is_empty(self) -> bool:
        return not self.cache

    def __contains__(self, key: object) -> bool:
        return key in self.cache

    def __iter__(self) -> Iterator[SerCompound]:
        return iter(self.keys())

    def keys(self) -> List[SerCompound]:
        return sorted(self.cache)

    def items(self) -> List[Tuple[SerCompound, CompoundProperties]]:
        return [(key, self.cache[key].clone()) for key in self.keys()]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(entries={len(self)})"

    def serialize(self) -> str:
        """Encode the cache as a JSON document."""
        return dumps(self.cache.items())

    @classmethod
    def deserialize(cls, data: Union[str, bytes]) -> "CompoundCache":
        """Build a cache from a JSON document; see :func:`serialization.loads`."""
        cache = cls()
        cache.cache = loads(data)
        return cache

    @classmethod
    def load(cls, source: PathOrStream) -> "CompoundCache":
        """Load a cache from a file path or a readable text or binary stream.

        Raises:
            OSError: If the source cannot be read
            DeserializationError: If the data is not a valid cache document
        """
        if hasattr(source, "read"):
            data = source.read()
        else:
            with open(source, "rb") as f:
                data = f.read()
        return cls.deserialize(data)

    def save(self, destination: PathOrStream) -> None:
        """Write the cache to a file path or writable text stream.

        The document is encoded before the destination is opened, so an
        encoding failure leaves an existing file untouched.

        Raises:
            OSError: If the destination cannot be written
            SerializationError: If a record cannot be encoded
        """
        text = self.serialize()
        if hasattr(destination, "write"):
            destination.write(text)
        else:
            with open(destination, "w", encoding="utf-8", newline="\n") as f:
                f.write(text)

    def to_dataframe(self) -> pd.DataFrame:
        """Tabulate records, one row per key, indexed by namespace and identifier."""
        rows = [record.to_dict() for _, record in self.items()]
        index = pd.MultiIndex.from_tuples(
            [key.sort_key for key in self.keys()],
            names=["namespace", "identifier"],
        )
        if not rows:
            return pd.DataFrame(columns=list(PUBCHEM_NAMES), index=index)
        df = pd.DataFrame(rows, index=index)
        extra = [c for c in df.columns if c not in PUBCHEM_NAMES]
        return df[list(PUBCHEM_NAMES) + extra]
