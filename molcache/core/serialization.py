"""JSON document format for persisted compound caches.

Layout::

    {
      "cache": [
        {"identifier": "water", "namespace": "name", "properties": {...}},
        ...
      ],
      "format_version": 1
    }

Documents without ``format_version`` are the legacy unversioned layout, which
is otherwise identical to version 1.
"""

import json
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from .key import SerCompound
from .record import CompoundProperties

FORMAT_VERSION = 1
SUPPORTED_VERSIONS = (FORMAT_VERSION,)


class CacheError(Exception):
    """Base class for compound cache errors."""
    pass


class DeserializationError(CacheError, ValueError):
    """Persisted cache data is malformed or incompatible."""

    def __init__(self, message: str, entry: Optional[int] = None):
        if entry is not None:
            message = f"Entry {entry}: {message}"
        super().__init__(message)
        self.entry = entry


class SerializationError(CacheError):
    """A cache entry could not be encoded."""
    pass


def encode_entry(key: SerCompound, record: CompoundProperties) -> Dict[str, Any]:
    """Encode one key/record pair as a JSON-compatible dict."""
    try:
        properties = record.model_dump(mode="json")
    except PydanticSerializationError as e:
        raise SerializationError(f"Cannot encode record for {key}: {e}") from e
    return {**key.to_dict(), "properties": properties}


def dumps(entries: Iterable[Tuple[SerCompound, CompoundProperties]]) -> str:
    """Serialize entries to a JSON document.

    Entries are ordered by key and object keys are sorted, so equal caches
    always produce identical text.
    """
    encoded = [encode_entry(key, record) for key, record in sorted(entries, key=lambda kv: kv[0].sort_key)]
    document = {"format_version": FORMAT_VERSION, "cache": encoded}
    try:
        return json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False, allow_nan=False) + "\n"
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Cannot encode cache document: {e}") from e


def decode_entry(entry: Any, index: int) -> Tuple[SerCompound, CompoundProperties]:
    """Decode one entry of the ``cache`` array."""
    if not isinstance(entry, dict):
        raise DeserializationError(f"expected an object, got {type(entry).__name__}", entry=index)
    try:
        key = SerCompound.model_validate(
            {"namespace": entry.get("namespace"), "identifier": entry.get("identifier")}
        )
    except ValidationError as e:
        raise DeserializationError(f"invalid key: {e}", entry=index) from e

    properties = entry.get("properties", {})
    if not isinstance(properties, dict):
        raise DeserializationError(f"`properties` of {key} is not an object", entry=index)
    try:
        record = CompoundProperties.model_validate(properties)
    except ValidationError as e:
        raise DeserializationError(f"invalid properties for {key}: {e}", entry=index) from e
    return key, record


def loads(data: Union[str, bytes]) -> Dict[SerCompound, CompoundProperties]:
    """Parse a JSON document into a key -> record mapping.

    Bytes are decoded as UTF-8 (a leading BOM is accepted).

    Raises:
        DeserializationError: If the document is not valid JSON, has an
            unsupported version, or any entry fails to decode.
    """
    try:
        text = data.decode("utf-8-sig") if isinstance(data, (bytes, bytearray)) else data
    except UnicodeDecodeError as e:
        raise DeserializationError(f"Document is not valid UTF-8 ({e})") from e
    if not isinstance(text, str):
        raise DeserializationError(f"Expected str or bytes, got {type(text).__name__}")
    try:
        root = json.loads(text)
    except json.JSONDecodeError as e:
        raise DeserializationError(f"Could not parse JSON ({e})") from e
    except RecursionError as e:
        raise DeserializationError("Document is nested too deeply") from e

    if not isinstance(root, dict):
        raise DeserializationError("The root JSON value is not an object")

    version = root.get("format_version", FORMAT_VERSION)
    if isinstance(version, bool) or version not in SUPPORTED_VERSIONS:
        raise DeserializationError(
            f"Unsupported format_version {version!r} (supported: {', '.join(map(str, SUPPORTED_VERSIONS))})"
        )

    if "cache" not in root:
        raise DeserializationError("`cache` could not be found in the root object")
    entries = root["cache"]
    if not isinstance(entries, list):
        raise DeserializationError("`cache` is not an array")

    mapping: Dict[SerCompound, CompoundProperties] = {}
    for index, entry in enumerate(entries):
        try:
            key, record = decode_entry(entry, index)
        except RecursionError as e:
            raise DeserializationError("properties are nested too deeply", entry=index) from e
        if key in mapping:
            raise DeserializationError(f"duplicate key {key}", entry=index)
        mapping[key] = record
    return mapping
