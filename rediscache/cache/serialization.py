"""JSON serialization for cached values.

Values are stored as UTF-8 encoded JSON. pydantic handles the encoding
so models, dataclasses, datetimes and UUIDs round-trip without custom
encoders, and typed reads are validated against the requested type.
"""

from functools import lru_cache
from typing import Any, Optional, Type, TypeVar, Union

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, from_json, to_json

from rediscache.cache.exceptions import DeserializationError, SerializationError

T = TypeVar("T")


@lru_cache(maxsize=256)
def _adapter(model: Any) -> TypeAdapter:
    return TypeAdapter(model)


def serialize(value: Any) -> bytes:
    """
    Encode a value as UTF-8 JSON bytes.

    Args:
        value: Any JSON-compatible value, pydantic model or dataclass

    Returns:
        Encoded payload

    Raises:
        SerializationError: If the value cannot be represented as JSON

    Example:
        >>> serialize({"id": 1})
        b'{"id":1}'
    """
    try:
        return to_json(value)
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise SerializationError(
            f"Unable to serialize value: {e}",
            value_type=type(value).__name__,
        ) from e


def deserialize(
    payload: Optional[Union[bytes, str]],
    model: Optional[Type[T]] = None,
    key: Optional[str] = None,
) -> Any:
    """
    Decode a stored payload, optionally validating it against a type.

    A missing payload decodes to None, the same result get() gives for
    an absent key.

    Args:
        payload: Bytes read from Redis, or None
        model: Type to validate into (model class, list[int], ...);
            plain JSON types when omitted
        key: Key the payload came from, for error reporting

    Returns:
        Decoded value, or None when payload is None

    Raises:
        DeserializationError: If the payload is not valid JSON for the type
    """
    if payload is None:
        return None

    try:
        if model is None:
            return from_json(payload)
        return _adapter(model).validate_json(payload)
    except (ValidationError, ValueError) as e:
        raise DeserializationError(str(e), key=key) from e
