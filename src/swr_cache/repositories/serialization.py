"""JSON encoding shared by the mirror backends."""

import json
from typing import Any

from pydantic_core import PydanticSerializationError, to_json

from swr_cache.errors import StorageError


def dump_payload(data: Any) -> bytes:
    """Serialize a payload (plain JSON, pydantic models, datetimes) to JSON bytes.

    Raises:
        StorageError: If the payload is not serializable
    """
    try:
        return to_json(data)
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise StorageError(f"Payload is not serializable: {e}") from e


def load_payload(raw: bytes | str) -> Any:
    """Decode JSON bytes written by dump_payload.

    Raises:
        StorageError: If the stored bytes are not valid JSON
    """
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StorageError(f"Mirror record is corrupt: {e}") from e
