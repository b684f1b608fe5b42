"""Typed decoding of appliance response bodies.

The appliance answers with JSON arrays of flat records whose values are
nominally strings. ``field_str`` is the one place where a record value is
turned into a Python value: absent, empty and wrongly-typed values are all
reported as missing.
"""
import json
from typing import Any, Optional, Union

from ..errors import DecodeError


def decode_records(body: Union[bytes, str, None]) -> list[dict[str, Any]]:
    """Parse a response body into a list of records.

    Args:
        body: Raw response body

    Returns:
        List of records. An empty body yields an empty list, a single JSON
        object yields a one-record list.

    Raises:
        DecodeError: If the body is not JSON or not made of objects
    """
    if body is None:
        return []
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Response body is not UTF-8: {e}") from e
    if not body.strip():
        return []

    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Response body is not JSON: {e.msg}") from e

    if isinstance(data, dict):
        return [data]
    if not isinstance(data, list):
        raise DecodeError(f"Expected a JSON array of records, got {type(data).__name__}")

    for index, record in enumerate(data):
        if not isinstance(record, dict):
            raise DecodeError(
                f"Record {index} is a {type(record).__name__}, expected an object"
            )
    return data


def field_str(record: Optional[dict[str, Any]], key: str) -> Optional[str]:
    """Return a record field as a non-empty string, or None."""
    if not record:
        return None
    value = record.get(key)
    if isinstance(value, str) and value != "":
        return value
    return None


def first_field(records: list[dict[str, Any]], key: str) -> Optional[str]:
    """``field_str`` applied to the first record, if any."""
    if not records:
        return None
    return field_str(records[0], key)


def string_fields(record: dict[str, Any]) -> dict[str, str]:
    """Keep only the usable string fields of a record."""
    result = {}
    for key in record:
        value = field_str(record, key)
        if value is not None:
            result[key] = value
    return result
