"""Literal JSON string-field extraction.

This is deliberately not a JSON parser. The value for ``key`` is whatever
sits between the first ``"<key>": "`` and the next double quote. Escapes,
nesting, other spacing and non-string values are not understood and simply
come back as "not found".
"""

from sentence_server.exceptions import ProtocolError

from .constants import MAX_VALUE_LENGTH, VALUE_ENCODING, VALUE_ERRORS

_QUOTE = 0x22


def field_pattern(key: str) -> bytes:
    """Return the byte pattern that introduces the value of ``key``"""
    if '"' in key:
        raise ProtocolError(f"JSON key must not contain a double quote: {key!r}")
    return b'"' + key.encode(VALUE_ENCODING, VALUE_ERRORS) + b'": "'


def extract_string_field(
    buffer: bytes, key: str, capacity: int = MAX_VALUE_LENGTH
) -> str | None:
    """Extract the string value of ``key`` from a JSON-looking buffer.

    Args:
        buffer: Raw bytes, usually the request body
        key: Field name, must not contain ``"``
        capacity: Size of the destination including a terminator, so values
            of ``capacity`` bytes or more are rejected

    Returns:
        The value decoded with ``surrogateescape``, or None when the pattern
        or the closing quote is missing, or the value does not fit.
    """
    pattern = field_pattern(key)

    start = buffer.find(pattern)
    if start < 0:
        return None
    start += len(pattern)

    # Forward scan for the closing quote; no escape handling.
    end = start
    limit = len(buffer)
    while end < limit and buffer[end] != _QUOTE:
        end += 1
    if end >= limit:
        return None

    if end - start >= capacity:
        return None

    return buffer[start:end].decode(VALUE_ENCODING, VALUE_ERRORS)
