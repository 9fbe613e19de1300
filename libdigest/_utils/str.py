from __future__ import annotations

from typing import Union

from libdigest.exc import ExpectedStringError

StrOrBytes = Union[str, bytes]

# characters that aren't allowed in uid or realm fields.
INVALID_FIELD_CHARS = ":\n\r\t\x00"

MAX_FIELD_SIZE = 255

_ASCII_TEST_BYTES = b"\x00\n aA:#!\x7f"
_ASCII_TEST_UNICODE = _ASCII_TEST_BYTES.decode("ascii")


def as_str(value: StrOrBytes, encoding: str = "utf-8") -> str:
    return value.decode(encoding) if isinstance(value, bytes) else value


def is_ascii_codec(codec: str) -> bool:
    """Test if codec is compatible with 7-bit ascii (e.g. latin-1, utf-8; but not utf-16)"""
    return _ASCII_TEST_UNICODE.encode(codec) == _ASCII_TEST_BYTES


def check_field(value: object, param: str = "field") -> str:
    """Validate a uid / realm field, returning it unchanged.

    :raises ExpectedStringError: if value is not a string.
    :raises ValueError:
        if value is empty, longer than 255 characters,
        or contains a forbidden character.
    """
    if not isinstance(value, str):
        raise ExpectedStringError(value, param)
    if not value:
        raise ValueError(f"{param} must not be empty")
    if len(value) > MAX_FIELD_SIZE:
        raise ValueError(
            f"{param} must be at most {MAX_FIELD_SIZE} characters: {value!r}"
        )
    if any(c in INVALID_FIELD_CHARS for c in value):
        raise ValueError(f"{param} contains invalid characters: {value!r}")
    return value
