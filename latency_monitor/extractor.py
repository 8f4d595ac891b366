"""Cheap field lookup in semi-structured (JSON-ish) messages.

These helpers pull a single value out of a message without parsing it. They
only handle the simple cases (a number, a bare word or a quoted string right
after a marker), which is all the depth stream needs.
"""

import re
from typing import Optional, Union

# Values are copied into a 16 byte buffer upstream, so 15 usable characters
MAX_FIELD_LEN = 15

_DELIMITERS = b',]}"'
_WHITESPACE = b" \t"
_NUMBER = re.compile(rb"(\d+)(?:\.(\d\d))?")

Buffer = Union[bytes, bytearray, memoryview, str]


def _as_bytes(value: Buffer) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def find_field(
    buffer: Buffer, marker: Buffer, max_len: int = MAX_FIELD_LEN
) -> Optional[bytes]:
    """Return the value following ``marker`` in ``buffer``.

    Args:
        buffer: Raw message
        marker: Literal text to search for, e.g. ``b'"E":'``
        max_len: Longer values are truncated to this many bytes

    Returns:
        The value bytes (possibly empty), or None if the marker is absent.
        A missing marker is routine: the message just doesn't carry the field.
    """
    data = _as_bytes(buffer)
    needle = _as_bytes(marker)

    start = data.find(needle)
    if start < 0:
        return None

    pos = start + len(needle)
    end = len(data)

    while pos < end and data[pos] in _WHITESPACE:
        pos += 1

    if pos >= end:
        return None

    quoted = data[pos] == ord('"')
    if quoted:
        pos += 1

    value_start = pos
    while pos < end:
        char = data[pos]
        if quoted:
            if char == ord('"'):
                break
            if char == ord("\\"):
                pos += 1  # skip escaped char
        elif char in _DELIMITERS:
            break
        pos += 1

    return data[value_start : min(pos, end)][:max_len]


def parse_int(text: Buffer) -> int:
    """Parse the leading digit run of ``text``.

    Raises:
        ValueError: If ``text`` doesn't start with a digit
    """
    match = _NUMBER.match(_as_bytes(text).strip())
    if not match:
        raise ValueError(f"not a number: {text!r}")
    return int(match.group(1))


def to_fixed_point_cents(text: Buffer) -> int:
    """Convert a decimal price like ``"123.45"`` to integer cents (12345).

    Only the first two fractional digits count. With fewer than two digits
    after the point the fractional part is taken as zero ("1.5" -> 100).

    Raises:
        ValueError: If ``text`` doesn't start with a digit
    """
    match = _NUMBER.match(_as_bytes(text).strip())
    if not match:
        raise ValueError(f"not a price: {text!r}")

    cents = int(match.group(1)) * 100
    if match.group(2):
        cents += int(match.group(2))

    return cents
