"""
Cursor codec - opaque, stable encoding of primary-key tuples.

Wire format:
    Type[Length]:Payload(,Type[Length]:Payload)*

Length is the UTF-8 byte length of Payload; Length == -1 denotes NULL.
Composite keys are encoded in declared primary-key order.

Usage:
    cursor = encode_cursor([CursorValue("Int", 7), CursorValue("String", "héllo")])
    # 'Int[1]:7,String[6]:héllo'
    values = decode_cursor(cursor)
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .defs import FLOAT_KINDS, INTEGER_RANGES, Column, TypeKind
from .errors import CursorCodecError, TypeConversionError
from .types_map import TypeMapper

STRING_TAG = "String"
UUID_TAG = "Uuid"
INTEGER_TAGS = frozenset(kind.value for kind in INTEGER_RANGES)
CURSOR_TAGS = INTEGER_TAGS | {STRING_TAG, UUID_TAG}
BOOL_PAYLOADS = {"True": True, "False": False, "true": True, "false": False}

_LENGTH_PATTERN = re.compile(rb"-?[0-9]+")
_INTEGER_PATTERN = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class CursorValue:
    """One type-tagged element of a cursor."""
    tag: str
    value: Any  # int, str, uuid.UUID or None

    def __post_init__(self):
        if self.tag not in CURSOR_TAGS:
            raise CursorCodecError(f"unsupported cursor type '{self.tag}'")


def encode_cursor(values: Sequence[CursorValue]) -> str:
    """Encode a key tuple into a cursor string."""
    if not values:
        raise CursorCodecError("cannot encode an empty key")

    parts = []
    for item in values:
        if item.value is None:
            parts.append(f"{item.tag}[-1]:")
            continue
        payload = str(item.value)
        parts.append(f"{item.tag}[{len(payload.encode('utf-8'))}]:{payload}")
    return ",".join(parts)


def decode_cursor(text: str) -> list[CursorValue]:
    """
    Decode a cursor string into its key tuple.

    Raises:
        CursorCodecError: malformed cursor
    """
    if not text:
        raise CursorCodecError("empty cursor")

    data = text.encode("utf-8")
    size = len(data)
    pos = 0
    values: list[CursorValue] = []

    while True:
        # Type tag up to '['
        open_bracket = data.find(b"[", pos)
        if open_bracket == -1:
            raise CursorCodecError(f"expected '[' after type at byte {pos}")
        tag = data[pos:open_bracket].decode("utf-8", errors="replace")
        if tag not in CURSOR_TAGS:
            raise CursorCodecError(f"unknown type '{tag}'")

        # Length up to ']'
        close_bracket = data.find(b"]", open_bracket)
        if close_bracket == -1:
            raise CursorCodecError(f"expected ']' after length at byte {open_bracket}")
        length_bytes = data[open_bracket + 1:close_bracket]
        if not _LENGTH_PATTERN.fullmatch(length_bytes):
            raise CursorCodecError(f"invalid length '{length_bytes.decode('utf-8', errors='replace')}'")
        length = int(length_bytes)

        # Colon
        pos = close_bracket + 1
        if pos >= size or data[pos:pos + 1] != b":":
            raise CursorCodecError(f"expected ':' at byte {pos}")
        pos += 1

        # Payload
        if length == -1:
            values.append(CursorValue(tag, None))
        elif length < 0:
            raise CursorCodecError(f"invalid length {length}")
        else:
            payload = data[pos:pos + length]
            if len(payload) != length:
                raise CursorCodecError(f"payload truncated: expected {length} bytes, got {len(payload)}")
            pos += length
            try:
                decoded = payload.decode("utf-8")
            except UnicodeDecodeError as e:
                raise CursorCodecError(f"payload is not valid UTF-8: {e}") from e
            values.append(CursorValue(tag, _decode_payload(tag, decoded)))

        # Separator or end
        if pos == size:
            return values
        if data[pos:pos + 1] != b",":
            raise CursorCodecError(f"expected ',' at byte {pos}")
        pos += 1
        if pos == size:
            raise CursorCodecError("trailing ','")


def _decode_payload(tag: str, payload: str) -> Any:
    if tag in INTEGER_TAGS:
        if not _INTEGER_PATTERN.fullmatch(payload):
            raise CursorCodecError(f"invalid {tag} payload '{payload}'")
        value = int(payload)
        low, high = INTEGER_RANGES[TypeKind(tag)]
        if not low <= value <= high:
            raise CursorCodecError(f"{value} is out of range for {tag}")
        return value
    elif tag == UUID_TAG:
        try:
            return uuid.UUID(payload)
        except ValueError as e:
            raise CursorCodecError(f"invalid Uuid payload '{payload}'") from e
    return payload


# =============================================================================
# Row key <-> cursor helpers
# =============================================================================


def cursor_tag(column: Column) -> str:
    """Cursor tag for a primary-key column; non-integer, non-uuid keys travel as strings."""
    kind = column.type.kind
    if kind in INTEGER_RANGES:
        return kind.value
    elif kind == TypeKind.UUID:
        return UUID_TAG
    return STRING_TAG


def encode_key(columns: Sequence[Column], row: dict[str, Any], mapper: TypeMapper) -> str:
    """Encode the primary key of a row."""
    values = []
    for column in columns:
        value = row.get(column.name)
        tag = cursor_tag(column)
        if value is not None and tag == STRING_TAG:
            value = mapper.format_output(column.type, value)
        values.append(CursorValue(tag, value))
    return encode_cursor(values)


def decode_key(
    columns: Sequence[Column],
    text: str,
    mapper: TypeMapper,
    paths: Optional[Sequence[str]] = None,
) -> tuple:
    """
    Decode a cursor into a primary-key tuple of column values.

    ``paths`` name the key fields ("TypeName.fieldName") in conversion
    errors; the column names are used when absent.

    Raises:
        CursorCodecError: malformed cursor or a cursor for a different key
    """
    values = decode_cursor(text)
    if len(values) != len(columns):
        raise CursorCodecError(f"expected {len(columns)} key values, got {len(values)}")

    key = []
    for index, (column, item) in enumerate(zip(columns, values)):
        path = paths[index] if paths else column.name
        if item.value is None:
            key.append(None)
        elif column.type.is_integer:
            if not isinstance(item.value, int):
                raise CursorCodecError(f"column '{column.name}' expects an integer key")
            key.append(item.value)
        elif column.type.kind == TypeKind.UUID and isinstance(item.value, uuid.UUID):
            key.append(item.value)
        else:
            key.append(_parse_string_key(mapper, path, column, str(item.value)))
    return tuple(key)


def _parse_string_key(mapper: TypeMapper, path: str, column: Column, payload: str) -> Any:
    # Inverse of str() over the value format_output produced when encoding
    kind = column.type.kind
    if kind in FLOAT_KINDS:
        try:
            return float(payload)
        except ValueError:
            raise CursorCodecError(f"{path}: invalid {kind.value} key '{payload}'") from None
    elif kind == TypeKind.BOOL:
        if payload not in BOOL_PAYLOADS:
            raise CursorCodecError(f"{path}: invalid {kind.value} key '{payload}'")
        return BOOL_PAYLOADS[payload]
    try:
        return mapper.parse_input(path, column.type, payload)
    except TypeConversionError as e:
        raise CursorCodecError(str(e)) from e
