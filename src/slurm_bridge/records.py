"""
Record parsing for Slurm command output.

``scontrol`` prints records as whitespace separated ``Key=Value`` tokens,
with records separated by a blank line. Known keys are mapped onto typed
attributes through a field table: an ordered sequence of ``FieldSpec``
entries, each naming the scheduler key, the target attribute and the kind of
value conversion to apply. Keys missing from the table are ignored so newer
Slurm releases that print extra keys keep working.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping

from .errors import DurationUnlimited, ParseError
from .timeparse import UNLIMITED_TOKENS, UNSET_TOKENS, parse_duration, parse_time

_BLANK_LINE_RE = re.compile(r"\n[ \t]*\n")


class FieldKind(enum.Enum):
    STRING = "string"
    TIME = "time"
    DURATION = "duration"
    INT = "int"


@dataclass(frozen=True)
class FieldSpec:
    """Maps one scheduler key onto one attribute of a descriptor."""

    key: str
    attribute: str
    kind: FieldKind = FieldKind.STRING


def split_blocks(output: str) -> List[str]:
    """Split command output into blank-line separated blocks."""
    output = output.strip()
    if not output:
        return []
    return [block for block in _BLANK_LINE_RE.split(output) if block.strip()]


def parse_key_values(block: str) -> Dict[str, str]:
    """Turn a block of ``Key=Value`` tokens into a dictionary.

    Tokens that do not split into exactly two parts on ``=`` are skipped;
    this drops the fragments of values that contain spaces.
    """
    fields: Dict[str, str] = {}
    for token in block.split():
        parts = token.split("=")
        if len(parts) != 2:
            continue
        fields[parts[0]] = parts[1]
    return fields


def convert_value(entry: FieldSpec, value: str) -> Any:
    """Convert a raw value according to ``entry.kind``.

    Raises:
        DurationUnlimited: For unlimited durations, so callers can skip them.
        ParseError: If the value cannot be converted.
    """
    if entry.kind is FieldKind.STRING:
        return value
    if entry.kind is FieldKind.TIME:
        return parse_time(value)
    if entry.kind is FieldKind.DURATION:
        return parse_duration(value)
    if entry.kind is FieldKind.INT:
        if value.upper() in UNLIMITED_TOKENS:
            raise DurationUnlimited(f"value is unlimited: {value}")
        try:
            return int(value)
        except ValueError as e:
            raise ParseError(
                f"could not parse integer for {entry.key}: {value}", literal=value
            ) from e
    raise ParseError(f"unsupported field kind {entry.kind!r} for {entry.key}")


def apply_fields(table: Iterable[FieldSpec], fields: Mapping[str, str]) -> Dict[str, Any]:
    """Map raw scheduler fields onto attribute values using ``table``.

    Table entries whose key is absent from ``fields`` are skipped, as are
    unset timestamps and unlimited values; the caller's defaults apply to
    those attributes.

    Raises:
        ParseError: If a present value fails to convert.
    """
    values: Dict[str, Any] = {}
    for entry in table:
        if entry.key not in fields:
            continue
        raw = fields[entry.key]
        if entry.kind is not FieldKind.STRING and raw.strip() in UNSET_TOKENS:
            continue
        try:
            values[entry.attribute] = convert_value(entry, raw)
        except DurationUnlimited:
            continue
    return values
