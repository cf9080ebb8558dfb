"""
Raw record parsing.

Splits a raw record into fields and checks each value against the sink
column it lands in. Values are kept as they appear in the source; the only
conversions are the ones the column type needs (empty -> NULL, digits ->
integer, ISO text -> date).
"""

import re
from datetime import date
from typing import Any, List, Optional, Sequence

from bronze_ingestion.errors import MalformedRecordError
from bronze_ingestion.registry import FieldSpec, FieldType

_INTEGER = re.compile(r"^[+-]?\d+$")
_ISO_DATE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
_INT32_MIN, _INT32_MAX = -(2**31), 2**31 - 1


def _coerce(value: str, spec: FieldSpec, line: int) -> Any:
    if value == "":
        return None

    if spec.type == FieldType.INTEGER:
        stripped = value.strip()
        if not _INTEGER.match(stripped):
            raise MalformedRecordError(
                f"Line {line}: field '{spec.name}' expects an integer, got {value!r}", line=line
            )
        number = int(stripped)
        if not _INT32_MIN <= number <= _INT32_MAX:
            raise MalformedRecordError(
                f"Line {line}: field '{spec.name}' value {number} is out of integer range",
                line=line,
            )
        return number

    if spec.type == FieldType.DATE:
        stripped = value.strip()
        # fromisoformat alone also takes compact and week dates
        if _ISO_DATE.match(stripped):
            try:
                return date.fromisoformat(stripped)
            except ValueError:
                pass
        raise MalformedRecordError(
            f"Line {line}: field '{spec.name}' expects a YYYY-MM-DD date, got {value!r}",
            line=line,
        )

    if "\x00" in value:
        raise MalformedRecordError(
            f"Line {line}: field '{spec.name}' contains a NUL character", line=line
        )
    if len(value) > spec.length:
        raise MalformedRecordError(
            f"Line {line}: field '{spec.name}' exceeds {spec.length} characters", line=line
        )
    return value


def parse_record(
    raw: str, line: int, fields: Sequence[FieldSpec], delimiter: str
) -> List[Optional[Any]]:
    """
    Parse one raw record into sink-ready values.

    Args:
        raw: Record text without its terminator
        line: 1-based line number in the source (for diagnostics)
        fields: Ordered sink columns
        delimiter: Field delimiter

    Returns:
        List of values in column order

    Raises:
        MalformedRecordError: On a field count mismatch or a value that does
            not fit its column
    """
    values = raw.split(delimiter)
    if len(values) != len(fields):
        raise MalformedRecordError(
            f"Line {line}: expected {len(fields)} fields, found {len(values)}", line=line
        )
    return [_coerce(value, spec, line) for value, spec in zip(values, fields)]
