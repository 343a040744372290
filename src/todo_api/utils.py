from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from .db import ResultSet

Record = Dict[str, Any]


class MalformedResultError(ValueError):
    """A result row does not line up with the result's column list."""


def _zip_row(columns: Sequence[str], row: Sequence[Any]) -> Record:
    if len(row) != len(columns):
        raise MalformedResultError(
            f"row has {len(row)} values for {len(columns)} columns"
        )
    return {col: value for col, value in zip(columns, row)}


# PUBLIC_INTERFACE
def to_record(result: ResultSet) -> Optional[Record]:
    """
    Map the first row of a result to a {column: value} record.

    Returns:
        The record, or None when the result has no rows. Callers asking for a
        single record treat None as "not found".

    Raises:
        MalformedResultError: the row length differs from the column count.
    """
    if not result.rows:
        return None
    return _zip_row(result.columns, result.rows[0])


# PUBLIC_INTERFACE
def to_records(result: ResultSet) -> List[Record]:
    """Map every row of a result to a record. No rows gives an empty list."""
    return [_zip_row(result.columns, row) for row in result.rows]
