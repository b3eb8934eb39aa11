"""
Columnar Batch Helpers

This module adapts pyarrow record batches for result fusion: column lookup,
row extraction, concatenation of filtered columns, score column appending,
sorting and slicing. Only a closed set of column types is supported; anything
else raises UnsupportedColumnTypeError rather than being silently dropped.
"""

from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pyarrow as pa
import pyarrow.compute as pc

from .fusion_ops_exceptions import MissingColumnError, UnsupportedColumnTypeError

# Column naming conventions shared with the query engine
ROW_ID_COLUMN = "_rowid"
RELEVANCE_SCORE_COLUMN = "_relevance_score"
DISTANCE_COLUMN = "_distance"
SCORE_COLUMN = "_score"

SUPPORTED_TYPES = {
    pa.uint64(): "UInt64",
    pa.int32(): "Int32",
    pa.int64(): "Int64",
    pa.float32(): "Float",
    pa.float64(): "Double",
    pa.string(): "String",
    pa.bool_(): "Boolean",
}


def _supported_names() -> str:
    return ", ".join(SUPPORTED_TYPES.values())


def ensure_supported_type(field: pa.Field) -> None:
    """
    Check that a field's type is one the reranker can merge and reorder.

    Args:
        field: Schema field to check

    Raises:
        UnsupportedColumnTypeError: If the type is outside the supported set
    """
    if field.type not in SUPPORTED_TYPES:
        raise UnsupportedColumnTypeError(
            f"Reranker does not support Arrow type '{field.type}' "
            f"(column '{field.name}'). Supported types: {_supported_names()}."
        )


def get_column_index(schema: pa.Schema, column_name: str) -> int:
    """
    Resolve a column name to its position in a schema.

    Args:
        schema: Schema to search
        column_name: Name of the required column

    Returns:
        Index of the column

    Raises:
        MissingColumnError: If the column does not exist
    """
    index = schema.get_field_index(column_name)
    if index < 0:
        raise MissingColumnError(column_name, schema.names)
    return index


def get_column(batch: pa.RecordBatch, column_name: str) -> pa.Array:
    """Return the named column of a batch, raising MissingColumnError if absent."""
    return batch.column(get_column_index(batch.schema, column_name))


def get_row_ids(batch: pa.RecordBatch) -> List[Optional[int]]:
    """
    Extract the row identifier column as Python integers.

    Raises:
        MissingColumnError: If the batch has no row identifier column
        UnsupportedColumnTypeError: If row identifiers are not uint64
    """
    column = get_column(batch, ROW_ID_COLUMN)
    if column.type != pa.uint64():
        raise UnsupportedColumnTypeError(
            f"Row identifier column '{ROW_ID_COLUMN}' must be uint64, got '{column.type}'"
        )
    return column.to_pylist()


def get_float_values(batch: pa.RecordBatch, column_name: str) -> List[Optional[float]]:
    """Extract a numeric column (distance or score) as Python floats."""
    column = get_column(batch, column_name)
    if not (pa.types.is_floating(column.type) or pa.types.is_integer(column.type)):
        raise UnsupportedColumnTypeError(
            f"Column '{column_name}' must be numeric, got '{column.type}'"
        )
    return column.to_pylist()


def take_rows(batch: pa.RecordBatch, indices: Sequence[int]) -> pa.RecordBatch:
    """
    Build a new batch from the given row indices, in the given order.

    Args:
        batch: Source batch
        indices: Row positions to extract

    Returns:
        New RecordBatch with the same schema

    Raises:
        UnsupportedColumnTypeError: If any column type is unsupported
    """
    positions = pa.array(np.asarray(indices, dtype=np.int64), type=pa.int64())
    columns = []
    for i, field in enumerate(batch.schema):
        ensure_supported_type(field)
        columns.append(batch.column(i).take(positions))
    return pa.RecordBatch.from_arrays(columns, schema=batch.schema)


def concat_filtered_columns(
    first: pa.Array,
    first_indices: Sequence[int],
    second: pa.Array,
    second_indices: Sequence[int],
    field: pa.Field,
) -> pa.Array:
    """
    Concatenate selected rows of two columns into one contiguous column.

    Rows from ``first`` come before rows from ``second``; each side keeps the
    order of its index list.

    Raises:
        UnsupportedColumnTypeError: If the field type is unsupported or the
            two columns disagree on type
    """
    ensure_supported_type(field)
    # A column with no values on one side is typed null; it adopts the other type
    if pa.types.is_null(first.type):
        first = first.cast(field.type)
    if pa.types.is_null(second.type):
        second = second.cast(field.type)
    if second.type != first.type:
        raise UnsupportedColumnTypeError(
            f"Column '{field.name}' has mismatched types across result sets: "
            f"'{first.type}' vs '{second.type}'"
        )

    first_part = first.take(pa.array(np.asarray(first_indices, dtype=np.int64), type=pa.int64()))
    second_part = second.take(pa.array(np.asarray(second_indices, dtype=np.int64), type=pa.int64()))
    return pa.concat_arrays([first_part, second_part])


def append_column(
    batch: pa.RecordBatch,
    column_name: str,
    values: np.ndarray,
) -> pa.RecordBatch:
    """
    Append a non-nullable float32 column to a batch.

    Args:
        batch: Source batch
        column_name: Name of the new column
        values: One float per row

    Returns:
        New RecordBatch with the column appended last
    """
    if len(values) != batch.num_rows:
        raise ValueError(
            f"Column '{column_name}' has {len(values)} values for {batch.num_rows} rows"
        )
    schema = batch.schema.append(pa.field(column_name, pa.float32(), nullable=False))
    column = pa.array(np.asarray(values, dtype=np.float32), type=pa.float32())
    return pa.RecordBatch.from_arrays(list(batch.columns) + [column], schema=schema)


def sort_by_descending(batch: pa.RecordBatch, column_name: str) -> pa.RecordBatch:
    """
    Reorder a batch by one column, largest first.

    The sort is stable: rows with equal values keep their current relative
    order. Null values sort last.
    """
    get_column_index(batch.schema, column_name)
    if batch.num_rows == 0:
        return batch
    indices = pc.sort_indices(batch, sort_keys=[(column_name, "descending")])
    return take_rows(batch, indices.to_numpy())


def slice_batch(batch: pa.RecordBatch, offset: int, length: int) -> pa.RecordBatch:
    """Zero-copy slice of ``length`` rows starting at ``offset``."""
    return batch.slice(offset, length)


def batch_to_rows(batch: pa.RecordBatch) -> List[Dict[str, Any]]:
    """Convert a batch into a list of column-name to value mappings (nulls become None)."""
    names = batch.schema.names
    columns = [batch.column(i).to_pylist() for i in range(batch.num_columns)]
    return [
        {name: column[row] for name, column in zip(names, columns)}
        for row in range(batch.num_rows)
    ]
