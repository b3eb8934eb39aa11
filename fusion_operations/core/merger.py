"""
Result Merger

This module combines the vector and full-text result batches of a hybrid
query into one deduplicated batch keyed on the row identifier column,
restricted to the columns both batches have in common.
"""

import logging
from typing import List, Set

import pyarrow as pa

from .batch import (
    concat_filtered_columns,
    get_column,
    get_row_ids,
)

logger = logging.getLogger(__name__)


def common_schema(first: pa.Schema, second: pa.Schema) -> pa.Schema:
    """
    Intersect two schemas by column name.

    Field order and field definitions follow ``first``, except that a
    column holding only nulls on the first side takes its type from
    ``second``.
    """
    fields = []
    for field in first:
        if field.name not in second.names:
            continue
        if pa.types.is_null(field.type):
            field = second.field(field.name).with_nullable(True)
        fields.append(field)
    return pa.schema(fields, metadata=first.metadata)


def merge_results(
    vector_results: pa.RecordBatch,
    fts_results: pa.RecordBatch,
) -> pa.RecordBatch:
    """
    Merge and deduplicate two ranked result batches.

    Every vector row is kept in its original order, followed by the
    full-text rows whose row identifier has not been seen yet. Only columns
    present in both batches survive.

    When either batch has no rows the other one is returned as-is, without
    projecting it onto the common schema.

    Args:
        vector_results: Batch produced by the vector sub-search
        fts_results: Batch produced by the full-text sub-search

    Returns:
        Merged RecordBatch

    Raises:
        MissingColumnError: If either batch lacks the row identifier column
        UnsupportedColumnTypeError: If a common column cannot be concatenated
    """
    if vector_results.num_rows == 0:
        return fts_results
    if fts_results.num_rows == 0:
        return vector_results

    schema = common_schema(vector_results.schema, fts_results.schema)
    vector_row_ids = get_row_ids(vector_results)
    fts_row_ids = get_row_ids(fts_results)

    seen_ids: Set[int] = set()
    vector_keep: List[int] = []
    for i, row_id in enumerate(vector_row_ids):
        if row_id is not None:
            seen_ids.add(row_id)
        vector_keep.append(i)

    fts_keep: List[int] = []
    for i, row_id in enumerate(fts_row_ids):
        if row_id is not None and row_id not in seen_ids:
            seen_ids.add(row_id)
            fts_keep.append(i)

    columns = [
        concat_filtered_columns(
            get_column(vector_results, field.name),
            vector_keep,
            get_column(fts_results, field.name),
            fts_keep,
            field,
        )
        for field in schema
    ]
    merged = pa.RecordBatch.from_arrays(columns, schema=schema)

    logger.debug(
        f"Merged results - vector_rows: {vector_results.num_rows}, "
        f"fts_rows: {fts_results.num_rows}, "
        f"duplicates_removed: {fts_results.num_rows - len(fts_keep)}, "
        f"merged_rows: {merged.num_rows}, "
        f"columns: {schema.names}"
    )

    return merged
