import numpy as np
import pyarrow as pa
import pytest

from fusion_operations.core.batch import (
    RELEVANCE_SCORE_COLUMN,
    ROW_ID_COLUMN,
    append_column,
    batch_to_rows,
    get_column_index,
    get_row_ids,
    slice_batch,
    sort_by_descending,
    take_rows,
)
from fusion_operations.core.fusion_ops_exceptions import (
    MissingColumnError,
    UnsupportedColumnTypeError,
)
from tests.conftest import make_batch


class TestColumnLookup:
    def test_missing_column_lists_available(self):
        batch = make_batch([1], text=["a"])

        with pytest.raises(MissingColumnError) as exc_info:
            get_column_index(batch.schema, "_distance")

        assert str(exc_info.value) == (
            "Expected column '_distance' not found. Found columns: [text, _rowid]"
        )
        assert exc_info.value.available == ["text", ROW_ID_COLUMN]

    def test_missing_column_is_key_error(self):
        with pytest.raises(KeyError):
            get_column_index(pa.schema([]), ROW_ID_COLUMN)

    def test_row_ids_must_be_uint64(self):
        batch = pa.RecordBatch.from_pydict({ROW_ID_COLUMN: pa.array([1], type=pa.int64())})

        with pytest.raises(UnsupportedColumnTypeError, match="uint64"):
            get_row_ids(batch)


class TestReordering:
    def test_sort_is_stable(self):
        batch = make_batch([1, 2, 3, 4], RELEVANCE_SCORE_COLUMN, [0.5, 0.9, 0.5, 0.9])

        result = sort_by_descending(batch, RELEVANCE_SCORE_COLUMN)

        assert result.column(ROW_ID_COLUMN).to_pylist() == [2, 4, 1, 3]

    def test_sort_missing_column(self):
        with pytest.raises(MissingColumnError):
            sort_by_descending(make_batch([1]), RELEVANCE_SCORE_COLUMN)

    def test_take_rows(self):
        batch = make_batch([1, 2, 3], text=["a", None, "c"])

        result = take_rows(batch, [2, 1])

        assert result.to_pydict() == {"text": ["c", None], ROW_ID_COLUMN: [3, 2]}

    def test_take_rows_unsupported_type(self):
        batch = make_batch([1], when=pa.array([0], type=pa.date32()))

        with pytest.raises(UnsupportedColumnTypeError, match="date32"):
            take_rows(batch, [0])

    def test_slice(self):
        batch = make_batch([1, 2, 3, 4])
        assert slice_batch(batch, 1, 2).column(ROW_ID_COLUMN).to_pylist() == [2, 3]


class TestAppendColumn:
    def test_appends_non_nullable_float32(self):
        batch = make_batch([1, 2])

        result = append_column(batch, RELEVANCE_SCORE_COLUMN, np.array([0.25, 0.5]))

        field = result.schema.field(RELEVANCE_SCORE_COLUMN)
        assert result.schema.names[-1] == RELEVANCE_SCORE_COLUMN
        assert field.type == pa.float32()
        assert not field.nullable
        assert result.column(RELEVANCE_SCORE_COLUMN).to_pylist() == [0.25, 0.5]
        assert RELEVANCE_SCORE_COLUMN not in batch.schema.names

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            append_column(make_batch([1, 2]), RELEVANCE_SCORE_COLUMN, np.array([0.1]))


def test_batch_to_rows():
    batch = make_batch([1, None], text=["a", None])

    assert batch_to_rows(batch) == [
        {"text": "a", ROW_ID_COLUMN: 1},
        {"text": None, ROW_ID_COLUMN: None},
    ]
