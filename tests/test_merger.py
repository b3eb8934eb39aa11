import pyarrow as pa
import pytest

from fusion_operations.core.batch import ROW_ID_COLUMN
from fusion_operations.core.fusion_ops_exceptions import (
    MissingColumnError,
    UnsupportedColumnTypeError,
)
from fusion_operations.core.merger import common_schema, merge_results
from tests.conftest import empty_batch, fts_batch, make_batch, vector_batch


class TestMergeResults:
    def test_deduplicates_by_row_id(self):
        first = make_batch([1, 2, 3], name=["a", "b", "c"])
        second = make_batch([2, 4], name=["b", "d"])

        merged = merge_results(first, second)

        assert merged.column(ROW_ID_COLUMN).to_pylist() == [1, 2, 3, 4]
        assert merged.column("name").to_pylist() == ["a", "b", "c", "d"]

    def test_vector_rows_come_first_in_original_order(self, animal_batches):
        vector, fts = animal_batches

        merged = merge_results(vector, fts)

        assert merged.column(ROW_ID_COLUMN).to_pylist() == [1, 4, 2, 5, 3]

    def test_only_common_columns_survive(self, animal_batches):
        vector, fts = animal_batches

        merged = merge_results(vector, fts)

        # _distance and _score only exist on one side each
        assert merged.schema.names == ["text", ROW_ID_COLUMN]

    def test_common_columns_follow_vector_order(self):
        first = make_batch([1], a=["x"], b=[1.5])
        second = make_batch([2], b=[2.5], a=["y"])

        merged = merge_results(first, second)

        assert merged.schema.names == ["a", "b", ROW_ID_COLUMN]
        assert merged.column("b").to_pylist() == [1.5, 2.5]

    def test_empty_vector_side_returns_fts_unchanged(self):
        fts = fts_batch([7, 8], text=["x", "y"])

        merged = merge_results(empty_batch("_distance"), fts)

        assert merged is fts
        assert "_score" in merged.schema.names

    def test_empty_fts_side_returns_vector_unchanged(self):
        vector = vector_batch([7, 8], text=["x", "y"])

        merged = merge_results(vector, empty_batch("_score"))

        assert merged is vector

    def test_both_empty(self):
        merged = merge_results(empty_batch("_distance"), empty_batch("_score"))
        assert merged.num_rows == 0

    def test_duplicates_within_vector_side_are_kept(self):
        merged = merge_results(make_batch([1, 1, 2]), make_batch([3]))
        assert merged.column(ROW_ID_COLUMN).to_pylist() == [1, 1, 2, 3]

    def test_duplicates_within_fts_side_are_dropped(self):
        merged = merge_results(make_batch([1]), make_batch([3, 3, 1]))
        assert merged.column(ROW_ID_COLUMN).to_pylist() == [1, 3]

    def test_null_row_ids(self):
        merged = merge_results(make_batch([1, None]), make_batch([None, 2]))

        # Null ids are kept on the vector side and dropped on the fts side
        assert merged.column(ROW_ID_COLUMN).to_pylist() == [1, None, 2]

    def test_inputs_are_not_modified(self, animal_batches):
        vector, fts = animal_batches
        vector_before = vector.to_pydict()
        fts_before = fts.to_pydict()

        merge_results(vector, fts)

        assert vector.to_pydict() == vector_before
        assert fts.to_pydict() == fts_before

    def test_missing_row_id_column(self):
        no_ids = pa.RecordBatch.from_pydict({"text": ["a"]})

        with pytest.raises(MissingColumnError) as exc_info:
            merge_results(make_batch([1], text=["b"]), no_ids)

        assert exc_info.value.column == ROW_ID_COLUMN
        assert "Expected column '_rowid' not found" in str(exc_info.value)
        assert "text" in str(exc_info.value)

    def test_unsupported_common_column_type(self):
        tags = pa.array([["a"]], type=pa.list_(pa.string()))
        first = make_batch([1], tags=tags)
        second = make_batch([2], tags=tags)

        with pytest.raises(UnsupportedColumnTypeError, match="tags"):
            merge_results(first, second)

    def test_mismatched_common_column_types(self):
        first = make_batch([1], value=pa.array([1], type=pa.int32()))
        second = make_batch([2], value=pa.array([2], type=pa.int64()))

        with pytest.raises(UnsupportedColumnTypeError, match="mismatched"):
            merge_results(first, second)

    @pytest.mark.parametrize("null_side", ["vector", "fts"])
    def test_all_null_column_takes_other_side_type(self, null_side):
        titles = pa.array(["a"], type=pa.string())
        nulls = pa.array([None])
        vector_titles, fts_titles = (nulls, titles) if null_side == "vector" else (titles, nulls)
        vector = vector_batch([1], title=vector_titles)
        fts = fts_batch([2], title=fts_titles)

        merged = merge_results(vector, fts)

        assert merged.schema.field("title").type == pa.string()
        expected = [None, "a"] if null_side == "vector" else ["a", None]
        assert merged.column("title").to_pylist() == expected

    def test_supported_types_round_trip(self):
        columns = dict(
            i32=pa.array([1], type=pa.int32()),
            i64=pa.array([2], type=pa.int64()),
            f32=pa.array([0.5], type=pa.float32()),
            f64=pa.array([0.25], type=pa.float64()),
            s=pa.array(["x"], type=pa.string()),
            flag=pa.array([True], type=pa.bool_()),
        )
        other = dict(
            i32=pa.array([3], type=pa.int32()),
            i64=pa.array([4], type=pa.int64()),
            f32=pa.array([1.5], type=pa.float32()),
            f64=pa.array([1.25], type=pa.float64()),
            s=pa.array([None], type=pa.string()),
            flag=pa.array([False], type=pa.bool_()),
        )

        merged = merge_results(make_batch([1], **columns), make_batch([2], **other))

        assert merged.to_pydict() == {
            "i32": [1, 3],
            "i64": [2, 4],
            "f32": [0.5, 1.5],
            "f64": [0.25, 1.25],
            "s": ["x", None],
            "flag": [True, False],
            ROW_ID_COLUMN: [1, 2],
        }


class TestCommonSchema:
    def test_keeps_first_order_and_fields(self):
        first = pa.schema([pa.field("a", pa.int64()), pa.field("b", pa.string())])
        second = pa.schema([pa.field("b", pa.string()), pa.field("c", pa.bool_())])

        assert common_schema(first, second).names == ["b"]

    def test_no_common_columns(self):
        first = pa.schema([pa.field("a", pa.int64())])
        second = pa.schema([pa.field("b", pa.int64())])

        assert len(common_schema(first, second)) == 0

    def test_null_typed_field_takes_second_type(self):
        first = pa.schema([pa.field("title", pa.null())])
        second = pa.schema([pa.field("title", pa.string(), nullable=False)])

        field = common_schema(first, second).field("title")

        assert field.type == pa.string()
        assert field.nullable
