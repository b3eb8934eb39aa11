import asyncio
from typing import Dict, List, Optional

import pyarrow as pa
import pytest

from fusion_operations.config.base import SubSearchKind
from fusion_operations.core.batch import DISTANCE_COLUMN, ROW_ID_COLUMN, SCORE_COLUMN
from fusion_operations.executors.base import SearchExecutor, SubSearchRequest


def make_batch(
    row_ids: List[Optional[int]],
    score_column: Optional[str] = None,
    scores: Optional[List[Optional[float]]] = None,
    **columns: list,
) -> pa.RecordBatch:
    """Build a result batch: extra columns first, then _rowid, then the score column."""
    arrays = []
    fields = []
    for name, values in columns.items():
        array = values if isinstance(values, pa.Array) else pa.array(values)
        arrays.append(array)
        fields.append(pa.field(name, array.type))
    arrays.append(pa.array(row_ids, type=pa.uint64()))
    fields.append(pa.field(ROW_ID_COLUMN, pa.uint64()))
    if score_column is not None:
        arrays.append(pa.array(scores, type=pa.float32()))
        fields.append(pa.field(score_column, pa.float32()))
    return pa.RecordBatch.from_arrays(arrays, schema=pa.schema(fields))


def vector_batch(row_ids, distances=None, **columns) -> pa.RecordBatch:
    if distances is None:
        distances = [0.1 * (i + 1) for i in range(len(row_ids))]
    return make_batch(row_ids, DISTANCE_COLUMN, distances, **columns)


def fts_batch(row_ids, scores=None, **columns) -> pa.RecordBatch:
    if scores is None:
        scores = [1.0 / (i + 1) for i in range(len(row_ids))]
    return make_batch(row_ids, SCORE_COLUMN, scores, **columns)


def empty_batch(score_column: str) -> pa.RecordBatch:
    return make_batch([], score_column, [], text=pa.array([], type=pa.string()))


def run(coro):
    return asyncio.run(coro)


class FakeExecutor(SearchExecutor):
    """In-memory SearchExecutor returning canned batches and recording requests."""

    def __init__(
        self,
        vector_result: pa.RecordBatch,
        fts_result: pa.RecordBatch,
        errors: Optional[Dict[SubSearchKind, Exception]] = None,
        delays: Optional[Dict[SubSearchKind, float]] = None,
    ):
        self.results = {
            SubSearchKind.VECTOR: vector_result,
            SubSearchKind.FTS: fts_result,
        }
        self.errors = errors or {}
        self.delays = delays or {}
        self.requests: List[SubSearchRequest] = []
        self.completed: List[SubSearchKind] = []
        self.cancelled: List[SubSearchKind] = []

    async def execute(self, request: SubSearchRequest) -> pa.RecordBatch:
        self.requests.append(request)
        try:
            await asyncio.sleep(self.delays.get(request.kind, 0))
        except asyncio.CancelledError:
            self.cancelled.append(request.kind)
            raise
        if request.kind in self.errors:
            raise self.errors[request.kind]
        self.completed.append(request.kind)
        return self.results[request.kind]

    def request_for(self, kind: SubSearchKind) -> SubSearchRequest:
        return next(r for r in self.requests if r.kind == kind)


@pytest.fixture
def animal_batches():
    """Vector and full-text results sharing three of five rows."""
    vector = vector_batch(
        [1, 4, 2, 5, 3],
        [0.1, 0.2, 0.3, 0.4, 0.5],
        text=["foo", "bar", "baz", "bean", "dog"],
    )
    fts = fts_batch(
        [4, 5, 3],
        [0.9, 0.8, 0.7],
        text=["bar", "bean", "dog"],
    )
    return vector, fts


@pytest.fixture
def fake_executor(animal_batches):
    vector, fts = animal_batches
    return FakeExecutor(vector, fts)
