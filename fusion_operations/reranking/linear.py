"""
Linear Combination Reranker

Blends the raw vector distance and full-text score of each row with a fixed
weight. A row missing from one side is scored with the ``fill`` value for
that side.

The vector distance is expected to lie roughly in [0, 1] (cosine distance
for example). Unbounded metrics such as L2 on unnormalized vectors give
meaningless relevance values; this is not validated here.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict

import numpy as np
import pyarrow as pa

from ..core.batch import (
    DISTANCE_COLUMN,
    SCORE_COLUMN,
    get_float_values,
    get_row_ids,
)
from ..core.fusion_ops_exceptions import InvalidParameterError
from ..core.merger import merge_results
from .base import Reranker

logger = logging.getLogger(__name__)


def _lookup(results: pa.RecordBatch, column_name: str) -> Dict[int, np.float32]:
    """Map row identifier to the value of a score column, skipping nulls."""
    values: Dict[int, np.float32] = {}
    if results.num_rows == 0:
        return values
    for row_id, value in zip(get_row_ids(results), get_float_values(results, column_name)):
        if row_id is not None and value is not None:
            values[row_id] = np.float32(value)
    return values


@dataclass(frozen=True)
class LinearCombinationReranker(Reranker):
    """
    Reranker combining vector distance and full-text score linearly.

    relevance = 1 - (weight * (1 - distance) + (1 - weight) * fts_score)

    Attributes:
        weight: Share of the vector side, between 0 and 1 (default 0.7)
        fill: Value substituted for a distance or score missing from one
            side, must be non-negative (default 1.0)
    """
    weight: float = 0.7
    fill: float = 1.0

    name = "linear"

    def __post_init__(self):
        """Validate weight and fill"""
        if not 0 <= self.weight <= 1:
            raise InvalidParameterError(f"weight must be between 0 and 1, got {self.weight}")
        if not self.fill >= 0:
            raise InvalidParameterError(f"fill must be non-negative, got {self.fill}")

    async def rerank_hybrid(
        self,
        query: str,
        vector_results: pa.RecordBatch,
        fts_results: pa.RecordBatch,
    ) -> pa.RecordBatch:
        vector_distances = _lookup(vector_results, DISTANCE_COLUMN)
        fts_scores = _lookup(fts_results, SCORE_COLUMN)

        combined = merge_results(vector_results, fts_results)
        result = self._score_and_sort(
            combined,
            lambda row_id: self._combine(
                vector_distances.get(row_id), fts_scores.get(row_id)
            ),
        )

        logger.debug(
            f"Linear combination rerank completed - "
            f"vector_rows: {vector_results.num_rows}, "
            f"fts_rows: {fts_results.num_rows}, "
            f"unique_rows: {result.num_rows}, "
            f"weight: {self.weight}, fill: {self.fill}"
        )

        return result

    def _combine(self, distance, fts_score) -> np.float32:
        """Compute the relevance of one row in single precision."""
        one = np.float32(1.0)
        weight = np.float32(self.weight)
        fill = np.float32(self.fill)

        distance = fill if distance is None else distance
        fts_score = fill if fts_score is None else fts_score

        # Distance is turned into a similarity, then the blend is inverted again
        vector_score = one - distance
        return one - (weight * vector_score + (one - weight) * fts_score)

    def get_config(self) -> Dict[str, Any]:
        return {"method": self.name, "weight": self.weight, "fill": self.fill}
