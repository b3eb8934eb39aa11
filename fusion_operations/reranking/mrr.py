"""
Mean Reciprocal Rank Reranker

Scores each row by the weighted reciprocal of its 1-based rank in the
vector and full-text result lists. A row absent from one list contributes
nothing for that side.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict

import numpy as np
import pyarrow as pa

from ..core.batch import get_row_ids
from ..core.fusion_ops_exceptions import InvalidParameterError
from ..core.merger import merge_results
from .base import Reranker

logger = logging.getLogger(__name__)

WEIGHT_SUM_TOLERANCE = 1e-6


def _reciprocal_ranks(results: pa.RecordBatch) -> Dict[int, np.float32]:
    ranks: Dict[int, np.float32] = {}
    if results.num_rows == 0:
        return ranks
    for rank, row_id in enumerate(get_row_ids(results)):
        if row_id is not None:
            ranks[row_id] = np.float32(1.0) / np.float32(rank + 1)
    return ranks


@dataclass(frozen=True)
class MRRReranker(Reranker):
    """
    Reranker based on weighted Mean Reciprocal Rank.

    score = weight_vector * 1/(vector_rank + 1) + weight_fts * 1/(fts_rank + 1)

    Attributes:
        weight_vector: Weight of the vector ranking, between 0 and 1
        weight_fts: Weight of the full-text ranking, between 0 and 1;
            the two weights must sum to 1.0
    """
    weight_vector: float = 0.5
    weight_fts: float = 0.5

    name = "mrr"

    def __post_init__(self):
        """Validate weights"""
        if not 0 <= self.weight_vector <= 1:
            raise InvalidParameterError(
                f"weight_vector must be between 0.0 and 1.0, got {self.weight_vector}"
            )
        if not 0 <= self.weight_fts <= 1:
            raise InvalidParameterError(
                f"weight_fts must be between 0.0 and 1.0, got {self.weight_fts}"
            )
        if abs(self.weight_vector + self.weight_fts - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise InvalidParameterError(
                f"weight_vector + weight_fts must equal 1.0, "
                f"got {self.weight_vector + self.weight_fts}"
            )

    async def rerank_hybrid(
        self,
        query: str,
        vector_results: pa.RecordBatch,
        fts_results: pa.RecordBatch,
    ) -> pa.RecordBatch:
        vector_rr = _reciprocal_ranks(vector_results)
        fts_rr = _reciprocal_ranks(fts_results)

        weight_vector = np.float32(self.weight_vector)
        weight_fts = np.float32(self.weight_fts)
        zero = np.float32(0.0)

        mrr_scores: Dict[int, np.float32] = {}
        for row_id in vector_rr.keys() | fts_rr.keys():
            mrr_scores[row_id] = (
                weight_vector * vector_rr.get(row_id, zero)
                + weight_fts * fts_rr.get(row_id, zero)
            )

        combined = merge_results(vector_results, fts_results)
        result = self._score_and_sort(combined, mrr_scores.__getitem__)

        logger.debug(
            f"MRR rerank completed - "
            f"vector_rows: {vector_results.num_rows}, "
            f"fts_rows: {fts_results.num_rows}, "
            f"unique_rows: {result.num_rows}, "
            f"weights: (vector={self.weight_vector:.2f}, fts={self.weight_fts:.2f})"
        )

        return result

    def get_config(self) -> Dict[str, Any]:
        return {
            "method": self.name,
            "weight_vector": self.weight_vector,
            "weight_fts": self.weight_fts,
        }
