"""
Reciprocal Rank Fusion Reranker

RRF combines rankings using only result positions. Every row earns
``1 / (rank + k)`` from each result list it appears in, where rank is the
0-based position in that list; rows found by both searches sum their
contributions.

Formula: RRF_score(d) = Σ (1 / (k + rank(d)))
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


@dataclass(frozen=True)
class RRFReranker(Reranker):
    """
    Reranker based on Reciprocal Rank Fusion.

    Attributes:
        k: Fusion constant, must be greater than 0. Larger values flatten the
            advantage of top-ranked rows (typically 60)
    """
    k: float = 60.0

    name = "rrf"

    def __post_init__(self):
        """Validate the fusion constant"""
        if not self.k > 0:
            raise InvalidParameterError(f"k must be greater than 0, got {self.k}")

    async def rerank_hybrid(
        self,
        query: str,
        vector_results: pa.RecordBatch,
        fts_results: pa.RecordBatch,
    ) -> pa.RecordBatch:
        k = np.float32(self.k)
        rrf_scores: Dict[int, np.float32] = {}

        for results in (vector_results, fts_results):
            if results.num_rows == 0:
                continue
            for rank, row_id in enumerate(get_row_ids(results)):
                if row_id is None:
                    continue
                score = np.float32(1.0) / (np.float32(rank) + k)
                rrf_scores[row_id] = rrf_scores.get(row_id, np.float32(0.0)) + score

        combined = merge_results(vector_results, fts_results)
        result = self._score_and_sort(combined, rrf_scores.__getitem__)

        logger.debug(
            f"RRF rerank completed - "
            f"vector_rows: {vector_results.num_rows}, "
            f"fts_rows: {fts_results.num_rows}, "
            f"unique_rows: {result.num_rows}, "
            f"k: {self.k}"
        )

        return result

    def get_config(self) -> Dict[str, Any]:
        return {"method": self.name, "k": self.k}
