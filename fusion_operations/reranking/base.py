"""
Base Reranker

This module defines the abstract interface shared by all hybrid rerankers,
together with the scoring step every strategy finishes with: attach a
relevance score to each merged row and sort by it, best first.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict

import numpy as np
import pyarrow as pa

from ..core.batch import (
    RELEVANCE_SCORE_COLUMN,
    append_column,
    get_row_ids,
    sort_by_descending,
)


class Reranker(ABC):
    """
    Abstract base class for hybrid rerankers.

    A reranker turns the two ranked batches of a hybrid query (vector and
    full-text) into one deduplicated batch carrying a ``_relevance_score``
    column, sorted by that column in descending order. Implementations hold
    only immutable configuration, so a single instance can serve any number
    of concurrent queries.
    """

    name: str = "base"

    @abstractmethod
    async def rerank_hybrid(
        self,
        query: str,
        vector_results: pa.RecordBatch,
        fts_results: pa.RecordBatch,
    ) -> pa.RecordBatch:
        """
        Rerank the results of a hybrid query.

        Args:
            query: Full-text query string of the hybrid query
            vector_results: Batch from the vector sub-search, best match first
            fts_results: Batch from the full-text sub-search, best match first

        Returns:
            Merged batch with ``_relevance_score`` appended, sorted descending

        Raises:
            MissingColumnError: If a required column is absent
            UnsupportedColumnTypeError: If a column cannot be merged
        """
        pass

    @abstractmethod
    def get_config(self) -> Dict[str, Any]:
        """Return the reranker parameters as a plain dictionary."""
        pass

    def _score_and_sort(
        self,
        combined: pa.RecordBatch,
        score_for: Callable[[int], float],
        default: float = 0.0,
    ) -> pa.RecordBatch:
        """
        Append relevance scores to a merged batch and sort by them.

        Args:
            combined: Output of merge_results
            score_for: Maps a row identifier to its relevance score
            default: Score for rows whose identifier is null

        Returns:
            Scored batch, highest relevance first
        """
        row_ids = get_row_ids(combined)
        relevance = np.full(len(row_ids), default, dtype=np.float32)
        for i, row_id in enumerate(row_ids):
            if row_id is not None:
                relevance[i] = score_for(row_id)

        scored = append_column(combined, RELEVANCE_SCORE_COLUMN, relevance)
        return sort_by_descending(scored, RELEVANCE_SCORE_COLUMN)
