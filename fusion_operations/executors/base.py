"""
Search Executor Interface

This module defines the contract between the hybrid query orchestrator and
the query engine that actually runs the vector and full-text searches.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

import pyarrow as pa

from ..config.base import SubSearchKind
from ..config.hybrid import VectorSearchParams


@dataclass
class SubSearchRequest:
    """
    One sub-search of a hybrid query.

    The orchestrator always sets ``with_row_id`` so the result can be joined
    with the other sub-search. ``limit`` is only the number of candidates the
    engine should return; the final limit/offset of the hybrid query is
    applied after reranking and never appears here.
    """
    kind: SubSearchKind
    predicate: Optional[str] = None
    columns: Optional[Union[List[str], Dict[str, str]]] = None
    with_row_id: bool = True
    fast_search: bool = False
    postfilter: bool = False
    timeout: Optional[float] = None
    limit: Optional[int] = None

    # Full-text search
    query_text: Optional[str] = None
    fts_columns: Optional[List[str]] = None

    # Vector search
    vector: Optional[List[float]] = None
    vector_params: VectorSearchParams = field(default_factory=VectorSearchParams)


class SearchExecutor(ABC):
    """
    Abstract query engine used by hybrid queries.

    Implementations run one sub-search and return its ranked rows as a
    RecordBatch, best match first, including the ``_rowid`` column when
    requested and ``_distance`` (vector) or ``_score`` (full-text).
    Failures are raised as SubSearchError or SearchTimeoutError.
    """

    @abstractmethod
    async def execute(self, request: SubSearchRequest) -> pa.RecordBatch:
        """
        Run a single sub-search.

        Args:
            request: Sub-search description

        Returns:
            Ranked result batch

        Raises:
            SubSearchError: If the engine rejects or fails the search
            SearchTimeoutError: If the search exceeds request.timeout
        """
        pass
