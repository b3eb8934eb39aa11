"""
Fusion Operations Module

This module fuses the results of hybrid vector + full-text searches:
- Merging two ranked result batches into one deduplicated batch
- Reciprocal Rank Fusion, linear combination and MRR rerank strategies
- A hybrid query orchestrator running both sub-searches and cutting the
  final limit/offset window from the fused result
- A Milvus-backed search executor

Result batches are pyarrow RecordBatches joined on the ``_rowid`` column.
"""

__version__ = "1.0.0"

# Core exports
from .core import (
    FusionError,
    InvalidParameterError,
    MissingColumnError,
    UnsupportedColumnTypeError,
    SubSearchError,
    SearchTimeoutError,
    ROW_ID_COLUMN,
    RELEVANCE_SCORE_COLUMN,
    DISTANCE_COLUMN,
    SCORE_COLUMN,
    merge_results,
)

# Configuration exports
from .config import (
    DistanceType,
    RerankMethod,
    SubSearchKind,
    VectorSearchParams,
    HybridQueryConfig,
    HybridQueryParams,
)

# Reranking exports
from .reranking import (
    Reranker,
    RRFReranker,
    LinearCombinationReranker,
    MRRReranker,
    create_reranker,
    create_reranker_from_settings,
)

# Executor exports
from .executors import SearchExecutor, SubSearchRequest, MilvusSearchExecutor

# Search exports
from .search import HybridQuery, HybridQueryMetrics, MetricsHistory, QueryStage, QueryStatus

__all__ = [
    # Exceptions
    "FusionError",
    "InvalidParameterError",
    "MissingColumnError",
    "UnsupportedColumnTypeError",
    "SubSearchError",
    "SearchTimeoutError",

    # Columns
    "ROW_ID_COLUMN",
    "RELEVANCE_SCORE_COLUMN",
    "DISTANCE_COLUMN",
    "SCORE_COLUMN",
    "merge_results",

    # Configuration
    "DistanceType",
    "RerankMethod",
    "SubSearchKind",
    "VectorSearchParams",
    "HybridQueryConfig",
    "HybridQueryParams",

    # Reranking
    "Reranker",
    "RRFReranker",
    "LinearCombinationReranker",
    "MRRReranker",
    "create_reranker",
    "create_reranker_from_settings",

    # Executors
    "SearchExecutor",
    "SubSearchRequest",
    "MilvusSearchExecutor",

    # Search
    "HybridQuery",
    "HybridQueryMetrics",
    "MetricsHistory",
    "QueryStage",
    "QueryStatus",
]
