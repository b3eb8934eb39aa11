"""
Fusion Core Module

This module provides the columnar batch helpers, the result merger and the
exceptions used by hybrid result fusion.
"""

from .fusion_ops_exceptions import (
    FusionError,
    InvalidParameterError,
    MissingColumnError,
    UnsupportedColumnTypeError,
    SubSearchError,
    SearchTimeoutError,
)
from .batch import (
    ROW_ID_COLUMN,
    RELEVANCE_SCORE_COLUMN,
    DISTANCE_COLUMN,
    SCORE_COLUMN,
    SUPPORTED_TYPES,
    batch_to_rows,
    slice_batch,
)
from .merger import merge_results, common_schema

__all__ = [
    # Exceptions
    "FusionError",
    "InvalidParameterError",
    "MissingColumnError",
    "UnsupportedColumnTypeError",
    "SubSearchError",
    "SearchTimeoutError",

    # Batch helpers
    "ROW_ID_COLUMN",
    "RELEVANCE_SCORE_COLUMN",
    "DISTANCE_COLUMN",
    "SCORE_COLUMN",
    "SUPPORTED_TYPES",
    "batch_to_rows",
    "slice_batch",

    # Merger
    "merge_results",
    "common_schema",
]
