"""
Fusion Operations Exceptions

This module defines custom exceptions for hybrid result fusion,
providing clear error handling and reporting for merge, rerank and
sub-search issues.
"""

from hybrid_ops_exceptions import QueryError


class FusionError(QueryError):
    """Base exception for all fusion-related errors"""
    pass


class InvalidParameterError(FusionError, ValueError):
    """Raised when a reranker or query is constructed with invalid parameters"""
    pass


class MissingColumnError(FusionError, KeyError):
    """Raised when a required column is absent from a result batch"""

    def __init__(self, column: str, available=None):
        self.column = column
        self.available = list(available or [])
        super().__init__(
            f"Expected column '{column}' not found. "
            f"Found columns: [{', '.join(self.available)}]"
        )

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class UnsupportedColumnTypeError(FusionError, TypeError):
    """Raised when a column type cannot be merged or reordered"""
    pass


class SubSearchError(QueryError):
    """Raised when the vector or full-text sub-search fails"""
    pass


class SearchTimeoutError(SubSearchError):
    """Raised when a sub-search exceeds its timeout"""
    pass
