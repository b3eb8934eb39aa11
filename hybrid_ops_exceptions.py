"""
Hybrid Operations Exceptions

This module defines custom exceptions for the hybrid_ops package
to provide clear error handling and reporting.
"""

class HybridOpsError(Exception):
    """Base exception for all hybrid_ops errors"""
    pass


class ConfigurationError(HybridOpsError):
    """Raised when configuration is invalid or missing"""
    pass


class QueryError(HybridOpsError):
    """Raised when a query operation fails"""
    pass
