"""
Fusion Configuration Module

This module provides the enums, the dataclass configuration of a hybrid
query and the Pydantic model validating API-level requests.
"""

from .base import DistanceType, RerankMethod, SubSearchKind
from .hybrid import VectorSearchParams, HybridQueryConfig
from .validation import HybridQueryParams

__all__ = [
    # Enums
    "DistanceType",
    "RerankMethod",
    "SubSearchKind",

    # Query configs
    "VectorSearchParams",
    "HybridQueryConfig",

    # Validation
    "HybridQueryParams",
]
