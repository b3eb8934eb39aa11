"""
Hybrid Query Module

This module provides the hybrid query orchestrator, which fuses a vector
sub-search and a full-text sub-search into one ranked result, and the
metrics it records per execution.
"""

from .query import HybridQuery
from .metrics import HybridQueryMetrics, MetricsHistory, QueryStage, QueryStatus

__all__ = [
    "HybridQuery",
    "HybridQueryMetrics",
    "MetricsHistory",
    "QueryStage",
    "QueryStatus",
]
