"""
Search Module

This module provides the query types built on result fusion.
"""

from .hybrid import HybridQuery, HybridQueryMetrics, MetricsHistory, QueryStage, QueryStatus

__all__ = [
    "HybridQuery",
    "HybridQueryMetrics",
    "MetricsHistory",
    "QueryStage",
    "QueryStatus",
]
