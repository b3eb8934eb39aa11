"""
Metrics Module

This module provides metrics tracking for hybrid query executions,
including status enumerations, a per-execution metrics dataclass and a
bounded in-memory history that summarizes recent executions.
"""

import time
import threading
from collections import defaultdict, deque
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd


class QueryStage(Enum):
    """
    Stages a hybrid query moves through, in order.

    Recorded in the metrics so a failure can be attributed to the stage
    that raised it.
    """
    CONFIGURED = "configured"
    SUB_SEARCHES_EXECUTING = "sub_searches_executing"
    RERANKING = "reranking"
    SLICED = "sliced"
    COMPLETE = "complete"


class QueryStatus(Enum):
    """
    Enumeration of hybrid query outcomes.

    There is no degraded state: a hybrid query either fuses both
    sub-searches or fails as a whole.
    """
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class HybridQueryMetrics:
    """
    Metrics for one hybrid query execution.

    Attributes:
        query_hash: Hash of the full-text query for identification
        reranker: Name of the rerank strategy used
        vector_search_time_ms: Time taken by the vector sub-search
        fts_search_time_ms: Time taken by the full-text sub-search
        rerank_time_ms: Time taken to merge, score and sort
        total_time_ms: Total end-to-end time
        vector_results: Rows returned by the vector sub-search
        fts_results: Rows returned by the full-text sub-search
        fused_results: Rows after reranking, before limit/offset
        results_count: Rows returned to the caller
        concurrent: Whether the sub-searches ran concurrently
        stage: Last stage reached
        status: Final status of the query
        error_message: Error message if the query failed
        timestamp: Unix timestamp when the query started
    """
    query_hash: str
    reranker: str = "rrf"
    vector_search_time_ms: float = 0.0
    fts_search_time_ms: float = 0.0
    rerank_time_ms: float = 0.0
    total_time_ms: float = 0.0
    vector_results: int = 0
    fts_results: int = 0
    fused_results: int = 0
    results_count: int = 0
    concurrent: bool = True
    stage: QueryStage = QueryStage.CONFIGURED
    status: QueryStatus = QueryStatus.SUCCESS
    error_message: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self):
        """
        Convert metrics to dictionary format.

        Returns:
            Dictionary representation of metrics
        """
        return {
            "query_hash": self.query_hash,
            "reranker": self.reranker,
            "vector_search_time_ms": round(self.vector_search_time_ms, 2),
            "fts_search_time_ms": round(self.fts_search_time_ms, 2),
            "rerank_time_ms": round(self.rerank_time_ms, 2),
            "total_time_ms": round(self.total_time_ms, 2),
            "vector_results": self.vector_results,
            "fts_results": self.fts_results,
            "fused_results": self.fused_results,
            "results_count": self.results_count,
            "concurrent": self.concurrent,
            "stage": self.stage.value,
            "status": self.status.value,
            "error_message": self.error_message,
            "timestamp": self.timestamp,
        }


class MetricsHistory:
    """
    Bounded in-memory history of hybrid query metrics.

    ``record`` has the metrics callback signature, so an instance can be
    shared by any number of queries::

        history = MetricsHistory(max_size=1000)
        HybridQuery(executor, text, vector, metrics_callback=history.record)
    """

    def __init__(self, max_size: int = 1000):
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.max_size = max_size
        self._history = deque(maxlen=max_size)
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings) -> Optional["MetricsHistory"]:
        """
        Create a history from MonitoringSettings.

        Returns:
            MetricsHistory, or None when metrics are disabled
        """
        if not settings.enable_metrics:
            return None
        return cls(max_size=settings.metrics_history_size)

    def record(self, metrics: HybridQueryMetrics) -> None:
        with self._lock:
            self._history.append(metrics)

    def snapshot(self) -> List[HybridQueryMetrics]:
        with self._lock:
            return list(self._history)

    def clear(self) -> None:
        with self._lock:
            self._history.clear()

    def __len__(self) -> int:
        return len(self._history)

    def summary(self) -> Dict[str, Any]:
        """
        Summarize the recorded executions.

        Returns:
            Dictionary with success rate, average timings and per-reranker counts
        """
        history = self.snapshot()
        if not history:
            return {"message": "No metrics available"}

        total = len(history)
        successful = sum(1 for m in history if m.status == QueryStatus.SUCCESS)

        reranker_counts = defaultdict(int)
        for m in history:
            reranker_counts[m.reranker] += 1

        return {
            "total_queries": total,
            "successful": successful,
            "failed": total - successful,
            "success_rate": successful / total,
            "avg_vector_search_time_ms": round(sum(m.vector_search_time_ms for m in history) / total, 2),
            "avg_fts_search_time_ms": round(sum(m.fts_search_time_ms for m in history) / total, 2),
            "avg_rerank_time_ms": round(sum(m.rerank_time_ms for m in history) / total, 2),
            "avg_total_time_ms": round(sum(m.total_time_ms for m in history) / total, 2),
            "avg_results": round(sum(m.results_count for m in history) / total, 2),
            "rerankers": dict(reranker_counts),
        }

    def to_dataframe(self):
        """Return the recorded executions as a pandas DataFrame, oldest first."""
        return pd.DataFrame([m.to_dict() for m in self.snapshot()])
