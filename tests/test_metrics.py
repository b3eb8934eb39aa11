import pandas as pd
import pytest

from config.settings import HybridOpsSettings, MonitoringSettings
from fusion_operations.config.base import SubSearchKind
from fusion_operations.core.fusion_ops_exceptions import SubSearchError
from fusion_operations.reranking import LinearCombinationReranker
from fusion_operations.search.hybrid import (
    HybridQuery,
    HybridQueryMetrics,
    MetricsHistory,
    QueryStatus,
)
from tests.conftest import FakeExecutor, run


class TestMetricsHistory:
    def test_empty_summary(self):
        assert MetricsHistory().summary() == {"message": "No metrics available"}

    def test_bounded(self):
        history = MetricsHistory(max_size=2)
        for i in range(3):
            history.record(HybridQueryMetrics(query_hash=str(i)))

        assert [m.query_hash for m in history.snapshot()] == ["1", "2"]

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            MetricsHistory(max_size=0)

    def test_summary(self):
        history = MetricsHistory()
        history.record(HybridQueryMetrics(query_hash="a", total_time_ms=10.0, results_count=4))
        history.record(HybridQueryMetrics(
            query_hash="b", reranker="mrr", total_time_ms=20.0,
            status=QueryStatus.FAILURE, error_message="boom",
        ))

        summary = history.summary()

        assert summary["total_queries"] == 2
        assert summary["successful"] == 1
        assert summary["failed"] == 1
        assert summary["success_rate"] == 0.5
        assert summary["avg_total_time_ms"] == 15.0
        assert summary["avg_results"] == 2.0
        assert summary["rerankers"] == {"rrf": 1, "mrr": 1}

    def test_to_dataframe(self):
        history = MetricsHistory()
        history.record(HybridQueryMetrics(query_hash="a"))

        df = history.to_dataframe()

        assert isinstance(df, pd.DataFrame)
        assert list(df["status"]) == ["success"]

    def test_from_settings(self):
        assert MetricsHistory.from_settings(MonitoringSettings(enable_metrics=False)) is None
        history = MetricsHistory.from_settings(MonitoringSettings(metrics_history_size=5))
        assert history.max_size == 5


class TestHybridQueryFromSettings:
    def test_uses_settings_defaults(self, fake_executor):
        settings = HybridOpsSettings(
            reranker={"method": "linear", "linear_weight": 0.4},
            query={"sub_search_limit": 20, "timeout": 3.0, "concurrent_sub_searches": False},
        )
        history = MetricsHistory()

        query = HybridQuery.from_settings(fake_executor, "animals", [0.1], settings, history)
        run(query.to_arrow())

        assert query.reranker == LinearCombinationReranker(weight=0.4)
        assert query.concurrent is False
        assert all(r.limit == 20 and r.timeout == 3.0 for r in fake_executor.requests)
        assert len(history) == 1

    def test_metrics_disabled(self, fake_executor):
        settings = HybridOpsSettings(monitoring={"enable_metrics": False})
        history = MetricsHistory()

        run(HybridQuery.from_settings(fake_executor, "animals", [0.1], settings, history).to_arrow())

        assert len(history) == 0

    def test_failures_are_recorded(self, animal_batches):
        vector, fts = animal_batches
        executor = FakeExecutor(vector, fts, errors={SubSearchKind.FTS: SubSearchError("no index")})
        history = MetricsHistory()

        with pytest.raises(SubSearchError):
            run(HybridQuery.from_settings(executor, "q", [0.1], HybridOpsSettings(), history).to_arrow())

        assert history.summary()["failed"] == 1
