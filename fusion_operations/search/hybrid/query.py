"""
Hybrid Query

This module provides the hybrid query orchestrator. A HybridQuery runs a
vector sub-search and a full-text sub-search through a SearchExecutor,
hands both ranked results to a rerank strategy and applies the final
limit/offset window to the fused batch.

Either sub-search failing fails the whole query; there is no fallback to
a single-sided result.
"""

import time
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import pyarrow as pa

from ...config.base import DistanceType, SubSearchKind
from ...config.hybrid import HybridQueryConfig
from ...core.batch import ROW_ID_COLUMN, batch_to_rows, slice_batch
from ...core.fusion_ops_exceptions import InvalidParameterError
from ...executors.base import SearchExecutor, SubSearchRequest
from ...reranking.base import Reranker
from ...reranking.factory import create_reranker_from_settings
from ...reranking.rrf import RRFReranker
from .metrics import HybridQueryMetrics, MetricsHistory, QueryStage, QueryStatus

logger = logging.getLogger(__name__)


class HybridQuery:
    """
    Fluent builder and executor for one hybrid (vector + full-text) query.

    Builder methods validate their argument, update the query configuration
    and return ``self`` so calls can be chained::

        batch = await (
            HybridQuery(executor, "puppy", [0.1, 0.2])
            .where("category == 'pets'")
            .rerank(LinearCombinationReranker(weight=0.5))
            .limit(10)
            .to_arrow()
        )

    The predicate, projection and fast_search/postfilter flags go to both
    sub-searches. The final limit/offset never does: each sub-search returns
    its own candidate list (``sub_search_limit``) and the window is cut from
    the fused result.
    """

    def __init__(
        self,
        executor: SearchExecutor,
        query: str,
        vector: Sequence[float],
        fts_columns: Optional[List[str]] = None,
        reranker: Optional[Reranker] = None,
        config: Optional[HybridQueryConfig] = None,
        concurrent: bool = True,
        timeout: Optional[float] = None,
        metrics_callback: Optional[Callable[[HybridQueryMetrics], None]] = None
    ):
        """
        Initialize a hybrid query.

        Args:
            executor: Engine running the sub-searches
            query: Full-text query string
            vector: Query vector for the vector sub-search
            fts_columns: Columns the full-text search runs against
            reranker: Rerank strategy (RRFReranker with k=60 if not provided)
            config: Initial query configuration
            concurrent: Run both sub-searches concurrently
            timeout: Default per-sub-search timeout in seconds
            metrics_callback: Optional callback receiving the metrics of each execution
        """
        if not isinstance(query, str):
            raise InvalidParameterError(f"query must be a string, got {type(query).__name__}")
        if vector is None or len(vector) == 0:
            raise InvalidParameterError("vector must contain at least one dimension")
        if timeout is not None and timeout <= 0:
            raise InvalidParameterError(f"timeout must be positive, got {timeout}")

        self._executor = executor
        self._query = query
        self._vector = [float(v) for v in vector]
        self._reranker = reranker or RRFReranker()
        self._config = config or HybridQueryConfig()
        self._with_row_id = True
        self.concurrent = concurrent
        self.timeout = timeout
        self.metrics_callback = metrics_callback

        if fts_columns is not None:
            self.fts_columns(fts_columns)

    @classmethod
    def from_settings(
        cls,
        executor: SearchExecutor,
        query: str,
        vector: Sequence[float],
        settings,
        metrics_history: Optional[MetricsHistory] = None
    ) -> "HybridQuery":
        """
        Create a query using the defaults of HybridOpsSettings.

        The reranker comes from ``settings.reranker``; the candidate count,
        timeout and concurrency from ``settings.query``. Metrics are
        recorded into ``metrics_history`` when given and metrics are enabled.

        Args:
            executor: Engine running the sub-searches
            query: Full-text query string
            vector: Query vector
            settings: HybridOpsSettings instance
            metrics_history: Optional shared metrics history

        Returns:
            Configured HybridQuery
        """
        metrics_callback = None
        if metrics_history is not None and settings.monitoring.enable_metrics:
            metrics_callback = metrics_history.record

        return cls(
            executor,
            query,
            vector,
            reranker=create_reranker_from_settings(settings.reranker),
            config=HybridQueryConfig(sub_search_limit=settings.query.sub_search_limit),
            concurrent=settings.query.concurrent_sub_searches,
            timeout=settings.query.timeout,
            metrics_callback=metrics_callback,
        )

    # ------------------------------------------------------------------
    # Builder
    # ------------------------------------------------------------------

    @property
    def config(self) -> HybridQueryConfig:
        return self._config

    @property
    def reranker(self) -> Reranker:
        return self._reranker

    def rerank(self, reranker: Reranker) -> "HybridQuery":
        """Set the rerank strategy used to fuse the two sub-search results."""
        if not isinstance(reranker, Reranker):
            raise InvalidParameterError(
                f"reranker must be a Reranker, got {type(reranker).__name__}"
            )
        self._reranker = reranker
        return self

    def where(self, predicate: str) -> "HybridQuery":
        """Filter both sub-searches with the same predicate."""
        self._config.predicate = predicate
        return self

    def select(self, columns: Union[List[str], Dict[str, str]]) -> "HybridQuery":
        """
        Project the output columns.

        Args:
            columns: List of column names, or mapping of output name to expression
        """
        if isinstance(columns, dict):
            self._config.select = dict(columns)
        elif isinstance(columns, (list, tuple)):
            self._config.select = list(columns)
        else:
            raise InvalidParameterError(
                f"select expects a list or a dict, got {type(columns).__name__}"
            )
        return self

    def limit(self, limit: int) -> "HybridQuery":
        """Keep at most ``limit`` fused rows."""
        return self._update(limit=limit)

    def offset(self, offset: int) -> "HybridQuery":
        """Skip the first ``offset`` fused rows (applied after the limit)."""
        return self._update(offset=offset)

    def fast_search(self) -> "HybridQuery":
        self._config.fast_search = True
        return self

    def postfilter(self) -> "HybridQuery":
        self._config.postfilter = True
        return self

    def with_row_id(self, enabled: bool = True) -> "HybridQuery":
        """
        Keep or drop ``_rowid`` in the returned batch.

        Sub-searches always return row ids since the merge joins on them;
        this only controls whether the column survives into the output.
        """
        self._with_row_id = enabled
        return self

    def fts_columns(self, columns: Union[str, List[str]]) -> "HybridQuery":
        """Restrict the full-text search to the given columns."""
        if isinstance(columns, str):
            columns = [columns]
        self._config.fts_columns = list(columns)
        return self

    def sub_search_limit(self, limit: int) -> "HybridQuery":
        """Set the number of candidates requested from each sub-search."""
        return self._update(sub_search_limit=limit)

    def column(self, column: str) -> "HybridQuery":
        """Vector column to search."""
        return self._update_vector(column=column)

    def distance_type(self, distance_type: Union[str, DistanceType]) -> "HybridQuery":
        return self._update_vector(distance_type=distance_type)

    def nprobes(self, nprobes: int) -> "HybridQuery":
        return self._update_vector(nprobes=nprobes)

    def refine_factor(self, refine_factor: int) -> "HybridQuery":
        return self._update_vector(refine_factor=refine_factor)

    def bypass_vector_index(self) -> "HybridQuery":
        """Search the vector column exhaustively instead of through its index."""
        return self._update_vector(bypass_vector_index=True)

    def ef(self, ef: int) -> "HybridQuery":
        """HNSW search width."""
        return self._update_vector(ef=ef)

    def minimum_nprobes(self, minimum_nprobes: int) -> "HybridQuery":
        return self._update_vector(minimum_nprobes=minimum_nprobes)

    def maximum_nprobes(self, maximum_nprobes: int) -> "HybridQuery":
        return self._update_vector(maximum_nprobes=maximum_nprobes)

    def distance_range(
        self,
        lower: Optional[float] = None,
        upper: Optional[float] = None
    ) -> "HybridQuery":
        """Only return vector matches whose distance lies in [lower, upper)."""
        return self._update_vector(distance_range=(lower, upper))

    def add_query_vector(self, vector: Sequence[float]) -> "HybridQuery":
        """Search an additional query vector alongside the main one."""
        if len(vector) != len(self._vector):
            raise InvalidParameterError(
                f"Additional query vector has dimension {len(vector)}, "
                f"expected {len(self._vector)}"
            )
        self._config.vector.additional_vectors.append([float(v) for v in vector])
        return self

    def _update(self, **values: Any) -> "HybridQuery":
        """Set config fields, rolling back if the result does not validate."""
        previous = {name: getattr(self._config, name) for name in values}
        for name, value in values.items():
            setattr(self._config, name, value)
        try:
            self._config.validate()
        except InvalidParameterError:
            for name, value in previous.items():
                setattr(self._config, name, value)
            raise
        return self

    def _update_vector(self, **values: Any) -> "HybridQuery":
        """Set vector tuning fields, rolling back if the result does not validate."""
        vector_params = self._config.vector
        previous = {name: getattr(vector_params, name) for name in values}
        for name, value in values.items():
            setattr(vector_params, name, value)
        try:
            vector_params.validate()
        except InvalidParameterError:
            for name, value in previous.items():
                setattr(vector_params, name, value)
            raise
        return self

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _build_requests(
        self,
        timeout: Optional[float]
    ) -> Tuple[SubSearchRequest, SubSearchRequest]:
        """Build the vector and full-text sub-search requests."""
        config = self._config
        shared = dict(
            predicate=config.predicate,
            columns=config.select,
            with_row_id=True,
            fast_search=config.fast_search,
            postfilter=config.postfilter,
            timeout=timeout,
            limit=config.sub_search_limit,
        )
        vector_request = SubSearchRequest(
            kind=SubSearchKind.VECTOR,
            vector=list(self._vector),
            vector_params=config.vector,
            **shared
        )
        fts_request = SubSearchRequest(
            kind=SubSearchKind.FTS,
            query_text=self._query,
            fts_columns=config.fts_columns,
            **shared
        )
        return vector_request, fts_request

    async def _timed(self, request: SubSearchRequest) -> Tuple[pa.RecordBatch, float]:
        start = time.time()
        batch = await self._executor.execute(request)
        return batch, (time.time() - start) * 1000

    async def _run_sub_searches(
        self,
        vector_request: SubSearchRequest,
        fts_request: SubSearchRequest
    ) -> Tuple[Tuple[pa.RecordBatch, float], Tuple[pa.RecordBatch, float]]:
        if not self.concurrent:
            fts = await self._timed(fts_request)
            vector = await self._timed(vector_request)
            return vector, fts

        vector_task = asyncio.ensure_future(self._timed(vector_request))
        fts_task = asyncio.ensure_future(self._timed(fts_request))
        try:
            vector, fts = await asyncio.gather(vector_task, fts_task)
        except BaseException:
            # The surviving sub-search is of no use once the other has failed
            for task in (vector_task, fts_task):
                task.cancel()
            await asyncio.gather(vector_task, fts_task, return_exceptions=True)
            raise
        return vector, fts

    def _apply_window(self, fused: pa.RecordBatch) -> pa.RecordBatch:
        """Apply limit, then offset, to the fused batch."""
        limit = self._config.limit
        offset = self._config.offset

        result = fused
        if limit is not None and result.num_rows > limit:
            result = slice_batch(result, 0, limit)
        if offset:
            skipped = min(offset, result.num_rows)
            result = slice_batch(result, skipped, result.num_rows - skipped)
        return result

    async def to_arrow(self, timeout: Optional[float] = None) -> pa.RecordBatch:
        """
        Execute the hybrid query.

        Args:
            timeout: Per-sub-search timeout in seconds (overrides the query default)

        Returns:
            Fused batch sorted by ``_relevance_score`` descending, limited
            and offset as configured

        Raises:
            InvalidParameterError: If the query configuration is invalid
            SubSearchError: If either sub-search fails
            SearchTimeoutError: If a sub-search exceeds the timeout
            FusionError: If the sub-search results cannot be fused
        """
        start_time = time.time()
        timeout = timeout if timeout is not None else self.timeout

        metrics = HybridQueryMetrics(
            query_hash=str(hash(self._query)),
            reranker=self._reranker.name,
            concurrent=self.concurrent
        )

        try:
            self._config.validate()
            vector_request, fts_request = self._build_requests(timeout)

            metrics.stage = QueryStage.SUB_SEARCHES_EXECUTING
            (vector_results, vector_ms), (fts_results, fts_ms) = await self._run_sub_searches(
                vector_request, fts_request
            )
            metrics.vector_search_time_ms = vector_ms
            metrics.fts_search_time_ms = fts_ms
            metrics.vector_results = vector_results.num_rows
            metrics.fts_results = fts_results.num_rows

            metrics.stage = QueryStage.RERANKING
            rerank_start = time.time()
            fused = await self._reranker.rerank_hybrid(self._query, vector_results, fts_results)
            metrics.rerank_time_ms = (time.time() - rerank_start) * 1000
            metrics.fused_results = fused.num_rows

            metrics.stage = QueryStage.SLICED
            result = self._apply_window(fused)
            if not self._with_row_id and ROW_ID_COLUMN in result.schema.names:
                result = result.drop_columns([ROW_ID_COLUMN])

            metrics.stage = QueryStage.COMPLETE
            metrics.results_count = result.num_rows

            logger.info(
                f"Hybrid query completed - reranker: {self._reranker.name}, "
                f"candidates: {metrics.vector_results} vector / {metrics.fts_results} fts, "
                f"results: {result.num_rows}, "
                f"vector: {metrics.vector_search_time_ms:.2f}ms, "
                f"fts: {metrics.fts_search_time_ms:.2f}ms, "
                f"rerank: {metrics.rerank_time_ms:.2f}ms"
            )

            return result

        except Exception as e:
            metrics.status = QueryStatus.FAILURE
            metrics.error_message = str(e)
            logger.error(f"Hybrid query failed during {metrics.stage.value}: {str(e)}")
            raise

        finally:
            metrics.total_time_ms = (time.time() - start_time) * 1000

            if self.metrics_callback:
                try:
                    self.metrics_callback(metrics)
                except Exception as e:
                    logger.error(f"Metrics callback failed: {str(e)}")

    async def to_list(self, timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        """Execute the query and return one dict per row (nulls become None)."""
        return batch_to_rows(await self.to_arrow(timeout=timeout))

    async def to_pandas(self, timeout: Optional[float] = None):
        """Execute the query and return a pandas DataFrame."""
        batch = await self.to_arrow(timeout=timeout)
        return batch.to_pandas()

    def __repr__(self) -> str:
        return (
            f"HybridQuery(query={self._query!r}, reranker={self._reranker.name}, "
            f"limit={self._config.limit}, offset={self._config.offset})"
        )
