"""
Milvus Search Executor

This module runs hybrid sub-searches against a Milvus collection through
the pymilvus ``MilvusClient`` and converts the hits into ranked pyarrow
batches: dense-vector search for the vector side and BM25 full-text search
on a sparse field for the text side.
"""

import time
import asyncio
import logging
import functools
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pyarrow as pa
from pymilvus import DataType

from ..config.base import DistanceType, SubSearchKind
from ..core.batch import DISTANCE_COLUMN, ROW_ID_COLUMN, SCORE_COLUMN
from ..core.fusion_ops_exceptions import SearchTimeoutError, SubSearchError
from .base import SearchExecutor, SubSearchRequest

logger = logging.getLogger(__name__)

# Milvus metric names by distance type
MILVUS_METRICS = {
    DistanceType.L2: "L2",
    DistanceType.COSINE: "COSINE",
    DistanceType.DOT: "IP",
    DistanceType.HAMMING: "HAMMING",
}

# Metrics for which Milvus reports a similarity (larger = closer)
SIMILARITY_METRICS = {DistanceType.COSINE, DistanceType.DOT}

BM25_METRIC = "BM25"

# Arrow types of scalar Milvus fields; other fields keep the inferred type
ARROW_TYPES = {
    DataType.BOOL: pa.bool_(),
    DataType.INT8: pa.int32(),
    DataType.INT16: pa.int32(),
    DataType.INT32: pa.int32(),
    DataType.INT64: pa.int64(),
    DataType.FLOAT: pa.float32(),
    DataType.DOUBLE: pa.float64(),
    DataType.VARCHAR: pa.string(),
}


def to_distance(value: float, distance_type: DistanceType) -> float:
    """Convert a Milvus hit value into a distance where smaller means closer."""
    if distance_type in SIMILARITY_METRICS:
        return 1.0 - value
    return value


def range_params(
    distance_range: Tuple[Optional[float], Optional[float]],
    distance_type: DistanceType
) -> Dict[str, float]:
    """
    Translate (lower, upper) distance bounds into Milvus range search params.

    For distance metrics ``radius`` is the upper bound and ``range_filter``
    the lower one; for similarity metrics both are mirrored through
    ``similarity = 1 - distance``.
    """
    lower, upper = distance_range
    params: Dict[str, float] = {}
    if distance_type in SIMILARITY_METRICS:
        if upper is not None:
            params["radius"] = 1.0 - upper
        if lower is not None:
            params["range_filter"] = 1.0 - lower
    else:
        if upper is not None:
            params["radius"] = upper
        if lower is not None:
            params["range_filter"] = lower
    return params


def best_hits_by_id(
    raw_results: List[List[Any]],
    distance_type: DistanceType
) -> List[Tuple[Dict[str, Any], float]]:
    """
    Combine the hits of several query vectors into one ranking.

    Each row keeps its smallest distance over all query vectors; the rows
    are then ordered by that distance. Rows at equal distance keep the
    order in which they were first returned.

    Returns:
        List of (hit, distance) pairs, closest first
    """
    best: Dict[Any, Tuple[Dict[str, Any], float]] = {}
    for query_hits in raw_results:
        for hit in query_hits:
            distance = to_distance(float(hit["distance"]), distance_type)
            current = best.get(hit["id"])
            if current is None or distance < current[1]:
                best[hit["id"]] = (hit, distance)
    if len(raw_results) == 1:
        return list(best.values())
    return sorted(best.values(), key=lambda pair: pair[1])


class MilvusSearchExecutor(SearchExecutor):
    """
    SearchExecutor backed by a Milvus collection.

    The collection is expected to hold an integer primary key, a dense vector
    field and a sparse field filled by a BM25 function over a text field.
    Blocking pymilvus calls run in a thread pool so sub-searches of one hybrid
    query can proceed concurrently.
    """

    def __init__(
        self,
        client,
        collection_name: str,
        vector_field: str = "vector",
        sparse_field: str = "sparse",
        text_field: str = "text",
        default_distance_type: DistanceType = DistanceType.COSINE,
        default_limit: int = 100,
        max_workers: int = 4,
        drop_ratio_search: float = 0.2
    ):
        """
        Initialize the executor.

        Args:
            client: pymilvus MilvusClient connected to the server
            collection_name: Collection to search
            vector_field: Dense vector field used when the request names none
            sparse_field: BM25 sparse field used when the request names none
            text_field: Text field the BM25 function reads; naming it as a
                full-text column searches its sparse field
            default_distance_type: Metric used when the request names none
            default_limit: Candidate count when the request sets no limit
            max_workers: Size of the thread pool running pymilvus calls
            drop_ratio_search: Share of small query terms ignored by BM25 search
        """
        self._client = client
        self.collection_name = collection_name
        self.vector_field = vector_field
        self.sparse_field = sparse_field
        self.text_field = text_field
        self.default_distance_type = DistanceType(default_distance_type)
        self.default_limit = default_limit
        self.drop_ratio_search = drop_ratio_search
        self._field_types: Optional[Dict[str, pa.DataType]] = None
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="milvus-search"
        )

        logger.info(
            f"MilvusSearchExecutor initialized - collection: {collection_name}, "
            f"vector_field: {vector_field}, sparse_field: {sparse_field}, "
            f"metric: {self.default_distance_type.value}"
        )

    @classmethod
    def from_settings(cls, collection_name: str, settings) -> "MilvusSearchExecutor":
        """
        Create an executor and its MilvusClient from HybridOpsSettings.

        Args:
            collection_name: Collection to search
            settings: HybridOpsSettings instance

        Returns:
            Configured MilvusSearchExecutor
        """
        from pymilvus import MilvusClient

        milvus = settings.milvus
        client = MilvusClient(
            uri=milvus.uri,
            token=milvus.token,
            db_name=milvus.db_name,
            timeout=milvus.connect_timeout
        )
        return cls(
            client,
            collection_name,
            vector_field=milvus.vector_field,
            sparse_field=milvus.sparse_field,
            text_field=milvus.text_field,
            default_distance_type=milvus.distance_type,
            default_limit=settings.query.sub_search_limit,
            max_workers=milvus.max_workers,
            drop_ratio_search=milvus.drop_ratio_search
        )

    async def execute(self, request: SubSearchRequest) -> pa.RecordBatch:
        start_time = time.time()

        if request.kind == SubSearchKind.VECTOR:
            search_kwargs, distance_type = self._vector_search_kwargs(request)
        else:
            search_kwargs, distance_type = self._fts_search_kwargs(request), None

        output_fields, renames = self._output_fields(request)
        search_kwargs.update(
            collection_name=self.collection_name,
            filter=request.predicate or "",
            limit=request.limit or self.default_limit,
            output_fields=output_fields,
        )

        loop = asyncio.get_running_loop()
        call = functools.partial(self._search, search_kwargs)

        try:
            if request.timeout:
                raw_results = await asyncio.wait_for(
                    loop.run_in_executor(self._executor, call),
                    timeout=request.timeout
                )
            else:
                raw_results = await loop.run_in_executor(self._executor, call)
        except asyncio.TimeoutError as e:
            raise SearchTimeoutError(
                f"{request.kind.value} search timed out after {request.timeout} seconds"
            ) from e
        except Exception as e:
            error_msg = f"{request.kind.value} search failed: {str(e)}"
            logger.error(error_msg)
            raise SubSearchError(error_msg) from e

        batch = self._to_batch(raw_results, request, output_fields, renames, distance_type)

        logger.debug(
            f"Milvus {request.kind.value} search completed in "
            f"{(time.time() - start_time) * 1000:.2f}ms, rows: {batch.num_rows}"
        )

        return batch

    def _search(self, search_kwargs: Dict[str, Any]) -> List[List[Any]]:
        """Run a search, loading the collection's field types on first use."""
        if self._field_types is None:
            self._field_types = self._load_field_types()
        return self._client.search(**search_kwargs)

    def _load_field_types(self) -> Dict[str, pa.DataType]:
        """Map the collection's scalar fields to Arrow types."""
        description = self._client.describe_collection(collection_name=self.collection_name)
        field_types: Dict[str, pa.DataType] = {}
        for field in description.get("fields", []):
            arrow_type = ARROW_TYPES.get(field.get("type"))
            if arrow_type is not None:
                field_types[field["name"]] = arrow_type
        return field_types

    def _vector_search_kwargs(
        self,
        request: SubSearchRequest
    ) -> Tuple[Dict[str, Any], DistanceType]:
        """Build MilvusClient.search arguments for the vector sub-search."""
        if request.vector is None:
            raise SubSearchError("Vector search requires a query vector")

        vp = request.vector_params
        distance_type = DistanceType(vp.distance_type or self.default_distance_type)

        params: Dict[str, Any] = {}
        if vp.nprobes is not None:
            params["nprobe"] = vp.nprobes
        if vp.ef is not None:
            params["ef"] = vp.ef
        if vp.refine_factor is not None:
            params["refine_k"] = vp.refine_factor
        if vp.distance_range is not None:
            params.update(range_params(vp.distance_range, distance_type))

        ignored = [
            name for name, is_set in (
                ("bypass_vector_index", vp.bypass_vector_index),
                ("minimum_nprobes", vp.minimum_nprobes is not None),
                ("maximum_nprobes", vp.maximum_nprobes is not None),
                ("fast_search", request.fast_search),
                ("postfilter", request.postfilter),
            ) if is_set
        ]
        if ignored:
            logger.warning(f"Milvus has no equivalent for {ignored}, ignoring")

        data = [list(request.vector)] + [list(v) for v in vp.additional_vectors]

        return {
            "data": data,
            "anns_field": vp.column or self.vector_field,
            "search_params": {
                "metric_type": MILVUS_METRICS[distance_type],
                "params": params,
            },
        }, distance_type

    def _fts_search_kwargs(self, request: SubSearchRequest) -> Dict[str, Any]:
        """Build MilvusClient.search arguments for the BM25 full-text sub-search."""
        if not request.query_text:
            raise SubSearchError("Full-text search requires a query string")

        fts_columns = request.fts_columns or []
        if len(fts_columns) > 1:
            raise SubSearchError(
                f"Milvus full-text search runs on a single sparse field, got {fts_columns}"
            )

        return {
            "data": [request.query_text],
            "anns_field": self._sparse_field_for(fts_columns[0] if fts_columns else None),
            "search_params": {
                "metric_type": BM25_METRIC,
                "params": {"drop_ratio_search": self.drop_ratio_search},
            },
        }

    def _sparse_field_for(self, column: Optional[str]) -> str:
        """Resolve a full-text column to the sparse field BM25 search runs on."""
        if column is None or column == self.text_field:
            return self.sparse_field
        return column

    @staticmethod
    def _output_fields(request: SubSearchRequest) -> Tuple[List[str], Dict[str, str]]:
        """
        Resolve the projection into Milvus output fields.

        A mapping projection may only rename fields; computed expressions
        are not supported by Milvus.

        Returns:
            Tuple of (output fields, field name -> output name)
        """
        if request.columns is None:
            return [], {}
        if isinstance(request.columns, dict):
            for expr in request.columns.values():
                if not expr.isidentifier():
                    raise SubSearchError(
                        f"Milvus does not support computed columns, got '{expr}'"
                    )
            renames = {expr: name for name, expr in request.columns.items()}
            return list(request.columns.values()), renames
        return list(request.columns), {}

    def _to_batch(
        self,
        raw_results: List[List[Any]],
        request: SubSearchRequest,
        output_fields: List[str],
        renames: Dict[str, str],
        distance_type: Optional[DistanceType]
    ) -> pa.RecordBatch:
        """
        Flatten Milvus hits into a ranked RecordBatch.

        Hits of several query vectors are combined so that each row appears
        once, ranked by its best distance.
        """
        if request.kind == SubSearchKind.VECTOR:
            ranked = best_hits_by_id(raw_results, distance_type)
        else:
            ranked = [
                (hit, float(hit["distance"]))
                for query_hits in raw_results for hit in query_hits
            ]
        hits = [hit for hit, _ in ranked]

        if not output_fields and hits:
            output_fields = [
                name for name in hits[0].get("entity", {}).keys()
            ]

        field_types = self._field_types or {}
        arrays: List[pa.Array] = []
        fields: List[pa.Field] = []
        for name in output_fields:
            values = [hit.get("entity", {}).get(name) for hit in hits]
            array = pa.array(values, type=field_types.get(name))
            arrays.append(array)
            fields.append(pa.field(renames.get(name, name), array.type))

        if request.with_row_id:
            try:
                # Signed primary keys are reinterpreted bit for bit as unsigned
                row_ids = np.asarray([hit["id"] for hit in hits], dtype=np.int64).view(np.uint64)
            except (TypeError, ValueError) as e:
                raise SubSearchError(
                    f"Row identifiers require an integer primary key in '{self.collection_name}'"
                ) from e
            arrays.append(pa.array(row_ids, type=pa.uint64()))
            fields.append(pa.field(ROW_ID_COLUMN, pa.uint64(), nullable=False))

        values = [value for _, value in ranked]
        arrays.append(pa.array(values, type=pa.float32()))
        if request.kind == SubSearchKind.VECTOR:
            fields.append(pa.field(DISTANCE_COLUMN, pa.float32()))
        else:
            fields.append(pa.field(SCORE_COLUMN, pa.float32()))

        return pa.RecordBatch.from_arrays(arrays, schema=pa.schema(fields))

    def close(self) -> None:
        """Shut down the thread pool and close the Milvus client."""
        self._executor.shutdown(wait=True)
        close = getattr(self._client, "close", None)
        if close is not None:
            close()
        logger.info("MilvusSearchExecutor closed")
