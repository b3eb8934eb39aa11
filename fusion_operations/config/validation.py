"""
Hybrid Query Parameters Validation

This module defines the Pydantic model for API-level validation of hybrid
query requests, before they are turned into a configured HybridQuery.
"""

from typing import Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .base import DistanceType, RerankMethod
from .hybrid import HybridQueryConfig, VectorSearchParams


class HybridQueryParams(BaseModel):
    """
    Pydantic model for hybrid query parameters.

    Accepts a plain request dict (e.g. a decoded JSON body), rejects
    unknown keys and converts the result into a HybridQuery bound to a
    search executor.
    """
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    query: str = Field(..., description="Full-text query string")
    vector: List[float] = Field(..., min_length=1, description="Query vector")
    additional_vectors: List[List[float]] = Field(
        default_factory=list, description="Extra query vectors searched with the main one"
    )

    # Shared by both sub-searches
    filter: Optional[str] = Field(None, description="Filter expression")
    fast_search: bool = Field(False, description="Skip data not yet covered by an index")
    postfilter: bool = Field(False, description="Filter after the search instead of before")
    select: Optional[Union[List[str], Dict[str, str]]] = Field(
        None, description="Output columns, or mapping of output name to expression"
    )
    with_row_id: bool = Field(True, description="Keep _rowid in the result")
    fts_columns: Optional[List[str]] = Field(None, description="Columns searched by full-text search")
    sub_search_limit: Optional[int] = Field(None, gt=0, description="Candidates per sub-search")
    timeout: Optional[float] = Field(None, gt=0, description="Per-sub-search timeout in seconds")

    # Result window
    limit: Optional[int] = Field(None, ge=0, description="Maximum number of fused rows")
    offset: Optional[int] = Field(None, ge=0, description="Number of leading fused rows to skip")

    # Reranking
    rerank_method: RerankMethod = Field(RerankMethod.RRF, description="Rerank strategy")
    rrf_k: float = Field(60.0, gt=0, description="RRF constant")
    linear_weight: float = Field(0.7, ge=0, le=1, description="Vector weight for linear combination")
    linear_fill: float = Field(1.0, ge=0, description="Fill value for missing linear inputs")
    mrr_weight_vector: float = Field(0.5, ge=0, le=1, description="Vector weight for MRR")
    mrr_weight_fts: float = Field(0.5, ge=0, le=1, description="Full-text weight for MRR")

    # Vector tuning
    column: Optional[str] = Field(None, description="Vector column to search")
    distance_type: Optional[DistanceType] = Field(None, description="Distance metric")
    nprobes: Optional[int] = Field(None, gt=0, description="IVF partitions to probe")
    refine_factor: Optional[int] = Field(None, gt=0, description="Refine multiplier")
    bypass_vector_index: bool = Field(False, description="Run an exhaustive search")
    ef: Optional[int] = Field(None, gt=0, description="HNSW search width")
    minimum_nprobes: Optional[int] = Field(None, gt=0, description="Lower bound for adaptive probing")
    maximum_nprobes: Optional[int] = Field(None, gt=0, description="Upper bound for adaptive probing")
    distance_range: Optional[List[Optional[float]]] = Field(
        None, min_length=2, max_length=2, description="(lower, upper) distance bounds"
    )

    @field_validator("additional_vectors")
    @classmethod
    def validate_additional_vectors(cls, v, info):
        """Additional vectors must match the main vector's dimension"""
        vector = info.data.get("vector")
        if vector:
            for extra in v:
                if len(extra) != len(vector):
                    raise ValueError(
                        f"Additional query vector has dimension {len(extra)}, "
                        f"expected {len(vector)}"
                    )
        return v

    @model_validator(mode="after")
    def validate_rerank_weights(self):
        """MRR weights must sum to 1"""
        if self.rerank_method == RerankMethod.MRR:
            total = self.mrr_weight_vector + self.mrr_weight_fts
            if abs(total - 1.0) > 1e-6:
                raise ValueError(f"MRR weights must sum to 1.0, got {total}")
        return self

    def to_config(self) -> HybridQueryConfig:
        """Convert the validated parameters into a HybridQueryConfig."""
        vector = VectorSearchParams(
            column=self.column,
            distance_type=self.distance_type,
            nprobes=self.nprobes,
            refine_factor=self.refine_factor,
            bypass_vector_index=self.bypass_vector_index,
            ef=self.ef,
            minimum_nprobes=self.minimum_nprobes,
            maximum_nprobes=self.maximum_nprobes,
            distance_range=tuple(self.distance_range) if self.distance_range else None,
            additional_vectors=[list(v) for v in self.additional_vectors],
        )
        return HybridQueryConfig(
            predicate=self.filter,
            fast_search=self.fast_search,
            postfilter=self.postfilter,
            select=self.select,
            limit=self.limit,
            offset=self.offset,
            fts_columns=self.fts_columns,
            sub_search_limit=self.sub_search_limit,
            vector=vector,
        )

    def build(
        self,
        executor,
        concurrent: bool = True,
        metrics_callback: Optional[Callable] = None
    ):
        """
        Build a HybridQuery bound to an executor.

        Args:
            executor: SearchExecutor running the sub-searches
            concurrent: Run both sub-searches concurrently
            metrics_callback: Optional callback receiving query metrics

        Returns:
            Configured HybridQuery
        """
        from ..reranking.factory import create_reranker
        from ..search.hybrid.query import HybridQuery

        if self.rerank_method == RerankMethod.RRF:
            reranker = create_reranker(RerankMethod.RRF, k=self.rrf_k)
        elif self.rerank_method == RerankMethod.LINEAR:
            reranker = create_reranker(
                RerankMethod.LINEAR, weight=self.linear_weight, fill=self.linear_fill
            )
        else:
            reranker = create_reranker(
                RerankMethod.MRR,
                weight_vector=self.mrr_weight_vector,
                weight_fts=self.mrr_weight_fts
            )

        query = HybridQuery(
            executor,
            self.query,
            self.vector,
            reranker=reranker,
            config=self.to_config(),
            concurrent=concurrent,
            timeout=self.timeout,
            metrics_callback=metrics_callback,
        )
        return query.with_row_id(self.with_row_id)
