"""
Hybrid Query Configuration

This module defines the configuration carried by a hybrid query: the
settings shared by both sub-searches, the vector-specific tuning and the
final result window applied after reranking.
"""

from typing import Dict, List, Optional, Tuple, Union
from dataclasses import dataclass, field

from ..core.fusion_ops_exceptions import InvalidParameterError
from .base import DistanceType


@dataclass
class VectorSearchParams:
    """
    Vector-specific tuning for the vector sub-search.

    None means "leave the engine default".

    Attributes:
        column: Vector column to search
        distance_type: Distance metric
        nprobes: Number of IVF partitions to probe
        refine_factor: Re-rank multiplier applied over the index results
        bypass_vector_index: Run an exhaustive (flat) search
        ef: HNSW search width
        minimum_nprobes: Lower bound for adaptive probing
        maximum_nprobes: Upper bound for adaptive probing
        distance_range: (lower, upper) bounds on the distance, either may be None
        additional_vectors: Extra query vectors searched alongside the main one
    """
    column: Optional[str] = None
    distance_type: Optional[DistanceType] = None
    nprobes: Optional[int] = None
    refine_factor: Optional[int] = None
    bypass_vector_index: bool = False
    ef: Optional[int] = None
    minimum_nprobes: Optional[int] = None
    maximum_nprobes: Optional[int] = None
    distance_range: Optional[Tuple[Optional[float], Optional[float]]] = None
    additional_vectors: List[List[float]] = field(default_factory=list)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate vector search parameters"""
        if self.distance_type is not None:
            try:
                self.distance_type = DistanceType(self.distance_type)
            except ValueError as e:
                raise InvalidParameterError(
                    f"Unsupported distance type: {self.distance_type}"
                ) from e

        for name in ("nprobes", "refine_factor", "ef", "minimum_nprobes", "maximum_nprobes"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise InvalidParameterError(f"{name} must be positive, got {value}")

        if (
            self.minimum_nprobes is not None
            and self.maximum_nprobes is not None
            and self.minimum_nprobes > self.maximum_nprobes
        ):
            raise InvalidParameterError(
                f"minimum_nprobes ({self.minimum_nprobes}) must be <= "
                f"maximum_nprobes ({self.maximum_nprobes})"
            )

        if self.distance_range is not None:
            lower, upper = self.distance_range
            if lower is not None and upper is not None and lower >= upper:
                raise InvalidParameterError(
                    f"distance_range lower bound ({lower}) must be < upper bound ({upper})"
                )


@dataclass
class HybridQueryConfig:
    """
    Configuration of a single hybrid query.

    The predicate, the fast_search/postfilter flags and the ``select``
    projection go to both sub-searches unchanged. ``limit`` and ``offset``
    shape the fused result only; sub-searches never see them.

    Attributes:
        predicate: Filter expression applied by both sub-searches
        fast_search: Skip data not yet covered by an index
        postfilter: Filter after the search instead of before it
        select: Output columns, as a list of names or a mapping of output
            name to expression
        limit: Maximum number of fused rows to return
        offset: Number of leading fused rows to skip
        fts_columns: Columns the full-text search runs against
        sub_search_limit: Candidate count requested from each sub-search
        vector: Vector-specific tuning
    """
    predicate: Optional[str] = None
    fast_search: bool = False
    postfilter: bool = False
    select: Optional[Union[List[str], Dict[str, str]]] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    fts_columns: Optional[List[str]] = None
    sub_search_limit: Optional[int] = None
    vector: VectorSearchParams = field(default_factory=VectorSearchParams)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate result window and vector tuning"""
        self.vector.validate()
        if self.limit is not None and self.limit < 0:
            raise InvalidParameterError(f"limit must be non-negative, got {self.limit}")
        if self.offset is not None and self.offset < 0:
            raise InvalidParameterError(f"offset must be non-negative, got {self.offset}")
        if self.sub_search_limit is not None and self.sub_search_limit <= 0:
            raise InvalidParameterError(f"sub_search_limit must be positive, got {self.sub_search_limit}")
