"""
Base Fusion Configuration

This module defines the enums shared by hybrid query configuration,
rerankers and search executors.
"""

from enum import Enum


class DistanceType(str, Enum):
    """Enumeration of supported vector distance metrics"""
    L2 = "l2"             # Euclidean distance
    COSINE = "cosine"     # Cosine distance, 1 - cosine similarity
    DOT = "dot"           # Dot product
    HAMMING = "hamming"   # Hamming distance for binary vectors


class RerankMethod(str, Enum):
    """Enumeration of supported hybrid rerank strategies"""
    RRF = "rrf"           # Reciprocal Rank Fusion
    LINEAR = "linear"     # Linear combination of distance and score
    MRR = "mrr"           # Weighted Mean Reciprocal Rank


class SubSearchKind(str, Enum):
    """Enumeration of the sub-searches issued by a hybrid query"""
    VECTOR = "vector"
    FTS = "fts"
