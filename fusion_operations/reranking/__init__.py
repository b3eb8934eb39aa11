"""
Reranking Module

This module provides the rerank strategies used to fuse the vector and
full-text results of a hybrid query into one ranked list.
"""

from .base import Reranker
from .rrf import RRFReranker
from .linear import LinearCombinationReranker
from .mrr import MRRReranker
from .factory import create_reranker, create_reranker_from_settings

__all__ = [
    "Reranker",
    "RRFReranker",
    "LinearCombinationReranker",
    "MRRReranker",
    "create_reranker",
    "create_reranker_from_settings",
]
