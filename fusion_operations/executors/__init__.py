"""
Search Executors Module

This module provides the interface to the engine running hybrid
sub-searches and its Milvus implementation.
"""

from .base import SearchExecutor, SubSearchRequest
from .milvus import MilvusSearchExecutor

__all__ = [
    "SearchExecutor",
    "SubSearchRequest",
    "MilvusSearchExecutor",
]
