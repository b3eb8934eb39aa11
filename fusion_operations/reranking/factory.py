"""
Reranker Factory

This module builds reranker instances from a method name and parameters,
or from the reranker section of the package settings.
"""

import logging
from typing import Any, Union

from ..config.base import RerankMethod
from ..core.fusion_ops_exceptions import InvalidParameterError
from .base import Reranker
from .linear import LinearCombinationReranker
from .mrr import MRRReranker
from .rrf import RRFReranker

logger = logging.getLogger(__name__)

_RERANKERS = {
    RerankMethod.RRF: RRFReranker,
    RerankMethod.LINEAR: LinearCombinationReranker,
    RerankMethod.MRR: MRRReranker,
}


def create_reranker(
    method: Union[str, RerankMethod] = RerankMethod.RRF,
    **params: Any
) -> Reranker:
    """
    Create a reranker by method name.

    Args:
        method: Rerank method ("rrf", "linear" or "mrr")
        **params: Constructor parameters of the chosen reranker

    Returns:
        Configured reranker

    Raises:
        InvalidParameterError: If the method is unknown or the parameters
            are invalid for it
    """
    try:
        method = RerankMethod(method)
    except ValueError as e:
        supported = ", ".join(m.value for m in RerankMethod)
        raise InvalidParameterError(
            f"Unsupported rerank method: {method}. Supported methods: {supported}"
        ) from e

    reranker_cls = _RERANKERS[method]
    try:
        reranker = reranker_cls(**params)
    except TypeError as e:
        raise InvalidParameterError(
            f"Invalid parameters for {method.value} reranker: {str(e)}"
        ) from e

    logger.debug(f"Created reranker - {reranker.get_config()}")
    return reranker


def create_reranker_from_settings(settings) -> Reranker:
    """
    Create the default reranker described by reranker settings.

    Args:
        settings: RerankerSettings instance (``settings.reranker`` of
            HybridOpsSettings)

    Returns:
        Configured reranker
    """
    method = RerankMethod(settings.method)

    if method == RerankMethod.RRF:
        return create_reranker(method, k=settings.rrf_k)
    if method == RerankMethod.LINEAR:
        return create_reranker(method, weight=settings.linear_weight, fill=settings.linear_fill)
    return create_reranker(
        method,
        weight_vector=settings.mrr_weight_vector,
        weight_fts=settings.mrr_weight_fts
    )
