"""
Configuration Module

This module provides centralized configuration management for hybrid
operations:
- Default rerank strategy and its parameters
- Hybrid query execution settings
- Milvus connection and collection layout
- Logging and metrics settings

Settings are loaded from environment variables and YAML files and
validated with Pydantic.
"""

from .settings import (
    HybridOpsSettings,
    RerankerSettings,
    QuerySettings,
    MilvusSettings,
    MonitoringSettings,
    load_settings,
    configure_logging,
)

__all__ = [
    'HybridOpsSettings',
    'RerankerSettings',
    'QuerySettings',
    'MilvusSettings',
    'MonitoringSettings',
    'load_settings',
    'configure_logging',
]
