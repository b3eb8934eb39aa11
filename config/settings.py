"""
Pydantic Settings for Hybrid Operations

This module provides strongly-typed configuration settings using Pydantic,
with support for environment variables and YAML configuration files.
"""

from typing import Optional, Union
from pathlib import Path
import logging
import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_yaml import to_yaml_file, to_yaml_str

from fusion_operations.config.base import DistanceType, RerankMethod
from hybrid_ops_exceptions import ConfigurationError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class RerankerSettings(BaseSettings):
    """
    Default rerank strategy for hybrid queries.

    Only the parameters of the selected method are used; the others are
    kept so the method can be switched from the environment alone.
    """
    method: RerankMethod = Field(RerankMethod.RRF,
                                 description="Rerank strategy (rrf, linear or mrr)")
    rrf_k: float = Field(60.0, gt=0,
                         description="RRF constant; larger values flatten the advantage of top-ranked rows")
    linear_weight: float = Field(0.7, ge=0, le=1,
                                 description="Weight of the vector score in the linear combination")
    linear_fill: float = Field(1.0, ge=0,
                               description="Distance/score assumed for rows missing from one side")
    mrr_weight_vector: float = Field(0.5, ge=0, le=1,
                                     description="Weight of the vector reciprocal rank")
    mrr_weight_fts: float = Field(0.5, ge=0, le=1,
                                  description="Weight of the full-text reciprocal rank")

    model_config = SettingsConfigDict(env_prefix="HYBRID_RERANKER_", case_sensitive=False)


class QuerySettings(BaseSettings):
    """
    Execution settings for hybrid queries.

    ``sub_search_limit`` is the number of candidates each sub-search
    returns; the final limit/offset of a query is always applied after
    fusion and is not configured here.
    """
    sub_search_limit: int = Field(100, gt=0,
                                  description="Candidates requested from each sub-search")
    timeout: float = Field(30.0, gt=0,
                           description="Timeout in seconds for each sub-search")
    concurrent_sub_searches: bool = Field(True,
                                          description="Run the vector and full-text sub-searches concurrently")

    model_config = SettingsConfigDict(env_prefix="HYBRID_QUERY_", case_sensitive=False)


class MilvusSettings(BaseSettings):
    """
    Milvus connection and collection layout used by MilvusSearchExecutor.

    The collection is expected to hold an integer primary key, a dense
    vector field and a sparse field populated by a BM25 function over a
    text field.
    """
    uri: str = Field("http://localhost:19530",
                     description="URI of the Milvus server")
    token: str = Field("",
                       description="Authentication token, 'user:password' or API key")
    db_name: str = Field("default",
                         description="Database holding the collection")
    connect_timeout: float = Field(60.0, gt=0,
                                   description="Connection timeout in seconds")
    vector_field: str = Field("vector",
                              description="Dense vector field searched by the vector sub-search")
    sparse_field: str = Field("sparse",
                              description="BM25 sparse field searched by the full-text sub-search")
    text_field: str = Field("text",
                            description="Text field the BM25 function is built on")
    distance_type: DistanceType = Field(DistanceType.COSINE,
                                        description="Distance metric of the dense vector index")
    max_workers: int = Field(4, gt=0,
                             description="Threads running blocking pymilvus calls")
    drop_ratio_search: float = Field(0.2, ge=0, lt=1,
                                     description="Share of small query terms ignored by BM25 search")

    model_config = SettingsConfigDict(env_prefix="HYBRID_MILVUS_", case_sensitive=False)


class MonitoringSettings(BaseSettings):
    """
    Monitoring settings for hybrid operations.

    These settings configure logging verbosity and per-query metrics
    collection.
    """
    log_level: str = Field("INFO",
                           description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
    enable_metrics: bool = Field(True,
                                 description="Whether to collect per-query metrics")
    metrics_history_size: int = Field(1000, gt=0,
                                      description="Number of query metrics kept in memory")

    model_config = SettingsConfigDict(env_prefix="HYBRID_MONITORING_", case_sensitive=False)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Normalize and check the logging level name"""
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {v}")
        return level


class HybridOpsSettings(BaseSettings):
    """
    Main settings class that consolidates all configuration categories.

    Usage:
        # Load from environment variables and defaults
        settings = HybridOpsSettings()

        # Load from YAML file
        settings = HybridOpsSettings.from_yaml('config.yaml')

        # Access nested settings
        k = settings.reranker.rrf_k
        uri = settings.milvus.uri

    Nested values can be overridden from the environment with the ``__``
    delimiter, e.g. ``HYBRID_RERANKER__METHOD=linear``.
    """
    reranker: RerankerSettings = Field(default_factory=RerankerSettings,
                                       description="Default rerank strategy")
    query: QuerySettings = Field(default_factory=QuerySettings,
                                 description="Hybrid query execution settings")
    milvus: MilvusSettings = Field(default_factory=MilvusSettings,
                                   description="Milvus connection and collection layout")
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings,
                                           description="Logging and metrics settings")

    model_config = SettingsConfigDict(
        env_prefix="HYBRID_",
        case_sensitive=False,
        env_nested_delimiter="__",
    )

    @classmethod
    def from_yaml(cls, yaml_file: Union[str, Path]) -> "HybridOpsSettings":
        """Load settings from YAML file"""
        import yaml
        try:
            with open(yaml_file, 'r') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {yaml_file}: {str(e)}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Settings file {yaml_file} must contain a mapping, got {type(data).__name__}"
            )
        return cls(**data)

    def to_yaml(self) -> str:
        """Render the effective settings as YAML"""
        return to_yaml_str(self)

    def save(self, yaml_file: Union[str, Path]) -> None:
        """Write the effective settings to a YAML file"""
        to_yaml_file(Path(yaml_file), self)


def load_settings(config_path: Optional[str] = None) -> HybridOpsSettings:
    """
    Load settings from file and/or environment variables.

    Args:
        config_path: Path to YAML configuration file. If None or file doesn't exist,
                    falls back to environment variables and default values.

    Returns:
        HybridOpsSettings object with loaded configuration

    Example:
        # Load from specific config file
        settings = load_settings("/path/to/config.yaml")

        # Load from environment variables and defaults
        settings = load_settings()
    """
    if config_path and os.path.exists(config_path):
        return HybridOpsSettings.from_yaml(config_path)
    return HybridOpsSettings()


def configure_logging(settings: HybridOpsSettings) -> None:
    """
    Apply the monitoring log level to the package loggers.

    The library never configures logging on import; applications call this
    once at startup if they want the configured level.
    """
    level = getattr(logging, settings.monitoring.log_level)
    for name in ("fusion_operations", "config"):
        logging.getLogger(name).setLevel(level)
