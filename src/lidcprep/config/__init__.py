"""Configuration management."""

from .base import (
    DEFAULT_EXCLUDED_PATIENTS,
    AssemblyConfig,
    ConfigLoader,
    IndexConfig,
    LoggingConfig,
    MatchingConfig,
    OutputConfig,
    PathsConfig,
)
from .config import PipelineConfig
from .defaults import get_compressed_output_config, get_default_pipeline_config

__all__ = [
    # Main config class
    "PipelineConfig",
    # Component configs
    "PathsConfig",
    "IndexConfig",
    "MatchingConfig",
    "AssemblyConfig",
    "OutputConfig",
    "LoggingConfig",
    "DEFAULT_EXCLUDED_PATIENTS",
    # Utilities
    "ConfigLoader",
    # Default configs
    "get_default_pipeline_config",
    "get_compressed_output_config",
]
