"""Base configuration classes and utilities."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_EXCLUDED_PATIENTS: tuple[str, ...] = (
    "LIDC-IDRI-0107",
    "LIDC-IDRI-0123",
    "LIDC-IDRI-0146",
    "LIDC-IDRI-0340",
    "LIDC-IDRI-0418",
    "LIDC-IDRI-0566",
    "LIDC-IDRI-0572",
    "LIDC-IDRI-0672",
    "LIDC-IDRI-0979",
)

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class PathsConfig:
    """Input and output locations."""

    input_dir: str = "data/LIDC-IDRI"
    output_dir: str = "data/LIDC-IDRI_stage1"
    nodule_list: str = "data/cornell_nodule_size_list.csv"
    case_pattern: str = "LIDC-IDRI-*"

    def __post_init__(self):
        """Validate configuration."""
        for name in ("input_dir", "output_dir", "nodule_list", "case_pattern"):
            if not str(getattr(self, name)).strip():
                raise ValueError(f"{name} must not be empty")


@dataclass
class IndexConfig:
    """Nodule list parsing and whitelist configuration."""

    patient_id_prefix: str = "LIDC-IDRI-"
    excluded_patients: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_PATIENTS))
    on_malformed_row: str = "raise"  # 'raise' or 'skip'

    def __post_init__(self):
        """Validate configuration."""
        if self.on_malformed_row not in ["raise", "skip"]:
            raise ValueError("on_malformed_row must be 'raise' or 'skip'")


@dataclass
class MatchingConfig:
    """Nodule identifier resolution configuration."""

    zero_pad_retry: bool = True


@dataclass
class AssemblyConfig:
    """Volume assembly configuration."""

    modality: str = "CT"
    # Direction assumed for increasing slice location
    location_order: str = "foot_to_head"

    def __post_init__(self):
        """Validate configuration."""
        if not self.modality.strip():
            raise ValueError("modality must not be empty")
        if self.location_order not in ["foot_to_head", "head_to_foot"]:
            raise ValueError("location_order must be 'foot_to_head' or 'head_to_foot'")


@dataclass
class OutputConfig:
    """Output encoding configuration."""

    voxel_dtype: str = "int32"
    compression: str = "none"  # 'none' or 'zlib'
    compression_level: int = 6
    nodule_index_width: int = 2

    def __post_init__(self):
        """Validate configuration."""
        if self.voxel_dtype not in ["int16", "int32", "float32"]:
            raise ValueError("voxel_dtype must be 'int16', 'int32', or 'float32'")
        if self.compression not in ["none", "zlib"]:
            raise ValueError("compression must be 'none' or 'zlib'")
        if not 0 <= self.compression_level <= 9:
            raise ValueError("compression_level must be in [0, 9]")
        if self.nodule_index_width < 1:
            raise ValueError("nodule_index_width must be >= 1")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_file: str | None = None
    console_log_level: str = "INFO"
    file_log_level: str = "DEBUG"

    def __post_init__(self):
        """Validate configuration."""
        if self.console_log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"console_log_level must be one of {VALID_LOG_LEVELS}")
        if self.file_log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"file_log_level must be one of {VALID_LOG_LEVELS}")


class ConfigLoader:
    """Utility class for loading and merging configurations."""

    @staticmethod
    def load_yaml(config_path: str | Path) -> dict[str, Any]:
        """Load configuration from YAML file.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Dictionary containing configuration
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            config = yaml.safe_load(f)

        return config or {}

    @staticmethod
    def save_yaml(config: dict[str, Any], save_path: str | Path) -> None:
        """Save configuration to YAML file.

        Args:
            config: Configuration dictionary
            save_path: Path to save configuration
        """
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)

        with open(save_path, "w") as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)

    @staticmethod
    def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Recursively merge override config into base config.

        Args:
            base: Base configuration dictionary
            override: Override configuration dictionary

        Returns:
            Merged configuration dictionary
        """
        merged = base.copy()

        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = ConfigLoader.merge_configs(merged[key], value)
            else:
                merged[key] = value

        return merged
