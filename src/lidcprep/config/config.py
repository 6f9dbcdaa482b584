"""Main configuration class for lidcprep."""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from .base import (
    AssemblyConfig,
    ConfigLoader,
    IndexConfig,
    LoggingConfig,
    MatchingConfig,
    OutputConfig,
    PathsConfig,
)


@dataclass
class PipelineConfig:
    """Complete stage-1 pipeline configuration."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    index: IndexConfig = field(default_factory=IndexConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    assembly: AssemblyConfig = field(default_factory=AssemblyConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "PipelineConfig":
        """Create configuration from YAML file.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            PipelineConfig object
        """
        config_dict = ConfigLoader.load_yaml(config_path)
        return cls.from_dict(config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "PipelineConfig":
        """Create configuration from dictionary.

        Unknown keys inside a section raise ``TypeError`` from the section
        dataclass, so typos in YAML files surface immediately.

        Args:
            config_dict: Configuration dictionary

        Returns:
            PipelineConfig object
        """
        return cls(
            paths=PathsConfig(**config_dict.get("paths", {})),
            index=IndexConfig(**config_dict.get("index", {})),
            matching=MatchingConfig(**config_dict.get("matching", {})),
            assembly=AssemblyConfig(**config_dict.get("assembly", {})),
            output=OutputConfig(**config_dict.get("output", {})),
            logging=LoggingConfig(**config_dict.get("logging", {})),
        )

    def merge_from_file(self, override_path: str | Path) -> "PipelineConfig":
        """Merge configuration with overrides from another file.

        Args:
            override_path: Path to override configuration file

        Returns:
            New PipelineConfig object with merged configuration
        """
        override_dict = ConfigLoader.load_yaml(override_path)
        return self.merge_from_dict(override_dict)

    def merge_from_dict(self, override_dict: dict[str, Any]) -> "PipelineConfig":
        """Merge configuration with overrides from dictionary.

        Args:
            override_dict: Override configuration dictionary

        Returns:
            New PipelineConfig object with merged configuration
        """
        merged_dict = ConfigLoader.merge_configs(self.to_dict(), override_dict)
        return PipelineConfig.from_dict(merged_dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation of configuration
        """
        return asdict(self)

    def save(self, save_path: str | Path) -> None:
        """Save configuration to YAML file.

        Args:
            save_path: Path to save configuration
        """
        ConfigLoader.save_yaml(self.to_dict(), save_path)

    def __repr__(self) -> str:
        """String representation of configuration."""
        return (
            f"PipelineConfig(input_dir='{self.paths.input_dir}', "
            f"output_dir='{self.paths.output_dir}')"
        )
