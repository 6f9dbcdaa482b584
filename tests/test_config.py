"""Tests for configuration management system."""

from pathlib import Path

import pytest
import yaml

from lidcprep.config import (
    AssemblyConfig,
    ConfigLoader,
    IndexConfig,
    LoggingConfig,
    OutputConfig,
    PathsConfig,
    PipelineConfig,
    get_compressed_output_config,
    get_default_pipeline_config,
)

REPO_ROOT = Path(__file__).resolve().parents[1]


class TestPathsConfig:
    """Tests for PathsConfig."""

    def test_default_values(self):
        """Test default configuration values."""
        config = PathsConfig()
        assert config.input_dir == "data/LIDC-IDRI"
        assert config.case_pattern == "LIDC-IDRI-*"

    def test_validation(self):
        """Test configuration validation."""
        with pytest.raises(ValueError):
            PathsConfig(input_dir="")
        with pytest.raises(ValueError):
            PathsConfig(nodule_list="  ")


class TestIndexConfig:
    """Tests for IndexConfig."""

    def test_default_exclusions(self):
        """Test the known-corrupted cases are excluded by default."""
        config = IndexConfig()
        assert len(config.excluded_patients) == 9
        assert "LIDC-IDRI-0979" in config.excluded_patients
        assert config.on_malformed_row == "raise"

    def test_defaults_are_not_shared(self):
        """Test each instance owns its exclusion list."""
        first = IndexConfig()
        first.excluded_patients.append("LIDC-IDRI-0001")
        assert "LIDC-IDRI-0001" not in IndexConfig().excluded_patients

    def test_validation(self):
        """Test configuration validation."""
        with pytest.raises(ValueError):
            IndexConfig(on_malformed_row="ignore")


class TestAssemblyConfig:
    """Tests for AssemblyConfig."""

    def test_validation(self):
        """Test configuration validation."""
        with pytest.raises(ValueError):
            AssemblyConfig(modality="")
        with pytest.raises(ValueError):
            AssemblyConfig(location_order="sideways")


class TestOutputConfig:
    """Tests for OutputConfig."""

    def test_default_values(self):
        """Test default configuration values."""
        config = OutputConfig()
        assert config.voxel_dtype == "int32"
        assert config.compression == "none"
        assert config.nodule_index_width == 2

    def test_validation(self):
        """Test configuration validation."""
        with pytest.raises(ValueError):
            OutputConfig(voxel_dtype="uint8")
        with pytest.raises(ValueError):
            OutputConfig(compression="gzip")
        with pytest.raises(ValueError):
            OutputConfig(compression_level=10)
        with pytest.raises(ValueError):
            OutputConfig(nodule_index_width=0)


class TestLoggingConfig:
    """Tests for LoggingConfig."""

    def test_validation(self):
        """Test configuration validation."""
        with pytest.raises(ValueError):
            LoggingConfig(console_log_level="VERBOSE")
        with pytest.raises(ValueError):
            LoggingConfig(file_log_level="info")


class TestConfigLoader:
    """Tests for ConfigLoader."""

    def test_load_missing_file(self, tmp_path):
        """Test loading a missing file."""
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load_yaml(tmp_path / "missing.yaml")

    def test_load_empty_file(self, tmp_path):
        """Test an empty file loads as an empty dictionary."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert ConfigLoader.load_yaml(path) == {}

    def test_save_and_load(self, tmp_path):
        """Test saving and loading YAML."""
        path = tmp_path / "nested" / "config.yaml"
        ConfigLoader.save_yaml({"a": 1, "b": {"c": [1, 2]}}, path)
        assert ConfigLoader.load_yaml(path) == {"a": 1, "b": {"c": [1, 2]}}

    def test_merge_configs(self):
        """Test recursive merging."""
        base = {"a": 1, "b": {"c": 2, "d": 3}}
        override = {"b": {"c": 20}, "e": 5}

        merged = ConfigLoader.merge_configs(base, override)

        assert merged == {"a": 1, "b": {"c": 20, "d": 3}, "e": 5}
        assert base["b"]["c"] == 2


class TestPipelineConfig:
    """Tests for PipelineConfig."""

    def test_from_dict(self):
        """Test creating configuration from dictionary."""
        config = PipelineConfig.from_dict(
            {"paths": {"input_dir": "/in"}, "output": {"compression": "zlib"}}
        )
        assert config.paths.input_dir == "/in"
        assert config.paths.output_dir == "data/LIDC-IDRI_stage1"
        assert config.output.compression == "zlib"
        assert config.matching.zero_pad_retry is True

    def test_from_dict_rejects_unknown_keys(self):
        """Test typos in a section are reported."""
        with pytest.raises(TypeError):
            PipelineConfig.from_dict({"output": {"compresion": "zlib"}})

    def test_defaults_match_template(self):
        """Test the dataclass defaults agree with the default template."""
        assert PipelineConfig().to_dict() == get_default_pipeline_config()

    def test_shipped_default_yaml_matches_template(self):
        """Test configs/default.yaml agrees with the default template."""
        config = PipelineConfig.from_yaml(REPO_ROOT / "configs" / "default.yaml")
        assert config.to_dict() == get_default_pipeline_config()

    def test_compressed_template(self):
        """Test the compressed-output template."""
        config = PipelineConfig.from_dict(get_compressed_output_config())
        assert config.output.compression == "zlib"

    def test_yaml_round_trip(self, tmp_path):
        """Test saving and reloading configuration."""
        config = PipelineConfig.from_dict({"assembly": {"location_order": "head_to_foot"}})
        path = tmp_path / "config.yaml"

        config.save(path)

        with open(path) as f:
            raw = yaml.safe_load(f)
        assert raw["assembly"]["location_order"] == "head_to_foot"
        assert PipelineConfig.from_yaml(path) == config

    def test_merge_from_dict(self):
        """Test merging overrides returns a new configuration."""
        config = PipelineConfig()

        merged = config.merge_from_dict({"paths": {"output_dir": "/out"}, "logging": {"log_file": "run.log"}})

        assert merged.paths.output_dir == "/out"
        assert merged.paths.input_dir == config.paths.input_dir
        assert merged.logging.log_file == "run.log"
        assert config.paths.output_dir == "data/LIDC-IDRI_stage1"

    def test_merge_from_file(self, tmp_path):
        """Test merging overrides from a file."""
        path = tmp_path / "override.yaml"
        path.write_text("matching:\n  zero_pad_retry: false\n")

        merged = PipelineConfig().merge_from_file(path)

        assert merged.matching.zero_pad_retry is False

    def test_merge_validates(self):
        """Test invalid overrides are rejected."""
        with pytest.raises(ValueError):
            PipelineConfig().merge_from_dict({"output": {"voxel_dtype": "complex64"}})

    def test_repr(self):
        """Test string representation."""
        assert "input_dir='data/LIDC-IDRI'" in repr(PipelineConfig())
