"""Default configuration templates."""

from typing import Any

from .base import DEFAULT_EXCLUDED_PATIENTS


def get_default_pipeline_config() -> dict[str, Any]:
    """Get default stage-1 pipeline configuration.

    Returns:
        Default pipeline configuration dictionary
    """
    return {
        "paths": {
            "input_dir": "data/LIDC-IDRI",
            "output_dir": "data/LIDC-IDRI_stage1",
            "nodule_list": "data/cornell_nodule_size_list.csv",
            "case_pattern": "LIDC-IDRI-*",
        },
        "index": {
            "patient_id_prefix": "LIDC-IDRI-",
            "excluded_patients": list(DEFAULT_EXCLUDED_PATIENTS),
            "on_malformed_row": "raise",
        },
        "matching": {
            "zero_pad_retry": True,
        },
        "assembly": {
            "modality": "CT",
            "location_order": "foot_to_head",
        },
        "output": {
            "voxel_dtype": "int32",
            "compression": "none",
            "compression_level": 6,
            "nodule_index_width": 2,
        },
        "logging": {
            "log_file": None,
            "console_log_level": "INFO",
            "file_log_level": "DEBUG",
        },
    }


def get_compressed_output_config() -> dict[str, Any]:
    """Get a configuration writing zlib-compressed volumes.

    Returns:
        Compressed-output configuration dictionary
    """
    config = get_default_pipeline_config()
    config["output"]["compression"] = "zlib"
    return config
