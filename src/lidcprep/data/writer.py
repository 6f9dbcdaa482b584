"""Persist stage-1 results to one directory per scan.

Layout of ``<output_root>/<patient>/<series>/``::

    nodule_01_metadata.json ...   one file per nodule list record
    scan_metadata.json            geometry plus voxel encoding
    scan.dat | scan.dat.zlib      raw C-order voxel dump (depth, rows, cols)

A location that already exists is treated as processed and never
rewritten, even when the inputs changed since. Delete the directory to
force a rebuild.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import zlib
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import numpy as np

from .annotations import NoduleAnnotation
from .volume import ScanGeometry

__all__ = [
    "OutputWriter",
    "read_volume",
]

logger = logging.getLogger(__name__)

SCAN_METADATA_FILENAME = "scan_metadata.json"
VOLUME_FILENAMES = {"none": "scan.dat", "zlib": "scan.dat.zlib"}


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
        f.write("\n")


class OutputWriter:
    """Write nodule metadata, scan metadata and voxel data of one scan."""

    def __init__(
        self,
        dtype: str | np.dtype = "int32",
        compression: str = "none",
        compression_level: int = 6,
        nodule_index_width: int = 2,
    ) -> None:
        if compression not in VOLUME_FILENAMES:
            raise ValueError(f"compression must be one of {sorted(VOLUME_FILENAMES)}, got {compression!r}")
        # Fixed little-endian encoding regardless of host byte order
        self.dtype = np.dtype(dtype).newbyteorder("<")
        self.compression = compression
        self.compression_level = compression_level
        self.nodule_index_width = nodule_index_width

    @property
    def volume_filename(self) -> str:
        return VOLUME_FILENAMES[self.compression]

    def nodule_filename(self, index: int) -> str:
        return f"nodule_{index:0{self.nodule_index_width}d}_metadata.json"

    def encode_volume(self, volume: np.ndarray) -> bytes:
        data = np.ascontiguousarray(volume, dtype=self.dtype).tobytes(order="C")
        if self.compression == "zlib":
            data = zlib.compress(data, self.compression_level)
        return data

    def scan_metadata(self, geometry: ScanGeometry) -> dict[str, Any]:
        metadata: dict[str, Any] = geometry.to_dict()
        metadata["voxel_dtype"] = self.dtype.str
        metadata["compression"] = self.compression
        metadata["volume_file"] = self.volume_filename
        return metadata

    def write(
        self,
        location: str | Path,
        nodule_annotations: Sequence[NoduleAnnotation],
        geometry: ScanGeometry,
        volume: np.ndarray,
    ) -> bool:
        """Write all outputs of one scan unless ``location`` already exists.

        Files are staged in a sibling temporary directory which is renamed to
        ``location`` once complete, so an interrupted write never leaves a
        location that looks processed.

        Args:
            location: Output directory of the scan.
            nodule_annotations: Matched nodule list records, in list order.
            geometry: Scan-level metadata.
            volume: Voxel grid shaped (depth, rows, cols).

        Returns:
            True if the outputs were written, False if the location existed.
        """
        location = Path(location)
        if location.exists():
            logger.info(f"Output already exists, skipping: {location}")
            return False

        expected_shape = (geometry.slices, geometry.rows, geometry.cols)
        if tuple(volume.shape) != expected_shape:
            raise ValueError(f"Volume shape {volume.shape} does not match geometry {expected_shape}")

        location.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{location.name}.", dir=location.parent))
        try:
            # mkdtemp is owner-only; published locations follow the umask
            staging.chmod(0o777 & ~_current_umask())

            for i, annotation in enumerate(nodule_annotations, start=1):
                _write_json(staging / self.nodule_filename(i), annotation.to_dict())

            _write_json(staging / SCAN_METADATA_FILENAME, self.scan_metadata(geometry))

            with open(staging / self.volume_filename, "wb") as f:
                f.write(self.encode_volume(volume))

            staging.rename(location)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        logger.info(f"Wrote {len(nodule_annotations)} nodule record(s) and volume {volume.shape} to {location}")
        return True


def read_volume(location: str | Path) -> tuple[np.ndarray, dict[str, Any]]:
    """Load the voxel grid and scan metadata written by ``OutputWriter``.

    Returns:
        Tuple of (volume shaped (slices, rows, cols), scan metadata)

    Raises:
        FileNotFoundError: If the scan metadata or volume file is missing.
    """
    location = Path(location)
    metadata_path = location / SCAN_METADATA_FILENAME
    if not metadata_path.exists():
        raise FileNotFoundError(f"Scan metadata not found: {metadata_path}")

    with open(metadata_path, encoding="utf-8") as f:
        metadata = json.load(f)

    compression = metadata.get("compression", "none")
    volume_path = location / metadata.get("volume_file", VOLUME_FILENAMES[compression])
    if not volume_path.exists():
        raise FileNotFoundError(f"Volume file not found: {volume_path}")

    data = volume_path.read_bytes()
    if compression == "zlib":
        data = zlib.decompress(data)

    dtype = np.dtype(metadata.get("voxel_dtype", "<i4"))
    shape = (metadata["slices"], metadata["rows"], metadata["cols"])
    return np.frombuffer(data, dtype=dtype).reshape(shape), metadata
