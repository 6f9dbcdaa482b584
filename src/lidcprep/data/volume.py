"""Assemble CT volumes from individual DICOM slices.

Slices are ordered by the z component of ImagePositionPatient. The
orientation is not checked against ImageOrientationPatient: increasing
slice location is assumed to move from foot to head, which holds for the
LIDC-IDRI collection. ``location_order="head_to_foot"`` flips that
assumption for other sources.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from pathlib import Path

import numpy as np
import pydicom
from pydicom.dataset import Dataset

__all__ = [
    "InsufficientSlicesError",
    "ScanGeometry",
    "ScanVolume",
    "SeriesCalibration",
    "SliceRecord",
    "VolumeAssembler",
    "read_slice",
    "read_slices",
]

logger = logging.getLogger(__name__)

LOCATION_ORDERS = ("foot_to_head", "head_to_foot")


class InsufficientSlicesError(ValueError):
    """Raised when a series has too few slices to derive a slice thickness."""


@dataclass(frozen=True, slots=True)
class SliceRecord:
    """A single decoded slice, alive only while its series is assembled."""

    slice_location: float
    slice_number: int
    modality: str
    pixels: np.ndarray | None


@dataclass(frozen=True, slots=True)
class SeriesCalibration:
    """Per-series constants read once from the representative slice."""

    rescale_slope: float = 1.0
    rescale_intercept: float = 0.0
    row_spacing: float = 1.0
    column_spacing: float = 1.0

    @classmethod
    def from_dataset(cls, ds: Dataset) -> "SeriesCalibration":
        """Read rescale and pixel spacing values from a DICOM header."""

        # Blank elements read as None and fall back to the defaults
        slope = ds.get("RescaleSlope")
        slope = 1.0 if slope is None else float(slope)
        intercept = ds.get("RescaleIntercept")
        intercept = 0.0 if intercept is None else float(intercept)

        spacing = _element_values(ds, "PixelSpacing")
        if spacing is None:
            row_spacing, column_spacing = 1.0, 1.0
        elif len(spacing) != 2:
            raise ValueError(f"PixelSpacing must have 2 values, got {len(spacing)}")
        else:
            row_spacing, column_spacing = float(spacing[0]), float(spacing[1])

        return cls(
            rescale_slope=slope,
            rescale_intercept=intercept,
            row_spacing=row_spacing,
            column_spacing=column_spacing,
        )

    @classmethod
    def from_path(cls, filepath: str | Path) -> "SeriesCalibration":
        return cls.from_dataset(pydicom.dcmread(str(filepath), stop_before_pixels=True))


@dataclass(frozen=True, slots=True)
class ScanGeometry:
    """Scan-level metadata of an assembled volume."""

    cols: int
    rows: int
    slices: int
    slice_thickness: float
    row_spacing: float
    column_spacing: float

    def to_dict(self) -> dict[str, float | int]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ScanVolume:
    """Dense voxel grid addressed (depth, row, col) plus its geometry."""

    voxels: np.ndarray
    geometry: ScanGeometry


def _element_values(ds: Dataset, keyword: str) -> list | None:
    """Values of a multi-valued element as a list, or None when blank or absent."""

    value = ds.get(keyword)
    if value is None:
        return None
    if isinstance(value, Sequence) and not isinstance(value, str):
        return list(value) or None
    return [value]


def read_slice(filepath: str | Path, modality: str | None = None) -> SliceRecord | None:
    """Read one DICOM file into a ``SliceRecord``.

    When ``modality`` is given, files of any other modality are skipped
    before their position is checked or their pixels decoded. Pixel data is
    decoded only when the file carries it.

    Returns:
        The ``SliceRecord``, or None for a file of another modality.

    Raises:
        ValueError: If the file lacks ImagePositionPatient.
    """
    filepath = Path(filepath)
    ds = pydicom.dcmread(str(filepath))

    file_modality = str(ds.get("Modality") or "")
    if modality is not None and file_modality != modality:
        logger.debug(f"Skipping {file_modality or 'untyped'} object {filepath.name}")
        return None

    position = _element_values(ds, "ImagePositionPatient")
    if position is None or len(position) != 3:
        raise ValueError(f"DICOM file {filepath} missing ImagePositionPatient")

    instance_number = ds.get("InstanceNumber")
    pixels = ds.pixel_array if "PixelData" in ds else None

    return SliceRecord(
        slice_location=float(position[2]),
        slice_number=0 if instance_number is None else int(instance_number),
        modality=file_modality,
        pixels=pixels,
    )


def read_slices(filepaths: Iterable[str | Path], modality: str | None = None) -> list[SliceRecord]:
    """Read the DICOM files of a series in the given order.

    Files of a modality other than ``modality`` are left out.
    """

    records = (read_slice(filepath, modality) for filepath in filepaths)
    return [record for record in records if record is not None]


class VolumeAssembler:
    """Order slices, derive geometry, rescale and build the voxel grid."""

    def __init__(
        self,
        modality: str = "CT",
        location_order: str = "foot_to_head",
        dtype: str | np.dtype = "int32",
    ) -> None:
        if location_order not in LOCATION_ORDERS:
            raise ValueError(f"location_order must be one of {LOCATION_ORDERS}, got {location_order!r}")
        self.modality = modality
        self.location_order = location_order
        self.dtype = np.dtype(dtype)

    def select_slices(self, slices: Iterable[SliceRecord]) -> list[SliceRecord]:
        """Keep slices of the configured modality that carry pixel data."""

        return [s for s in slices if s.modality == self.modality and s.pixels is not None]

    @staticmethod
    def slice_thickness(sorted_slices: Sequence[SliceRecord]) -> float:
        """Mean spacing between the first and last slice.

        Raises:
            InsufficientSlicesError: If fewer than two slices are given.
        """
        if len(sorted_slices) < 2:
            raise InsufficientSlicesError(
                f"At least 2 slices are required to derive slice thickness, got {len(sorted_slices)}"
            )
        first = sorted_slices[0].slice_location
        last = sorted_slices[-1].slice_location
        return abs(last - first) / (len(sorted_slices) - 1)

    def assemble(self, slices: Iterable[SliceRecord], calibration: SeriesCalibration) -> ScanVolume:
        """Build the rescaled volume of one series.

        With the default ``foot_to_head`` order, depth index 0 holds the most
        cranial slice (largest slice location).

        Args:
            slices: Every slice read from the series directory.
            calibration: Rescale and spacing constants of the series.

        Returns:
            The ``ScanVolume``.

        Raises:
            InsufficientSlicesError: If fewer than two slices remain after
                modality filtering.
        """
        retained = self.select_slices(slices)
        if len(retained) < 2:
            raise InsufficientSlicesError(
                f"Series has {len(retained)} {self.modality} slice(s); at least 2 are required"
            )

        rows, cols = retained[0].pixels.shape

        ordered = sorted(retained, key=lambda s: s.slice_location)
        locations = [s.slice_location for s in ordered]
        if len(set(locations)) != len(locations):
            logger.warning(f"Duplicate slice locations in series of {len(ordered)} slices")

        thickness = self.slice_thickness(ordered)

        if self.location_order == "foot_to_head":
            ordered.reverse()

        raw = np.empty((len(ordered), rows, cols), dtype=np.float64)
        for depth, record in enumerate(ordered):
            raw[depth] = record.pixels

        voxels = raw * calibration.rescale_slope + calibration.rescale_intercept
        if np.issubdtype(self.dtype, np.integer):
            voxels = np.rint(voxels)
        voxels = voxels.astype(self.dtype)

        geometry = ScanGeometry(
            cols=int(cols),
            rows=int(rows),
            slices=len(ordered),
            slice_thickness=float(thickness),
            row_spacing=calibration.row_spacing,
            column_spacing=calibration.column_spacing,
        )

        logger.debug(f"Assembled volume shape={voxels.shape} thickness={thickness:.3f}")

        return ScanVolume(voxels=voxels, geometry=geometry)
