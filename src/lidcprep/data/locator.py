"""Locate the annotation document and DICOM slices of a series directory.

The LIDC-IDRI download is laid out as::

    <input_root>/LIDC-IDRI-0001/<study uid>/<series uid>/{*.dcm, *.xml}

Each case directory holds one or more study directories; the XML reading
document sits next to the slices it annotates.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import pydicom
from pydicom.dataset import Dataset

from .records import make_series_key

__all__ = [
    "SeriesLocation",
    "SeriesLocator",
    "iter_series_dirs",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SeriesLocation:
    """Files and identity of one scan inside a series directory."""

    patient_id: str
    series_number: int
    annotation_path: Path
    image_paths: tuple[Path, ...]

    @property
    def key(self) -> str:
        return make_series_key(self.patient_id, self.series_number)

    @property
    def representative_path(self) -> Path:
        return self.image_paths[0]


def iter_series_dirs(input_root: str | Path, case_pattern: str = "LIDC-IDRI-*") -> Iterator[Path]:
    """Yield ``<case>/<series>`` directories under ``input_root`` in sorted order."""

    root = Path(input_root)
    if not root.is_dir():
        raise FileNotFoundError(f"Input directory not found: {root}")

    for case_dir in sorted(p for p in root.glob(case_pattern) if p.is_dir()):
        for scan_dir in sorted(p for p in case_dir.iterdir() if p.is_dir()):
            yield scan_dir


class SeriesLocator:
    """Derive the ``patient/series`` key of a series directory."""

    annotation_glob = "**/*.xml"
    image_glob = "*.dcm"

    def locate(self, scan_dir: str | Path) -> SeriesLocation | None:
        """Find the annotation document and image files of ``scan_dir``.

        The lexicographically first XML document in the subtree is used; the
        images are the DICOM files next to it and the first of them is the
        representative slice whose header provides the key.

        Args:
            scan_dir: Directory to inspect.

        Returns:
            The ``SeriesLocation``, or None when the subtree has no
            annotation document or no DICOM file beside it.

        Raises:
            pydicom.errors.InvalidDicomError: If the representative file is
                not readable DICOM.
            ValueError: If the representative header lacks PatientID or
                SeriesNumber.
        """
        scan_dir = Path(scan_dir)

        annotation_files = sorted(scan_dir.glob(self.annotation_glob))
        if not annotation_files:
            logger.debug(f"No annotation document under {scan_dir}")
            return None

        annotation_path = annotation_files[0]
        image_paths = tuple(sorted(annotation_path.parent.glob(self.image_glob)))
        if not image_paths:
            logger.debug(f"No DICOM files beside {annotation_path}")
            return None

        header = pydicom.dcmread(str(image_paths[0]), stop_before_pixels=True)
        patient_id, series_number = self.read_identity(header)

        return SeriesLocation(
            patient_id=patient_id,
            series_number=series_number,
            annotation_path=annotation_path,
            image_paths=image_paths,
        )

    @staticmethod
    def read_identity(ds: Dataset) -> tuple[str, int]:
        """Extract (PatientID, SeriesNumber) from a DICOM header."""

        patient_id = str(getattr(ds, "PatientID", "") or "").strip()
        if not patient_id:
            raise ValueError("DICOM header missing PatientID")

        series_value = getattr(ds, "SeriesNumber", None)
        if series_value is None or not str(series_value).strip():
            raise ValueError(f"DICOM header missing SeriesNumber for {patient_id}")

        return patient_id, int(series_value)
