"""Shared fixtures writing synthetic DICOM, XML and CSV inputs."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import numpy as np
import pydicom
import pytest

CT_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.2"

NODULE_LIST_HEADER = "case,scan,roi,volume,eq. diam.,x loc.,y loc.,slice no.,,nodIDs\n"

FULL_CHARACTERISTICS = {
    "subtlety": 5,
    "internalStructure": 1,
    "calcification": 6,
    "sphericity": 4,
    "margin": 5,
    "lobulation": 1,
    "spiculation": 1,
    "texture": 5,
    "malignancy": 3,
}


def write_dicom_slice(
    path: Path,
    *,
    z: float,
    pixels: np.ndarray,
    patient_id: str = "LIDC-IDRI-0001",
    series_number: int = 3000566,
    instance_number: int = 1,
    modality: str = "CT",
    rescale_slope: float = 1.0,
    rescale_intercept: float = -1024.0,
    pixel_spacing: Sequence[float] = (0.7, 0.8),
) -> Path:
    """Write a minimal uncompressed DICOM slice."""

    pixels = np.asarray(pixels, dtype=np.int16)

    ds = pydicom.Dataset()
    ds.PatientID = patient_id
    ds.Modality = modality
    ds.SeriesNumber = series_number
    ds.InstanceNumber = instance_number
    ds.StudyInstanceUID = "1.2.3"
    ds.SeriesInstanceUID = f"1.2.3.{series_number}"
    ds.SOPInstanceUID = f"1.2.3.{series_number}.{instance_number}"
    ds.SOPClassUID = CT_IMAGE_STORAGE
    ds.ImagePositionPatient = [-150.0, -150.0, z]
    ds.PixelSpacing = list(pixel_spacing)
    ds.RescaleSlope = rescale_slope
    ds.RescaleIntercept = rescale_intercept
    ds.Rows, ds.Columns = pixels.shape
    ds.SamplesPerPixel = 1
    ds.PhotometricInterpretation = "MONOCHROME2"
    ds.BitsAllocated = 16
    ds.BitsStored = 16
    ds.HighBit = 15
    ds.PixelRepresentation = 1
    ds.PixelData = pixels.tobytes()

    ds.file_meta = pydicom.dataset.FileMetaDataset()
    ds.file_meta.TransferSyntaxUID = pydicom.uid.ExplicitVRLittleEndian
    ds.file_meta.MediaStorageSOPClassUID = ds.SOPClassUID
    ds.file_meta.MediaStorageSOPInstanceUID = ds.SOPInstanceUID

    path.parent.mkdir(parents=True, exist_ok=True)
    ds.save_as(str(path), enforce_file_format=True)
    return path


def reading_xml(nodule_id: str, characteristics: dict[str, object] | None = None) -> str:
    """Build one ``unblindedReadNodule`` element."""

    body = f"<noduleID>{nodule_id}</noduleID>"
    if characteristics is not None:
        leaves = "".join(f"<{tag}>{value}</{tag}>" for tag, value in characteristics.items())
        body += f"<characteristics>{leaves}</characteristics>"
    return f"<unblindedReadNodule>{body}</unblindedReadNodule>"


def lidc_xml(*readings: str, namespace: str | None = "http://www.nih.gov") -> str:
    """Wrap readings into a LIDC reading document."""

    xmlns = f' xmlns="{namespace}"' if namespace else ""
    sessions = "".join(f"<readingSession>{reading}</readingSession>" for reading in readings)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f"<LidcReadMessage{xmlns}>"
        "<ResponseHeader><SeriesInstanceUid>1.2.3</SeriesInstanceUid></ResponseHeader>"
        f"{sessions}"
        "</LidcReadMessage>\n"
    )


@pytest.fixture
def slice_writer() -> Callable[..., Path]:
    return write_dicom_slice


@pytest.fixture
def nodule_list_writer(tmp_path: Path) -> Callable[[Sequence[str]], Path]:
    def _write(rows: Sequence[str], name: str = "nodule_list.csv") -> Path:
        path = tmp_path / name
        path.write_text(NODULE_LIST_HEADER + "".join(f"{row}\n" for row in rows), encoding="utf-8")
        return path

    return _write
