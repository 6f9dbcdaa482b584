"""Tests for series discovery."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pydicom
import pytest

from conftest import lidc_xml, write_dicom_slice
from lidcprep.data.locator import SeriesLocator, iter_series_dirs

PIXELS = np.zeros((2, 2), dtype=np.int16)


def _make_series(series_dir: Path, *, patient_id: str = "LIDC-IDRI-0001", series_number: int = 3000566) -> None:
    for i, z in enumerate([-10.0, -7.5]):
        write_dicom_slice(
            series_dir / f"{i:06d}.dcm",
            z=z,
            pixels=PIXELS,
            patient_id=patient_id,
            series_number=series_number,
            instance_number=i + 1,
        )


class TestSeriesLocator:
    """Tests for ``SeriesLocator.locate``."""

    def test_locates_key_and_files(self, tmp_path: Path):
        series_dir = tmp_path / "study" / "series"
        _make_series(series_dir)
        (series_dir / "069.xml").write_text(lidc_xml(), encoding="utf-8")

        location = SeriesLocator().locate(tmp_path)

        assert location is not None
        assert location.key == "LIDC-IDRI-0001/3000566"
        assert location.patient_id == "LIDC-IDRI-0001"
        assert location.series_number == 3000566
        assert location.annotation_path == series_dir / "069.xml"
        assert [p.name for p in location.image_paths] == ["000000.dcm", "000001.dcm"]
        assert location.representative_path == series_dir / "000000.dcm"

    def test_picks_lexicographically_first_document(self, tmp_path: Path):
        first_dir = tmp_path / "a_study" / "series"
        second_dir = tmp_path / "b_study" / "series"
        _make_series(first_dir, series_number=1)
        _make_series(second_dir, series_number=2)
        (second_dir / "001.xml").write_text(lidc_xml(), encoding="utf-8")
        (first_dir / "999.xml").write_text(lidc_xml(), encoding="utf-8")

        location = SeriesLocator().locate(tmp_path)

        assert location is not None
        assert location.annotation_path == first_dir / "999.xml"
        assert location.series_number == 1

    def test_returns_none_without_annotation_document(self, tmp_path: Path):
        _make_series(tmp_path / "series")

        assert SeriesLocator().locate(tmp_path) is None

    def test_returns_none_without_images_beside_document(self, tmp_path: Path):
        (tmp_path / "series").mkdir()
        (tmp_path / "series" / "069.xml").write_text(lidc_xml(), encoding="utf-8")

        assert SeriesLocator().locate(tmp_path) is None

    def test_has_no_side_effects(self, tmp_path: Path):
        _make_series(tmp_path)
        (tmp_path / "069.xml").write_text(lidc_xml(), encoding="utf-8")
        before = sorted(p.name for p in tmp_path.iterdir())

        SeriesLocator().locate(tmp_path)

        assert sorted(p.name for p in tmp_path.iterdir()) == before

    def test_read_identity_requires_patient_id(self):
        ds = pydicom.Dataset()
        ds.SeriesNumber = 1

        with pytest.raises(ValueError, match="PatientID"):
            SeriesLocator.read_identity(ds)

    def test_read_identity_requires_series_number(self):
        ds = pydicom.Dataset()
        ds.PatientID = "LIDC-IDRI-0001"

        with pytest.raises(ValueError, match="SeriesNumber"):
            SeriesLocator.read_identity(ds)


class TestIterSeriesDirs:
    """Tests for input tree traversal."""

    def test_yields_case_subdirectories_sorted(self, tmp_path: Path):
        for rel in ["LIDC-IDRI-0002/s1", "LIDC-IDRI-0001/s2", "LIDC-IDRI-0001/s1", "other/s1"]:
            (tmp_path / rel).mkdir(parents=True)
        (tmp_path / "LIDC-IDRI-0001" / "notes.txt").write_text("x")

        found = [p.relative_to(tmp_path).as_posix() for p in iter_series_dirs(tmp_path)]

        assert found == ["LIDC-IDRI-0001/s1", "LIDC-IDRI-0001/s2", "LIDC-IDRI-0002/s1"]

    def test_missing_root(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError, match="Input directory not found"):
            list(iter_series_dirs(tmp_path / "missing"))
