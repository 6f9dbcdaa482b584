"""Stage-1 batch driver.

For every series directory under the input root the pipeline derives the
scan key, skips scans that are not whitelisted or already written, then
matches annotations, assembles the volume and writes both together.
Failures are contained to the series that raised them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from pydicom.errors import InvalidDicomError

from .config import PipelineConfig
from .data.annotations import AnnotationDocument, AnnotationMatcher
from .data.locator import SeriesLocation, SeriesLocator, iter_series_dirs
from .data.volume import SeriesCalibration, VolumeAssembler, read_slices
from .data.whitelist import WhitelistIndex
from .data.writer import OutputWriter
from .utils.logger import get_context_logger

__all__ = [
    "RunSummary",
    "SeriesOutcome",
    "Stage1Pipeline",
]

logger = logging.getLogger(__name__)


class SeriesOutcome:
    """Outcome labels of a single series directory."""

    PROCESSED = "processed"
    ALREADY_PROCESSED = "already_processed"
    NOT_WHITELISTED = "not_whitelisted"
    UNLOCATED = "unlocated"
    FAILED = "failed"


@dataclass
class RunSummary:
    """Per-outcome bookkeeping of one pipeline run."""

    processed: list[str] = field(default_factory=list)
    already_processed: list[str] = field(default_factory=list)
    not_whitelisted: list[str] = field(default_factory=list)
    unlocated: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def as_counts(self) -> dict[str, int]:
        return {
            SeriesOutcome.PROCESSED: len(self.processed),
            SeriesOutcome.ALREADY_PROCESSED: len(self.already_processed),
            SeriesOutcome.NOT_WHITELISTED: len(self.not_whitelisted),
            SeriesOutcome.UNLOCATED: len(self.unlocated),
            SeriesOutcome.FAILED: len(self.failed),
        }


class Stage1Pipeline:
    """Run the stage-1 preparation over a whole input tree."""

    def __init__(self, config: PipelineConfig, index: WhitelistIndex | None = None) -> None:
        self.config = config
        self.output_root = Path(config.paths.output_dir)
        self._index = index

        self.locator = SeriesLocator()
        self.matcher = AnnotationMatcher(zero_pad_retry=config.matching.zero_pad_retry)
        self.assembler = VolumeAssembler(
            modality=config.assembly.modality,
            location_order=config.assembly.location_order,
            dtype=config.output.voxel_dtype,
        )
        self.writer = OutputWriter(
            dtype=config.output.voxel_dtype,
            compression=config.output.compression,
            compression_level=config.output.compression_level,
            nodule_index_width=config.output.nodule_index_width,
        )

    @property
    def index(self) -> WhitelistIndex:
        """Whitelist index, loaded from the nodule list on first use."""
        if self._index is None:
            self._index = WhitelistIndex.from_csv(
                self.config.paths.nodule_list,
                excluded_patients=self.config.index.excluded_patients,
                patient_id_prefix=self.config.index.patient_id_prefix,
                on_malformed_row=self.config.index.on_malformed_row,
            )
        return self._index

    def output_location(self, key: str) -> Path:
        return self.output_root / key

    def run(self) -> RunSummary:
        """Process every series directory under the input root."""

        index = self.index
        summary = RunSummary()

        for scan_dir in iter_series_dirs(self.config.paths.input_dir, self.config.paths.case_pattern):
            try:
                location = self.locator.locate(scan_dir)
            except (InvalidDicomError, OSError, RuntimeError, ValueError) as exc:
                logger.error(f"Could not identify series in {scan_dir}: {exc}")
                summary.failed.append((str(scan_dir), str(exc)))
                continue

            if location is None:
                summary.unlocated.append(str(scan_dir))
                continue

            outcome, reason = self.process_series(location, index)
            if outcome == SeriesOutcome.FAILED:
                summary.failed.append((location.key, reason or ""))
            else:
                getattr(summary, outcome).append(location.key)

        logger.info(
            "Stage-1 run finished",
            extra={"extra_data": summary.as_counts()},
        )
        return summary

    def process_series(
        self, location: SeriesLocation, index: WhitelistIndex
    ) -> tuple[str, str | None]:
        """Match, assemble and write one located series.

        Returns:
            Tuple of (outcome label, failure reason or None)
        """
        key = location.key
        log = get_context_logger(__name__, series_key=key)

        if key not in index:
            log.debug("Not whitelisted, skipping")
            return SeriesOutcome.NOT_WHITELISTED, None

        out_dir = self.output_location(key)
        if out_dir.exists():
            log.info(f"Already processed: {out_dir}")
            return SeriesOutcome.ALREADY_PROCESSED, None

        log.info(f"Processing {location.annotation_path.parent}")

        try:
            document = AnnotationDocument.from_path(location.annotation_path)
            annotations = [self.matcher.match(record, document) for record in index.records_for(key)]

            calibration = SeriesCalibration.from_path(location.representative_path)
            slices = read_slices(location.image_paths, modality=self.assembler.modality)
            volume = self.assembler.assemble(slices, calibration)

            written = self.writer.write(out_dir, annotations, volume.geometry, volume.voxels)
        except (InvalidDicomError, OSError, RuntimeError, ValueError) as exc:
            log.error(f"Series failed: {exc}")
            return SeriesOutcome.FAILED, str(exc)

        if not written:
            return SeriesOutcome.ALREADY_PROCESSED, None
        return SeriesOutcome.PROCESSED, None
