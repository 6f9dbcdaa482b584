"""Whitelist of scans eligible for stage-1 processing."""

from __future__ import annotations

import csv
import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from .records import NoduleListRecord, NoduleListRowError, parse_nodule_list_row

__all__ = [
    "WhitelistIndex",
    "load_whitelist_index",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WhitelistIndex:
    """Read-only view of the nodule list, built once per run.

    Attributes:
        whitelist: ``patient/series`` keys eligible for processing.
        grouped: Records of every key, excluded patients included.
        excluded_patients: Patient ids whose scans are never processed.
    """

    whitelist: frozenset[str]
    grouped: Mapping[str, tuple[NoduleListRecord, ...]]
    excluded_patients: frozenset[str]

    def __contains__(self, key: object) -> bool:
        return key in self.whitelist

    def records_for(self, key: str) -> tuple[NoduleListRecord, ...]:
        """Return the records grouped under ``key`` (empty if unknown)."""

        return self.grouped.get(key, ())

    @classmethod
    def from_csv(
        cls,
        csv_path: str | Path,
        *,
        excluded_patients: Iterable[str] = (),
        patient_id_prefix: str = "LIDC-IDRI-",
        on_malformed_row: str = "raise",
    ) -> "WhitelistIndex":
        """Build the index from the nodule list CSV file.

        Raises:
            FileNotFoundError: If ``csv_path`` does not exist.
            NoduleListRowError: On a malformed row when ``on_malformed_row``
                is ``"raise"``.
        """

        path = Path(csv_path)
        if not path.exists():
            raise FileNotFoundError(f"Nodule list not found: {path}")

        with path.open(newline="", encoding="utf-8") as handle:
            index = load_whitelist_index(
                csv.reader(handle),
                excluded_patients=excluded_patients,
                patient_id_prefix=patient_id_prefix,
                on_malformed_row=on_malformed_row,
            )

        logger.info(
            f"Loaded nodule list {path}: {len(index.grouped)} scans, "
            f"{len(index.whitelist)} whitelisted"
        )
        return index


def load_whitelist_index(
    rows: Iterable[Sequence[str]],
    *,
    excluded_patients: Iterable[str] = (),
    patient_id_prefix: str = "LIDC-IDRI-",
    on_malformed_row: str = "raise",
) -> WhitelistIndex:
    """Group nodule list rows by scan and derive the whitelist.

    The first row is a header and is skipped. Every parsed record is grouped
    under its key; only keys whose patient is not excluded are whitelisted.

    Args:
        rows: Raw CSV rows, header first.
        excluded_patients: Patient ids with known corrupted source data.
        patient_id_prefix: Prefix joined to the patient suffix column.
        on_malformed_row: ``"raise"`` to propagate row errors, ``"skip"`` to
            log and ignore them.

    Returns:
        The immutable ``WhitelistIndex``.
    """

    if on_malformed_row not in {"raise", "skip"}:
        raise ValueError(f"on_malformed_row must be 'raise' or 'skip', got {on_malformed_row!r}")

    excluded = frozenset(patient.strip() for patient in excluded_patients)
    grouped: defaultdict[str, list[NoduleListRecord]] = defaultdict(list)
    whitelist: set[str] = set()

    for line_number, row in enumerate(rows, start=1):
        if line_number == 1:
            continue
        if not any(cell.strip() for cell in row):
            continue

        try:
            record = parse_nodule_list_row(
                row, line_number=line_number, patient_id_prefix=patient_id_prefix
            )
        except NoduleListRowError as exc:
            if on_malformed_row == "raise":
                raise
            logger.warning(f"Skipping malformed nodule list row: {exc}")
            continue

        grouped[record.key].append(record)
        if record.patient_id not in excluded:
            whitelist.add(record.key)

    return WhitelistIndex(
        whitelist=frozenset(whitelist),
        grouped=MappingProxyType({key: tuple(records) for key, records in grouped.items()}),
        excluded_patients=excluded,
    )
