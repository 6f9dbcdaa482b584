"""Typed records for the curated nodule size list.

The list arrives as loosely typed CSV rows with fixed positional columns
followed by a variable number of external nodule identifiers::

    case, scan, roi, volume, eq. diam., x loc., y loc., slice no., (reserved), nodIDs...

Rows are parsed once into :class:`NoduleListRecord`. Malformed rows raise
:class:`NoduleListRowError` naming what went wrong instead of being coerced.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

__all__ = [
    "FIXED_COLUMNS",
    "NoduleListRecord",
    "NoduleListRowError",
    "RowErrorKind",
    "make_series_key",
    "parse_nodule_list_row",
]


FIXED_COLUMNS: tuple[str, ...] = (
    "patient_suffix",
    "series_number",
    "roi",
    "volume",
    "diameter",
    "x_pos",
    "y_pos",
    "slice_number",
    "reserved",
)


class RowErrorKind(Enum):
    """Reasons a nodule list row can be rejected."""

    TOO_FEW_COLUMNS = "too_few_columns"
    EMPTY_FIELD = "empty_field"
    INVALID_INTEGER = "invalid_integer"
    INVALID_FLOAT = "invalid_float"


class NoduleListRowError(ValueError):
    """Raised when a nodule list row cannot be parsed."""

    def __init__(
        self,
        kind: RowErrorKind,
        line_number: int,
        column: str | None = None,
        value: str | None = None,
    ) -> None:
        self.kind = kind
        self.line_number = line_number
        self.column = column
        self.value = value

        msg = f"Row {line_number}: {kind.value}"
        if column is not None:
            msg += f" in column '{column}'"
        if value is not None:
            msg += f" (got {value!r})"
        super().__init__(msg)


def make_series_key(patient_id: str, series_number: int | str) -> str:
    """Build the ``patient/series`` key identifying one scan."""

    return f"{patient_id}/{series_number}"


@dataclass(frozen=True, slots=True)
class NoduleListRecord:
    """One row of the nodule size list."""

    patient_id: str
    series_number: int
    roi: int
    volume: float
    diameter: float
    x_pos: int
    y_pos: int
    slice_number: int
    nodule_ids: tuple[str, ...]

    @property
    def key(self) -> str:
        return make_series_key(self.patient_id, self.series_number)

    def to_dict(self) -> dict[str, object]:
        return {
            "patient_id": self.patient_id,
            "series_number": self.series_number,
            "roi": self.roi,
            "volume": self.volume,
            "diameter": self.diameter,
            "x_pos": self.x_pos,
            "y_pos": self.y_pos,
            "slice_number": self.slice_number,
            "nodule_ids": list(self.nodule_ids),
        }


def _field(row: Sequence[str], index: int, line_number: int) -> str:
    value = (row[index] or "").strip()
    if not value:
        raise NoduleListRowError(RowErrorKind.EMPTY_FIELD, line_number, FIXED_COLUMNS[index])
    return value


def _int_field(row: Sequence[str], index: int, line_number: int) -> int:
    value = _field(row, index, line_number)
    try:
        return int(value)
    except ValueError as exc:
        raise NoduleListRowError(
            RowErrorKind.INVALID_INTEGER, line_number, FIXED_COLUMNS[index], value
        ) from exc


def _float_field(row: Sequence[str], index: int, line_number: int) -> float:
    value = _field(row, index, line_number)
    try:
        return float(value)
    except ValueError as exc:
        raise NoduleListRowError(
            RowErrorKind.INVALID_FLOAT, line_number, FIXED_COLUMNS[index], value
        ) from exc


def parse_nodule_list_row(
    row: Sequence[str],
    *,
    line_number: int,
    patient_id_prefix: str = "LIDC-IDRI-",
) -> NoduleListRecord:
    """Parse a raw CSV row into a :class:`NoduleListRecord`.

    Args:
        row: Raw cell values as produced by ``csv.reader``.
        line_number: 1-based line number used in error messages.
        patient_id_prefix: Prefix joined to the patient suffix column.

    Returns:
        The parsed record. Empty trailing identifier cells are dropped.

    Raises:
        NoduleListRowError: If a fixed column is missing, empty or not numeric.
    """

    if len(row) < len(FIXED_COLUMNS):
        raise NoduleListRowError(
            RowErrorKind.TOO_FEW_COLUMNS, line_number, value=str(len(row))
        )

    patient_suffix = _field(row, 0, line_number)
    nodule_ids = tuple(
        cell.strip() for cell in row[len(FIXED_COLUMNS):] if cell and cell.strip()
    )

    return NoduleListRecord(
        patient_id=f"{patient_id_prefix}{patient_suffix}",
        series_number=_int_field(row, 1, line_number),
        roi=_int_field(row, 2, line_number),
        volume=_float_field(row, 3, line_number),
        diameter=_float_field(row, 4, line_number),
        x_pos=_int_field(row, 5, line_number),
        y_pos=_int_field(row, 6, line_number),
        slice_number=_int_field(row, 7, line_number),
        nodule_ids=nodule_ids,
    )
