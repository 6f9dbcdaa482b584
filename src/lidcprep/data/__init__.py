"""Nodule list indexing, annotation matching, volume assembly and output."""

from .annotations import (
    CHARACTERISTIC_TAGS,
    AnnotationDocument,
    AnnotationDocumentError,
    AnnotationMatcher,
    NoduleAnnotation,
    Observation,
    candidate_identifiers,
    parse_observation,
)
from .locator import SeriesLocation, SeriesLocator, iter_series_dirs
from .records import (
    NoduleListRecord,
    NoduleListRowError,
    RowErrorKind,
    make_series_key,
    parse_nodule_list_row,
)
from .volume import (
    InsufficientSlicesError,
    ScanGeometry,
    ScanVolume,
    SeriesCalibration,
    SliceRecord,
    VolumeAssembler,
    read_slice,
    read_slices,
)
from .whitelist import WhitelistIndex, load_whitelist_index
from .writer import OutputWriter, read_volume

__all__ = [
    # Nodule list
    "NoduleListRecord",
    "NoduleListRowError",
    "RowErrorKind",
    "make_series_key",
    "parse_nodule_list_row",
    "WhitelistIndex",
    "load_whitelist_index",
    # Series discovery
    "SeriesLocation",
    "SeriesLocator",
    "iter_series_dirs",
    # Annotations
    "CHARACTERISTIC_TAGS",
    "AnnotationDocument",
    "AnnotationDocumentError",
    "AnnotationMatcher",
    "NoduleAnnotation",
    "Observation",
    "candidate_identifiers",
    "parse_observation",
    # Volume assembly
    "InsufficientSlicesError",
    "ScanGeometry",
    "ScanVolume",
    "SeriesCalibration",
    "SliceRecord",
    "VolumeAssembler",
    "read_slice",
    "read_slices",
    # Output
    "OutputWriter",
    "read_volume",
]
