"""Reconcile nodule list records with LIDC-IDRI XML reading documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from xml.etree import ElementTree as ET

from .records import NoduleListRecord

__all__ = [
    "CHARACTERISTIC_TAGS",
    "AnnotationDocument",
    "AnnotationDocumentError",
    "AnnotationMatcher",
    "NoduleAnnotation",
    "Observation",
    "candidate_identifiers",
    "parse_observation",
]

logger = logging.getLogger(__name__)


# Observation field -> element name inside <characteristics>
CHARACTERISTIC_TAGS: dict[str, str] = {
    "subtlety": "subtlety",
    "internal_structure": "internalStructure",
    "calcification": "calcification",
    "sphericity": "sphericity",
    "margin": "margin",
    "lobulation": "lobulation",
    "spiculation": "spiculation",
    "texture": "texture",
    "malignancy": "malignancy",
}


class AnnotationDocumentError(ValueError):
    """Raised when a reading document cannot be parsed."""


@dataclass(frozen=True, slots=True)
class Observation:
    """One radiologist's characteristic ratings for a nodule."""

    subtlety: int  # higher means more obvious
    internal_structure: int
    calcification: int
    sphericity: int  # roundness
    margin: int  # sharpness of the boundary
    lobulation: int
    spiculation: int
    texture: int  # solidness
    malignancy: int  # assuming a 60 year old male smoker

    def to_dict(self) -> dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True, slots=True)
class NoduleAnnotation:
    """A nodule list record with its index-aligned observations.

    ``observations[i]`` and ``resolved_ids[i]`` describe
    ``record.nodule_ids[i]``; both are None where the identifier could not be
    resolved or carried no usable characteristics.
    """

    record: NoduleListRecord
    observations: tuple[Observation | None, ...]
    resolved_ids: tuple[str | None, ...]

    def __post_init__(self) -> None:
        expected = len(self.record.nodule_ids)
        if len(self.observations) != expected or len(self.resolved_ids) != expected:
            raise ValueError(
                f"Expected {expected} observations for {self.record.key}, "
                f"got {len(self.observations)}"
            )

    def to_dict(self) -> dict[str, object]:
        data = self.record.to_dict()
        data["resolved_nodule_ids"] = list(self.resolved_ids)
        data["observations"] = [
            None if observation is None else observation.to_dict()
            for observation in self.observations
        ]
        return data


def _strip_namespaces(root: ET.Element) -> None:
    for element in root.iter():
        if isinstance(element.tag, str) and "}" in element.tag:
            element.tag = element.tag.split("}", 1)[1]


class AnnotationDocument:
    """Parsed LIDC XML reading document, indexed by ``noduleID``."""

    def __init__(self, root: ET.Element, source: str = "<memory>") -> None:
        _strip_namespaces(root)
        self.root = root
        self.source = source

        # First reading in document order wins for duplicated identifiers
        self._readings: dict[str, ET.Element] = {}
        for nodule in root.iter("unblindedReadNodule"):
            nodule_id = (nodule.findtext("noduleID") or "").strip()
            if nodule_id and nodule_id not in self._readings:
                self._readings[nodule_id] = nodule

    @classmethod
    def from_path(cls, xml_path: str | Path) -> "AnnotationDocument":
        """Parse a reading document from disk.

        Raises:
            FileNotFoundError: If ``xml_path`` does not exist.
            AnnotationDocumentError: If the XML content is malformed.
        """
        path = Path(xml_path)
        if not path.exists():
            raise FileNotFoundError(f"Annotation file not found: {path}")

        try:
            root = ET.parse(path).getroot()
        except ET.ParseError as exc:
            raise AnnotationDocumentError(f"Failed to parse XML file: {path}") from exc

        return cls(root, source=str(path))

    @classmethod
    def from_string(cls, content: str) -> "AnnotationDocument":
        try:
            root = ET.fromstring(content)
        except ET.ParseError as exc:
            raise AnnotationDocumentError("Failed to parse XML content") from exc
        return cls(root)

    def find_reading(self, nodule_id: str) -> ET.Element | None:
        """Return the reading whose ``noduleID`` equals ``nodule_id`` exactly."""

        return self._readings.get(nodule_id)

    @property
    def nodule_ids(self) -> tuple[str, ...]:
        return tuple(self._readings)


def candidate_identifiers(nodule_id: str, *, zero_pad_retry: bool = True) -> tuple[str, ...]:
    """Identifiers to try, in order, when resolving ``nodule_id``.

    Some identifiers in the nodule list lost a leading zero relative to the
    XML documents (``"1234"`` vs ``"01234"``), so the zero-padded variant is
    tried after the exact one.
    """

    if zero_pad_retry:
        return (nodule_id, f"0{nodule_id}")
    return (nodule_id,)


def parse_observation(characteristics: ET.Element) -> Observation:
    """Parse the nine integer ratings of a ``<characteristics>`` block.

    Raises:
        ValueError: If a rating is missing or is not an integer.
    """

    values: dict[str, int] = {}
    for field_name, tag in CHARACTERISTIC_TAGS.items():
        text = characteristics.findtext(tag)
        if text is None or not text.strip():
            raise ValueError(f"missing characteristic '{tag}'")
        try:
            values[field_name] = int(text.strip())
        except ValueError as exc:
            raise ValueError(f"invalid value {text.strip()!r} for characteristic '{tag}'") from exc
    return Observation(**values)


class AnnotationMatcher:
    """Resolve nodule list identifiers against a reading document."""

    def __init__(self, zero_pad_retry: bool = True) -> None:
        self.zero_pad_retry = zero_pad_retry

    def resolve(
        self, document: AnnotationDocument, nodule_id: str
    ) -> tuple[str, ET.Element] | None:
        """Return the first candidate identifier found in ``document``."""

        for candidate in candidate_identifiers(nodule_id, zero_pad_retry=self.zero_pad_retry):
            reading = document.find_reading(candidate)
            if reading is not None:
                return candidate, reading
        return None

    def match(self, record: NoduleListRecord, document: AnnotationDocument) -> NoduleAnnotation:
        """Attach one observation (or None) per identifier of ``record``.

        Failures are per identifier: they are logged and leave None at that
        position without affecting the remaining identifiers.
        """
        observations: list[Observation | None] = []
        resolved_ids: list[str | None] = []

        for nodule_id in record.nodule_ids:
            resolved = self.resolve(document, nodule_id)
            if resolved is None:
                logger.warning(f"Couldn't find nodule by ID: '{nodule_id}' ({record.key})")
                observations.append(None)
                resolved_ids.append(None)
                continue

            resolved_id, reading = resolved
            resolved_ids.append(resolved_id)

            characteristics = reading.find("characteristics")
            if characteristics is None:
                logger.debug(f"Nodule '{resolved_id}' has no characteristics ({record.key})")
                observations.append(None)
                continue

            try:
                observations.append(parse_observation(characteristics))
            except ValueError as exc:
                logger.warning(
                    f"Error reading characteristics of nodule '{resolved_id}' ({record.key}): {exc}"
                )
                observations.append(None)

        return NoduleAnnotation(
            record=record,
            observations=tuple(observations),
            resolved_ids=tuple(resolved_ids),
        )
