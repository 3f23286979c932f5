from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    DATASET_LOAD_FAILED = "DatasetLoadFailed"
    MISSING_COORDINATE = "MissingCoordinate"
    MALFORMED_COORDINATE = "MalformedCoordinate"
    OUT_OF_REGION = "OutOfRegion"
    UNRESOLVED_DISTRICT = "UnresolvedDistrict"


COORDINATE_ERRORS = (
    ErrorKind.MISSING_COORDINATE,
    ErrorKind.MALFORMED_COORDINATE,
    ErrorKind.OUT_OF_REGION,
)


class MadridMapError(Exception):
    """Base class for errors raised by the ingestion pipeline."""


class RecordParseError(MadridMapError):
    """The payload could not be read as delimited text at all."""


class DatasetLoadFailed(MadridMapError):
    kind = ErrorKind.DATASET_LOAD_FAILED

    def __init__(self, dataset: str, reason: str) -> None:
        self.dataset = dataset
        self.reason = reason
        super().__init__(f"Failed to load {dataset}: {reason}")


class CoordinateRejected(MadridMapError):
    """A single row was discarded by the coordinate validator."""

    def __init__(self, kind: ErrorKind, detail: Optional[str] = None) -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


class UnknownFacetValue(MadridMapError, ValueError):
    def __init__(self, kind: str, value: str) -> None:
        self.facet = kind
        self.value = value
        super().__init__(f"'{value}' is not a known {kind} value")


class LoadInProgress(MadridMapError):
    """A load was requested while another one is still running."""
