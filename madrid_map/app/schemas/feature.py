# app/schemas/feature.py
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple, Union

UNKNOWN = "Unknown"
NOT_APPLICABLE = "N/A"
SENTINELS = (UNKNOWN, NOT_APPLICABLE)

Position = Tuple[float, float]  # (longitude, latitude)


class Category(str, Enum):
    TRAFFIC_LIGHT = "Traffic Lights"
    STREETLIGHT = "Streetlights"
    ACOUSTIC_SIGNAL = "Acoustic Signals"

    @property
    def slug(self) -> str:
        return self.value.lower().replace(" ", "-")


@dataclass(frozen=True)
class TrafficLightDetails:
    id: str = NOT_APPLICABLE
    type: str = NOT_APPLICABLE
    crossing_id: str = NOT_APPLICABLE


@dataclass(frozen=True)
class StreetlightDetails:
    type: str = NOT_APPLICABLE
    neighborhood: str = UNKNOWN
    address: str = UNKNOWN


@dataclass(frozen=True)
class AcousticSignalDetails:
    id: str = NOT_APPLICABLE
    type: str = NOT_APPLICABLE
    crossing_id: str = NOT_APPLICABLE


Details = Union[TrafficLightDetails, StreetlightDetails, AcousticSignalDetails]

DETAILS_BY_CATEGORY = {
    Category.TRAFFIC_LIGHT: TrafficLightDetails,
    Category.STREETLIGHT: StreetlightDetails,
    Category.ACOUSTIC_SIGNAL: AcousticSignalDetails,
}


@dataclass(frozen=True)
class Feature:
    """One physical item with a validated position and normalized attributes.

    Attributes that only make sense for some categories live on ``details``;
    the flat accessors below return "N/A" when the category does not carry them.
    """

    category: Category
    position: Position
    district: str
    details: Details

    def __post_init__(self) -> None:
        expected = DETAILS_BY_CATEGORY[self.category]
        if not isinstance(self.details, expected):
            raise TypeError(f"{self.category.value} requires {expected.__name__}, got {type(self.details).__name__}")

    @property
    def longitude(self) -> float:
        return self.position[0]

    @property
    def latitude(self) -> float:
        return self.position[1]

    @property
    def neighborhood(self) -> str:
        if isinstance(self.details, StreetlightDetails):
            return self.details.neighborhood
        return NOT_APPLICABLE

    @property
    def address(self) -> str:
        if isinstance(self.details, StreetlightDetails):
            return self.details.address
        return NOT_APPLICABLE

    @property
    def id(self) -> str:
        if isinstance(self.details, (TrafficLightDetails, AcousticSignalDetails)):
            return self.details.id
        return NOT_APPLICABLE

    @property
    def type(self) -> str:
        return self.details.type

    def properties(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "district": self.district,
            "neighborhood": self.neighborhood,
            "type": self.type,
            "id": self.id,
            "address": self.address,
        }

    def to_geojson(self) -> Dict[str, Any]:
        return {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [self.longitude, self.latitude]},
            "properties": self.properties(),
        }
