# app/services/coordinate_validator.py
import math
from typing import Any, Dict, Mapping, Optional

from madrid_map.app.errors import CoordinateRejected, ErrorKind
from madrid_map.app.schemas.feature import Position
from madrid_map.app.services.datasets import LATITUDE, LONGITUDE, DatasetSchema

MIN_LONGITUDE = -4.35
MAX_LONGITUDE = -3.10
MIN_LATITUDE = 40.15
MAX_LATITUDE = 40.65


def in_madrid(lon: float, lat: float) -> bool:
    return MIN_LONGITUDE <= lon <= MAX_LONGITUDE and MIN_LATITUDE <= lat <= MAX_LATITUDE


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def parse_coordinate_value(value: Any) -> Optional[float]:
    """Parse a coordinate cell, accepting a comma decimal separator. None if unparseable."""
    if isinstance(value, bool) or _is_blank(value):
        return None
    if isinstance(value, (int, float)):
        out = float(value)
    else:
        s = str(value).strip()
        try:
            out = float(s)
        except ValueError:
            try:
                out = float(s.replace(",", "."))
            except ValueError:
                return None
    return out if math.isfinite(out) else None


def validate_coordinates(
    row: Mapping[str, Any],
    schema: DatasetSchema,
    columns: Optional[Dict[str, str]] = None,
) -> Position:
    """
    Return the validated (longitude, latitude) pair of a raw row.

    Columns are looked up through the dataset's declared mapping, so the
    result is longitude-first whatever order the source file uses. Raises
    CoordinateRejected with MissingCoordinate, MalformedCoordinate or
    OutOfRegion.
    """
    if columns is None:
        columns = schema.resolve_columns(row.keys())
    lon_col = columns.get(LONGITUDE)
    lat_col = columns.get(LATITUDE)
    raw_lon = row.get(lon_col) if lon_col else None
    raw_lat = row.get(lat_col) if lat_col else None

    if _is_blank(raw_lon) or _is_blank(raw_lat):
        raise CoordinateRejected(ErrorKind.MISSING_COORDINATE, f"lon={raw_lon!r} lat={raw_lat!r}")

    lon = parse_coordinate_value(raw_lon)
    lat = parse_coordinate_value(raw_lat)
    if lon is None or lat is None:
        raise CoordinateRejected(ErrorKind.MALFORMED_COORDINATE, f"lon={raw_lon!r} lat={raw_lat!r}")

    if not in_madrid(lon, lat):
        raise CoordinateRejected(ErrorKind.OUT_OF_REGION, f"({lon}, {lat})")

    return (lon, lat)
