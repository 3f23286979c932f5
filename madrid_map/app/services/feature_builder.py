# app/services/feature_builder.py
import math
import re
from typing import Any, Dict, Mapping, Optional

from madrid_map.app.schemas.feature import (
    NOT_APPLICABLE,
    UNKNOWN,
    AcousticSignalDetails,
    Category,
    Details,
    Feature,
    Position,
    StreetlightDetails,
    TrafficLightDetails,
)
from madrid_map.app.services.datasets import DatasetSchema

_WHITESPACE = re.compile(r"\s+")


def text_value(value: Any, default: str) -> str:
    """Render a raw cell as display text; blanks give ``default``."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, float):
        if math.isnan(value):
            return default
        if value.is_integer():
            return str(int(value))
    s = _WHITESPACE.sub(" ", str(value)).strip()
    return s or default


def _field(row: Mapping[str, Any], columns: Dict[str, str], name: str) -> Any:
    col = columns.get(name)
    return row.get(col) if col else None


def build_feature(
    category: Category,
    position: Position,
    district: str,
    row: Mapping[str, Any],
    schema: DatasetSchema,
    columns: Optional[Dict[str, str]] = None,
) -> Feature:
    if columns is None:
        columns = schema.resolve_columns(row.keys())
    type_ = text_value(_field(row, columns, "type"), NOT_APPLICABLE)

    details: Details
    if category is Category.STREETLIGHT:
        details = StreetlightDetails(
            type=type_,
            neighborhood=text_value(_field(row, columns, "neighborhood"), UNKNOWN),
            address=text_value(_field(row, columns, "address"), UNKNOWN),
        )
    elif category is Category.TRAFFIC_LIGHT:
        details = TrafficLightDetails(
            id=text_value(_field(row, columns, "id"), NOT_APPLICABLE),
            type=type_,
            crossing_id=text_value(_field(row, columns, "crossing_id"), NOT_APPLICABLE),
        )
    elif category is Category.ACOUSTIC_SIGNAL:
        details = AcousticSignalDetails(
            id=text_value(_field(row, columns, "id"), NOT_APPLICABLE),
            type=type_,
            crossing_id=text_value(_field(row, columns, "crossing_id"), NOT_APPLICABLE),
        )
    else:
        raise ValueError(f"Unsupported category: {category!r}")

    return Feature(
        category=category,
        position=(float(position[0]), float(position[1])),
        district=district,
        details=details,
    )
