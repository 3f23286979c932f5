# app/lib/district_boundaries.py
import json
import logging
import os
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from shapely.errors import GEOSException
from shapely.geometry import Point, shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from shapely.prepared import prep

logger = logging.getLogger(__name__)

NAME_PROPERTIES = ("NOMBRE", "nombre", "name", "NAME", "district", "NOMDIS")
POLYGON_TYPES = ("Polygon", "MultiPolygon")


class DistrictPolygon:
    def __init__(self, name: str, geometry: BaseGeometry) -> None:
        self.name = name
        self.geometry = geometry
        self._prepared = prep(geometry)

    def contains(self, lon: float, lat: float) -> bool:
        return self._prepared.contains(Point(lon, lat))


def _polygon_from_feature(feat: Dict[str, Any]) -> Optional[BaseGeometry]:
    geom = feat.get("geometry") or {}
    if geom.get("type") not in POLYGON_TYPES:
        return None
    try:
        polygon = shape(geom)
    except (GEOSException, ValueError, TypeError, IndexError):
        return None
    if polygon.is_empty:
        return None
    return polygon if polygon.is_valid else polygon.buffer(0)


class DistrictBoundaries:
    """District polygons keyed by canonical district name."""

    def __init__(self, districts: Sequence[DistrictPolygon], order: Optional[Sequence[str]] = None) -> None:
        if order is not None:
            rank = {name: i for i, name in enumerate(order)}
            districts = sorted(districts, key=lambda d: rank.get(d.name, len(rank)))
        self.districts: Tuple[DistrictPolygon, ...] = tuple(districts)

    @property
    def names(self) -> List[str]:
        return [d.name for d in self.districts]

    def locate(self, lon: float, lat: float) -> Optional[str]:
        for district in self.districts:
            if district.contains(float(lon), float(lat)):
                return district.name
        return None

    @classmethod
    def from_feature_collection(
        cls,
        collection: Dict[str, Any],
        resolve_name: Callable[[Any], str],
        order: Optional[Sequence[str]] = None,
    ) -> "DistrictBoundaries":
        """Build from a GeoJSON FeatureCollection.

        ``resolve_name`` maps the raw name property to a canonical district;
        features it cannot place (it returns a name outside ``order``) are skipped.
        Several features for the same district are merged into one geometry.
        """
        merged: Dict[str, List[BaseGeometry]] = {}
        skipped = 0
        for feat in collection.get("features", []):
            props = feat.get("properties") or {}
            raw_name = next((props[k] for k in NAME_PROPERTIES if props.get(k)), None)
            name = resolve_name(raw_name)
            if order is not None and name not in order:
                skipped += 1
                continue
            polygon = _polygon_from_feature(feat)
            if polygon is None:
                skipped += 1
                continue
            merged.setdefault(name, []).append(polygon)
        if skipped:
            logger.warning("Skipped %d boundary feature(s) without a recognised district or polygon", skipped)
        districts = [DistrictPolygon(name, unary_union(parts)) for name, parts in merged.items()]
        return cls(districts, order=order)

    @classmethod
    def from_geojson(
        cls,
        path: str,
        resolve_name: Callable[[Any], str],
        order: Optional[Sequence[str]] = None,
    ) -> "DistrictBoundaries":
        with open(os.fspath(path), "r", encoding="utf-8") as f:
            collection = json.load(f)
        if collection.get("type") != "FeatureCollection":
            raise ValueError(f"{path}: not a FeatureCollection")
        boundaries = cls.from_feature_collection(collection, resolve_name, order=order)
        logger.info("Loaded %d district boundaries from %s", len(boundaries.districts), path)
        return boundaries
