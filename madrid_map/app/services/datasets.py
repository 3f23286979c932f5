# app/services/datasets.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Tuple

import requests

from madrid_map.app.config import Settings
from madrid_map.app.errors import DatasetLoadFailed
from madrid_map.app.schemas.feature import Category

logger = logging.getLogger(__name__)

LONGITUDE = "longitude"
LATITUDE = "latitude"

_LONGITUDE_HEADERS = ("Longitude", "longitude", "LONGITUD", "Longitud", "lon", "lng")
_LATITUDE_HEADERS = ("Latitude", "latitude", "LATITUD", "Latitud", "lat")


@dataclass(frozen=True)
class DatasetSchema:
    """Declared column mapping for one source file.

    ``fields`` is an ordered sequence of (logical field, candidate headers);
    the first candidate present in the payload header wins.
    """

    key: str
    label: str
    category: Category
    filename: str
    fields: Tuple[Tuple[str, Tuple[str, ...]], ...]
    required: Tuple[str, ...] = (LONGITUDE, LATITUDE)

    def candidates(self, field: str) -> Tuple[str, ...]:
        for name, headers in self.fields:
            if name == field:
                return headers
        return ()

    def resolve_columns(self, header: Iterable[str]) -> Dict[str, str]:
        """Map logical field names to the actual column names of a payload."""
        actual = [str(h) for h in header]
        by_lower = {h.strip().lower(): h for h in actual}
        resolved: Dict[str, str] = {}
        for field, headers in self.fields:
            for candidate in headers:
                if candidate in actual:
                    resolved[field] = candidate
                    break
                match = by_lower.get(candidate.strip().lower())
                if match is not None:
                    resolved[field] = match
                    break
        return resolved

    def missing_required(self, columns: Dict[str, str]) -> Tuple[str, ...]:
        return tuple(f for f in self.required if f not in columns)


TRAFFIC_LIGHTS = DatasetSchema(
    key="traffic-lights",
    label="Traffic Lights",
    category=Category.TRAFFIC_LIGHT,
    filename="trafic.csv",
    fields=(
        ("type", ("type", "TIPO", "tipo")),
        ("district", ("district", "DISTRITO", "distrito")),
        ("id", ("id", "ID", "codigo")),
        ("crossing_id", ("id_cruce", "ID_CRUCE", "cruce")),
        (LONGITUDE, _LONGITUDE_HEADERS),
        (LATITUDE, _LATITUDE_HEADERS),
    ),
)

STREETLIGHTS = DatasetSchema(
    key="streetlights",
    label="Streetlights",
    category=Category.STREETLIGHT,
    filename="lamps.csv",
    fields=(
        ("type", ("type", "TIPO", "tipo")),
        ("district", ("district", "DISTRITO", "distrito")),
        ("neighborhood", ("neighborhood", "BARRIO", "barrio")),
        (LATITUDE, _LATITUDE_HEADERS),
        (LONGITUDE, _LONGITUDE_HEADERS),
        ("address", ("address", "DIRECCION", "direccion", "Direccion")),
    ),
)

ACOUSTIC_SIGNALS = DatasetSchema(
    key="acoustic-signals",
    label="Acoustic Signals",
    category=Category.ACOUSTIC_SIGNAL,
    filename="acustic.csv",
    fields=(
        ("type", ("type", "TIPO", "tipo")),
        ("district", ("district", "DISTRITO", "distrito")),
        ("id", ("id", "ID", "codigo")),
        ("crossing_id", ("id_cruce", "ID_CRUCE", "cruce")),
        (LONGITUDE, _LONGITUDE_HEADERS),
        (LATITUDE, _LATITUDE_HEADERS),
    ),
)

DEFAULT_DATASETS: Tuple[DatasetSchema, ...] = (TRAFFIC_LIGHTS, STREETLIGHTS, ACOUSTIC_SIGNALS)


def find_dataset(key: str, datasets: Sequence[DatasetSchema] = DEFAULT_DATASETS) -> Optional[DatasetSchema]:
    for schema in datasets:
        if schema.key == key:
            return schema
    return None


class HttpDatasetSource:
    """Fetches dataset payloads from a base URL. One attempt per dataset, no retry."""

    def __init__(self, base_url: str, timeout: float = 30.0) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = float(timeout)

    def url_for(self, schema: DatasetSchema) -> str:
        return f"{self.base_url}{schema.filename}"

    def _get(self, schema: DatasetSchema) -> str:
        url = self.url_for(schema)
        try:
            resp = requests.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise DatasetLoadFailed(schema.label, f"request to {url} failed ({exc})")
        if not resp.ok:
            raise DatasetLoadFailed(schema.label, f"{url} returned HTTP {resp.status_code}")
        resp.encoding = "utf-8"
        return resp.text

    async def fetch(self, schema: DatasetSchema) -> str:
        # requests is blocking
        return await asyncio.to_thread(self._get, schema)


class LocalDatasetSource:
    """Reads dataset payloads from a directory holding the same file names."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    async def fetch(self, schema: DatasetSchema) -> str:
        path = self.directory / schema.filename
        try:
            return path.read_text(encoding="utf-8-sig")
        except OSError as exc:
            raise DatasetLoadFailed(schema.label, f"cannot read {path} ({exc})")
        except UnicodeDecodeError as exc:
            raise DatasetLoadFailed(schema.label, f"{path} is not UTF-8 ({exc})")


def source_from_settings(settings: Settings):
    if settings.data_dir is not None:
        logger.info("Reading datasets from %s", settings.data_dir)
        return LocalDatasetSource(settings.data_dir)
    return HttpDatasetSource(settings.base_url, timeout=settings.fetch_timeout_s)
