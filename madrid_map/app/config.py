# app/config.py
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://raw.githubusercontent.com/JSebastianIEU/madrid_traffic_map/main/"
DEFAULT_CHUNK_SIZE = 500
DEFAULT_CHUNK_DELAY_MS = 50
DEFAULT_FETCH_TIMEOUT_S = 30.0
DEFAULT_VISIBILITY_PASS = 100


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    if not raw:
        return None
    return Path(raw).expanduser().resolve()


def _env_number(name: str, default, cast, minimum):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number; using %s", name, raw, default)
        return default
    if value < minimum:
        logger.warning("Ignoring %s=%r: must be >= %s; using %s", name, raw, minimum, default)
        return default
    return value


@dataclass(frozen=True)
class Settings:
    base_url: str = DEFAULT_BASE_URL
    data_dir: Optional[Path] = None
    districts_geojson: Optional[Path] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_delay_s: float = DEFAULT_CHUNK_DELAY_MS / 1000.0
    fetch_timeout_s: float = DEFAULT_FETCH_TIMEOUT_S
    visibility_pass: int = DEFAULT_VISIBILITY_PASS

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from MADRID_MAP_* environment variables.

        A local data directory, when given, takes precedence over the base URL.
        """
        base_url = os.getenv("MADRID_MAP_BASE_URL") or DEFAULT_BASE_URL
        if not base_url.endswith("/"):
            base_url += "/"

        data_dir = _env_path("MADRID_MAP_DATA_DIR")
        if data_dir is not None and not data_dir.is_dir():
            logger.warning("MADRID_MAP_DATA_DIR=%s is not a directory; fetching from %s", data_dir, base_url)
            data_dir = None

        districts = _env_path("MADRID_MAP_DISTRICTS_GEOJSON")
        if districts is not None and not districts.is_file():
            logger.warning("District boundaries not found at %s; using the alias table only", districts)
            districts = None

        delay_ms = _env_number("MADRID_MAP_CHUNK_DELAY_MS", DEFAULT_CHUNK_DELAY_MS, float, 0)
        return cls(
            base_url=base_url,
            data_dir=data_dir,
            districts_geojson=districts,
            chunk_size=_env_number("MADRID_MAP_CHUNK_SIZE", DEFAULT_CHUNK_SIZE, int, 1),
            chunk_delay_s=float(delay_ms) / 1000.0,
            fetch_timeout_s=_env_number("MADRID_MAP_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT_S, float, 0.1),
            visibility_pass=_env_number("MADRID_MAP_VISIBILITY_PASS", DEFAULT_VISIBILITY_PASS, int, 1),
        )
