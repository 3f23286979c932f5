"""Payload builders and a canned dataset source shared by the tests."""
from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Union

from madrid_map.app.errors import DatasetLoadFailed


TRAFFIC_HEADER = ["type", "district", "id", "id_cruce", "Longitude", "Latitude"]
LAMPS_HEADER = ["type", "district", "neighborhood", "Latitude", "Longitude", "address"]
ACOUSTIC_HEADER = ["type", "district", "id", "id_cruce", "Longitude", "Latitude"]

DISTRICTS = ["Centro", "CHAMBERI", "Moncloa", "Retiro", "san blas", "Tetuan"]


def make_csv(header: Sequence[str], rows: Iterable[Sequence[object]]) -> str:
    lines = [",".join(header)]
    for row in rows:
        lines.append(",".join("" if v is None else str(v) for v in row))
    return "\n".join(lines) + "\n"


def madrid_point(i: int):
    return round(-3.75 + (i % 90) * 0.001, 6), round(40.38 + (i % 70) * 0.001, 6)


def traffic_rows(n: int, start: int = 0) -> List[list]:
    rows = []
    for i in range(start, start + n):
        lon, lat = madrid_point(i)
        rows.append(["SEMAFORO", DISTRICTS[i % len(DISTRICTS)], f"TL-{i}", 1000 + i, lon, lat])
    return rows


def lamp_rows(n: int, start: int = 0) -> List[list]:
    rows = []
    for i in range(start, start + n):
        lon, lat = madrid_point(i)
        rows.append(["LED", DISTRICTS[i % len(DISTRICTS)], f"Barrio {i % 3}", lat, lon, f"Calle Mayor {i}"])
    return rows


def acoustic_rows(n: int, start: int = 0) -> List[list]:
    rows = []
    for i in range(start, start + n):
        lon, lat = madrid_point(i)
        rows.append(["ACUSTICA", DISTRICTS[i % len(DISTRICTS)], f"AS-{i}", 2000 + i, lon, lat])
    return rows


class InMemorySource:
    """Dataset source serving canned payloads; an Exception value fails that dataset."""

    def __init__(self, payloads: Dict[str, Union[str, Exception]]) -> None:
        self.payloads = payloads
        self.fetched: List[str] = []

    async def fetch(self, schema) -> str:
        self.fetched.append(schema.key)
        payload = self.payloads.get(schema.key)
        if payload is None:
            raise DatasetLoadFailed(schema.label, "not found")
        if isinstance(payload, Exception):
            raise DatasetLoadFailed(schema.label, str(payload))
        return payload


def small_payloads() -> Dict[str, str]:
    return {
        "traffic-lights": make_csv(TRAFFIC_HEADER, traffic_rows(12)),
        "streetlights": make_csv(LAMPS_HEADER, lamp_rows(9)),
        "acoustic-signals": make_csv(ACOUSTIC_HEADER, acoustic_rows(6)),
    }
