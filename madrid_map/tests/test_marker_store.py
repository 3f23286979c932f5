from __future__ import annotations

import asyncio

from madrid_map.app.schemas.feature import (
    AcousticSignalDetails,
    Category,
    Feature,
    StreetlightDetails,
    TrafficLightDetails,
)
from madrid_map.app.services.marker_store import MarkerStore, popup_content


def _traffic(district: str = "Centro") -> Feature:
    return Feature(Category.TRAFFIC_LIGHT, (-3.70, 40.42), district, TrafficLightDetails("TL-1", "SEMAFORO", "77"))


def _lamp(district: str = "Retiro") -> Feature:
    return Feature(Category.STREETLIGHT, (-3.68, 40.41), district,
                   StreetlightDetails("LED", "Jerónimos", "Calle Alfonso XII 1"))


def _acoustic(district: str = "Usera") -> Feature:
    return Feature(Category.ACOUSTIC_SIGNAL, (-3.71, 40.38), district, AcousticSignalDetails("AS-9", "ACUSTICA", "12"))


def test_commit_keeps_order_and_batch_sizes() -> None:
    store = MarkerStore()
    store.commit([_traffic(), _traffic()])
    store.commit([])
    store.commit([_lamp()])
    assert len(store) == 3
    assert store.batches == [2, 1]
    assert store.get(2).category is Category.STREETLIGHT
    assert store.get(3) is None
    assert store.shown_count == 3


def test_apply_visibility_updates_flags() -> None:
    store = MarkerStore()
    store.commit([_traffic(), _lamp(), _acoustic(), _lamp("Centro")])
    shown = asyncio.run(store.apply_visibility(lambda f: f.category is Category.STREETLIGHT, pass_size=2))
    assert shown == 2
    assert [store.is_shown(i) for i in range(4)] == [False, True, False, True]


def test_clear_empties_store() -> None:
    store = MarkerStore()
    store.commit([_traffic()])
    store.clear()
    assert len(store) == 0
    assert store.batches == []


def test_popup_fields_per_category() -> None:
    assert popup_content(_traffic()) == [("Category", "Traffic Lights"), ("District", "Centro"), ("ID", "TL-1")]
    assert popup_content(_lamp()) == [
        ("Category", "Streetlights"),
        ("District", "Retiro"),
        ("Type", "LED"),
        ("Neighborhood", "Jerónimos"),
        ("Address", "Calle Alfonso XII 1"),
    ]
    assert popup_content(_acoustic()) == [
        ("Category", "Acoustic Signals"),
        ("District", "Usera"),
        ("Type", "ACUSTICA"),
        ("ID", "AS-9"),
    ]
