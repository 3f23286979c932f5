from __future__ import annotations

import dataclasses

import pytest

from madrid_map.app.schemas.feature import (
    NOT_APPLICABLE,
    UNKNOWN,
    Category,
    Feature,
    StreetlightDetails,
    TrafficLightDetails,
)
from madrid_map.app.services.coordinate_validator import in_madrid, validate_coordinates
from madrid_map.app.services.datasets import ACOUSTIC_SIGNALS, STREETLIGHTS, TRAFFIC_LIGHTS
from madrid_map.app.services.feature_builder import build_feature, text_value
from madrid_map.tests.factories import madrid_point


def test_streetlight_carries_neighborhood_and_address() -> None:
    row = {"type": "LED", "district": "Retiro", "neighborhood": " Los  Jerónimos ", "Latitude": 40.41,
           "Longitude": -3.68, "address": "Calle Alfonso XII 1"}
    feature = build_feature(Category.STREETLIGHT, (-3.68, 40.41), "Retiro", row, STREETLIGHTS)
    assert feature.neighborhood == "Los Jerónimos"
    assert feature.address == "Calle Alfonso XII 1"
    assert feature.type == "LED"
    assert feature.id == NOT_APPLICABLE
    assert feature.position == (-3.68, 40.41)


def test_streetlight_missing_neighborhood_is_unknown() -> None:
    row = {"type": None, "district": "Retiro", "Latitude": 40.41, "Longitude": -3.68}
    feature = build_feature(Category.STREETLIGHT, (-3.68, 40.41), "Retiro", row, STREETLIGHTS)
    assert feature.neighborhood == UNKNOWN
    assert feature.address == UNKNOWN
    assert feature.type == NOT_APPLICABLE


@pytest.mark.parametrize(
    "category,schema",
    [(Category.TRAFFIC_LIGHT, TRAFFIC_LIGHTS), (Category.ACOUSTIC_SIGNAL, ACOUSTIC_SIGNALS)],
)
def test_signals_carry_id_but_no_neighborhood(category, schema) -> None:
    row = {"type": None, "district": "Centro", "id": 12.0, "id_cruce": 340, "Longitude": -3.70, "Latitude": 40.42}
    feature = build_feature(category, (-3.70, 40.42), "Centro", row, schema)
    assert feature.id == "12"
    assert feature.details.crossing_id == "340"
    assert feature.type == NOT_APPLICABLE
    assert feature.neighborhood == NOT_APPLICABLE
    assert feature.address == NOT_APPLICABLE


def test_feature_is_immutable_and_details_must_match_category() -> None:
    feature = Feature(Category.TRAFFIC_LIGHT, (-3.7, 40.4), "Centro", TrafficLightDetails(id="1"))
    with pytest.raises(dataclasses.FrozenInstanceError):
        feature.district = "Retiro"  # type: ignore[misc]
    with pytest.raises(TypeError):
        Feature(Category.TRAFFIC_LIGHT, (-3.7, 40.4), "Centro", StreetlightDetails())


def test_valid_rows_build_features_inside_the_box() -> None:
    for i in range(300):
        lon, lat = madrid_point(i * 7)
        row = {"type": "x", "district": "Centro", "id": i, "Longitude": lon, "Latitude": lat}
        position = validate_coordinates(row, TRAFFIC_LIGHTS)
        feature = build_feature(Category.TRAFFIC_LIGHT, position, "Centro", row, TRAFFIC_LIGHTS)
        assert in_madrid(*feature.position)


def test_geojson_shape() -> None:
    feature = build_feature(Category.ACOUSTIC_SIGNAL, (-3.7, 40.4), "Centro", {"id": "A1"}, ACOUSTIC_SIGNALS)
    geo = feature.to_geojson()
    assert geo["geometry"] == {"type": "Point", "coordinates": [-3.7, 40.4]}
    assert geo["properties"]["category"] == "Acoustic Signals"
    assert geo["properties"]["id"] == "A1"


@pytest.mark.parametrize(
    "raw,expected",
    [(None, "N/A"), ("", "N/A"), ("  a   b ", "a b"), (3.0, "3"), (3.25, "3.25"), (float("nan"), "N/A"), (7, "7")],
)
def test_text_value(raw, expected) -> None:
    assert text_value(raw, NOT_APPLICABLE) == expected
