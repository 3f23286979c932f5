from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from madrid_map import app
from madrid_map.app.config import Settings
from madrid_map.app.services.map_session import MapSession
from madrid_map.tests.factories import InMemorySource, small_payloads


client = TestClient(app)


@pytest.fixture
def session() -> MapSession:
    s = MapSession(Settings(chunk_size=5, chunk_delay_s=0.0), source=InMemorySource(small_payloads()))
    MapSession.set_instance(s)
    return s


def _load() -> dict:
    resp = client.post("/api/v1/datasets/load")
    assert resp.status_code == 200
    return resp.json()


def test_root_returns_welcome_message() -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Welcome to the Madrid Street Furniture Map API!"


def test_list_datasets(session: MapSession) -> None:
    resp = client.get("/api/v1/datasets/")
    assert resp.status_code == 200
    keys = [d["key"] for d in resp.json()["datasets"]]
    assert keys == ["traffic-lights", "streetlights", "acoustic-signals"]


def test_load_returns_report_and_first_statistics(session: MapSession) -> None:
    data = _load()
    assert data["report"]["total_features"] == 27
    assert data["report"]["batches"]["traffic-lights"] == [5, 5, 2]
    assert data["progress"]["state"] == "complete"
    assert data["statistics"]["total"] == 27
    assert data["statistics"]["by_category"] == {"Traffic Lights": 12, "Streetlights": 9, "Acoustic Signals": 6}

    progress = client.get("/api/v1/datasets/progress").json()
    assert progress["loading"] is False
    assert progress["progress"]["percent"] == 100.0
    assert progress["errors"] == []


def test_failed_load_is_reported(session: MapSession) -> None:
    session.source.payloads["acoustic-signals"] = ConnectionError("timed out")
    resp = client.post("/api/v1/datasets/load")
    assert resp.status_code == 502
    assert resp.json()["detail"]["dataset"] == "Acoustic Signals"
    progress = client.get("/api/v1/datasets/progress").json()
    assert progress["progress"]["state"] == "failed"
    assert "Acoustic Signals" in progress["errors"][-1]["message"]
    assert len(session.store) == 0


def test_toggle_category_updates_statistics(session: MapSession) -> None:
    _load()
    resp = client.post("/api/v1/facets/toggle", json={"kind": "category", "value": "Streetlights"})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["changed"]["selected"] is False
    assert "Streetlights" not in payload["facets"]["category"]["selected"]

    stats = client.get("/api/v1/statistics/").json()
    assert stats["total"] == 18
    assert "Streetlights" not in stats["by_category"]
    assert stats["total"] == sum(stats["by_category"].values())


def test_bulk_facet_operations(session: MapSession) -> None:
    _load()
    assert client.post("/api/v1/facets/district/clear").json()["statistics"]["total"] == 0
    resp = client.put("/api/v1/facets/district", json={"values": ["Centro"]})
    assert resp.status_code == 200
    assert resp.json()["statistics"]["by_district"] == {"Centro": resp.json()["statistics"]["total"]}
    assert client.post("/api/v1/facets/district/select-all").json()["statistics"]["total"] == 27


def test_facets_hide_sentinel_options(session: MapSession) -> None:
    _load()
    facets = client.get("/api/v1/facets/").json()["facets"]
    assert "N/A" in facets["neighborhood"]["values"]
    assert "N/A" not in facets["neighborhood"]["options"]
    assert set(facets["district"]["values"]) == {
        "Centro", "Chamberí", "Moncloa-Aravaca", "Retiro", "San Blas-Canillejas", "Tetuán",
    }


@pytest.mark.parametrize(
    "body,url",
    [
        ({"kind": "colour", "value": "red"}, "/api/v1/facets/toggle"),
        ({"kind": "district", "value": "Atlantis"}, "/api/v1/facets/toggle"),
    ],
)
def test_bad_facet_requests_are_rejected(session: MapSession, body, url) -> None:
    _load()
    assert client.post(url, json=body).status_code == 422


def test_features_follow_visibility(session: MapSession) -> None:
    _load()
    all_features = client.get("/api/v1/features/", params={"limit": 100}).json()
    assert all_features["total"] == 27
    assert all_features["features"][0]["geometry"]["type"] == "Point"

    client.post("/api/v1/facets/toggle", json={"kind": "category", "value": "Traffic Lights", "selected": False})
    visible = client.get("/api/v1/features/").json()
    assert visible["total"] == 15
    everything = client.get("/api/v1/features/", params={"visible_only": False, "category": "traffic-lights"}).json()
    assert everything["total"] == 12


def test_popup_content_per_category(session: MapSession) -> None:
    _load()
    traffic = client.get("/api/v1/features/0/popup").json()
    assert traffic["title"] == "Traffic Lights"
    assert [e["label"] for e in traffic["entries"]] == ["Category", "District", "ID"]

    lamp = client.get("/api/v1/features/12/popup").json()
    assert [e["label"] for e in lamp["entries"]] == ["Category", "District", "Type", "Neighborhood", "Address"]

    assert client.get("/api/v1/features/999/popup").status_code == 404


def test_normalize_endpoint(session: MapSession) -> None:
    resp = client.get("/api/v1/districts/normalize", params={"name": "CHAMBERI"})
    assert resp.json()["district"] == "Chamberí"
    districts = client.get("/api/v1/districts/").json()
    assert len(districts["vocabulary"]) == 21
    assert districts["with_boundaries"] == []


def test_dataset_detail_reports_load_counts(session: MapSession) -> None:
    before = client.get("/api/v1/datasets/streetlights").json()
    assert before["file"] == "lamps.csv"
    assert "features" not in before
    _load()
    after = client.get("/api/v1/datasets/streetlights").json()
    assert after["rows"] == 9
    assert after["features"] == 9
    assert after["batches"] == [5, 4]
    assert client.get("/api/v1/datasets/benches").status_code == 404
