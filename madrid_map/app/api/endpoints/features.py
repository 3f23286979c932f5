from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query

from madrid_map.app.schemas.api import PopupResponse
from madrid_map.app.schemas.feature import Category
from madrid_map.app.services.map_session import MapSession
from madrid_map.app.services.marker_store import popup_content


router = APIRouter(prefix="/features")


def _parse_category(raw: Optional[str]) -> Optional[Category]:
    if not raw:
        return None
    s = raw.strip().lower()
    for cat in Category:
        if s in (cat.value.lower(), cat.slug, cat.name.lower()):
            return cat
    raise HTTPException(status_code=422, detail=f"Unknown category '{raw}'")


@router.get("/")
def list_features(
    visible_only: bool = Query(True, description="Only markers that pass the active filters"),
    category: Optional[str] = Query(None, description="Category label or slug (e.g. traffic-lights)"),
    limit: int = Query(1000, ge=1, le=50000, description="Max features returned"),
    offset: int = Query(0, ge=0),
) -> Any:
    session = MapSession.get_instance()
    cat = _parse_category(category)
    matched = []
    for marker_id, feature in session.store.items():
        if visible_only and not session.store.is_shown(marker_id):
            continue
        if cat is not None and feature.category is not cat:
            continue
        matched.append((marker_id, feature))

    features = []
    for marker_id, feature in matched[offset: offset + limit]:
        item = feature.to_geojson()
        item["id"] = marker_id
        features.append(item)
    return {
        "type": "FeatureCollection",
        "total": len(matched),
        "offset": offset,
        "limit": limit,
        "features": features,
    }


@router.get("/{marker_id}/popup", response_model=PopupResponse)
def get_popup(marker_id: int):
    session = MapSession.get_instance()
    feature = session.store.get(marker_id)
    if feature is None:
        raise HTTPException(status_code=404, detail=f"No marker with id {marker_id}")
    entries = [{"label": label, "value": value} for label, value in popup_content(feature)]
    return {"marker_id": marker_id, "title": feature.category.value, "entries": entries}
