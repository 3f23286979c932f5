from typing import Any

from fastapi import APIRouter, HTTPException

from madrid_map.app.errors import UnknownFacetValue
from madrid_map.app.schemas.api import FacetSelectionRequest, FacetToggleRequest
from madrid_map.app.services.filter_engine import FacetKind
from madrid_map.app.services.map_session import MapSession


router = APIRouter(prefix="/facets")


def _parse_kind(raw: str) -> FacetKind:
    try:
        return FacetKind(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(k.value for k in FacetKind)
        raise HTTPException(status_code=422, detail=f"'kind' must be one of: {allowed}")


def _facets_payload(session: MapSession) -> Any:
    state = session.filters.state()
    for kind in FacetKind:
        state[kind.value]["options"] = session.filters.options(kind)
    return {"facets": state, "statistics": session.statistics.to_dict()}


@router.get("/")
def get_facets() -> Any:
    return _facets_payload(MapSession.get_instance())


@router.post("/toggle")
async def toggle_facet(request: FacetToggleRequest) -> Any:
    session = MapSession.get_instance()
    kind = _parse_kind(request.kind)
    try:
        selected = await session.toggle(kind, request.value, request.selected)
    except UnknownFacetValue as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    payload = _facets_payload(session)
    payload["changed"] = {"kind": kind.value, "value": request.value, "selected": selected}
    return payload


@router.post("/{kind}/select-all")
async def select_all(kind: str) -> Any:
    session = MapSession.get_instance()
    await session.select_all(_parse_kind(kind))
    return _facets_payload(session)


@router.post("/{kind}/clear")
async def clear(kind: str) -> Any:
    session = MapSession.get_instance()
    await session.clear(_parse_kind(kind))
    return _facets_payload(session)


@router.put("/{kind}")
async def set_selection(kind: str, request: FacetSelectionRequest) -> Any:
    session = MapSession.get_instance()
    try:
        await session.set_selection(_parse_kind(kind), request.values)
    except UnknownFacetValue as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return _facets_payload(session)
