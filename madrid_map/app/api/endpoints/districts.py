from typing import Any

from fastapi import APIRouter, Query

from madrid_map.app.services.map_session import MapSession


router = APIRouter(prefix="/districts")


@router.get("/")
def list_districts() -> Any:
    normalizer = MapSession.get_instance().normalizer
    boundaries = normalizer.boundaries
    return {
        "vocabulary": list(normalizer.vocabulary),
        "with_boundaries": boundaries.names if boundaries is not None else [],
    }


@router.get("/normalize")
def normalize(name: str = Query("", description="Free-text district name")) -> Any:
    normalizer = MapSession.get_instance().normalizer
    return {"input": name, "district": normalizer.normalize(name)}
