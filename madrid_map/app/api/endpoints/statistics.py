from fastapi import APIRouter

from madrid_map.app.schemas.api import StatisticsResponse
from madrid_map.app.services.map_session import MapSession


router = APIRouter(prefix="/statistics")


@router.get("/", response_model=StatisticsResponse)
def get_statistics():
    """Counts over the currently visible markers."""
    return MapSession.get_instance().statistics.to_dict()
