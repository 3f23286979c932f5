# app/schemas/api.py
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class FacetToggleRequest(BaseModel):
    """ A single checkbox change coming from the map's filter panel. """
    kind: str = Field(..., description="category, district or neighborhood")
    value: str
    selected: Optional[bool] = Field(None, description="Force the state; omit to flip it")


class FacetSelectionRequest(BaseModel):
    values: List[str] = Field(default_factory=list)


class FacetState(BaseModel):
    values: List[str]
    selected: List[str]
    options: List[str]


class StatisticsResponse(BaseModel):
    total: int
    by_category: Dict[str, int]
    by_district: Dict[str, int]
    by_district_category: Dict[str, Dict[str, int]]


class PopupEntry(BaseModel):
    label: str
    value: str


class PopupResponse(BaseModel):
    marker_id: int
    title: str
    entries: List[PopupEntry]
