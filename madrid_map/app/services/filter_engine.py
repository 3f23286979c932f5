# app/services/filter_engine.py
from enum import Enum
from typing import Dict, Iterable, List, Optional

from madrid_map.app.errors import UnknownFacetValue
from madrid_map.app.schemas.feature import NOT_APPLICABLE, SENTINELS, Feature


class FacetKind(str, Enum):
    CATEGORY = "category"
    DISTRICT = "district"
    NEIGHBORHOOD = "neighborhood"


def facet_value(feature: Feature, kind: FacetKind) -> str:
    if kind is FacetKind.CATEGORY:
        return feature.category.value
    if kind is FacetKind.DISTRICT:
        return feature.district
    return feature.neighborhood


class FilterEngine:
    """Active facet selections and the per-feature visibility predicate."""

    def __init__(self) -> None:
        self.vocabulary: Dict[FacetKind, List[str]] = {kind: [] for kind in FacetKind}
        self.active: Dict[FacetKind, set] = {kind: set() for kind in FacetKind}

    @staticmethod
    def _kind(kind) -> FacetKind:
        try:
            return FacetKind(kind)
        except ValueError:
            raise UnknownFacetValue("facet", str(kind))

    def seed(self, features: Iterable[Feature]) -> None:
        """Discover every facet value (first-seen order) and select them all."""
        seen: Dict[FacetKind, Dict[str, None]] = {kind: {} for kind in FacetKind}
        for feature in features:
            for kind in FacetKind:
                seen[kind].setdefault(facet_value(feature, kind), None)
        for kind in FacetKind:
            self.vocabulary[kind] = list(seen[kind])
            self.active[kind] = set(seen[kind])

    def _check_value(self, kind: FacetKind, value: str) -> None:
        if value not in self.vocabulary[kind]:
            raise UnknownFacetValue(kind.value, value)

    def toggle(self, kind, value: str, selected: Optional[bool] = None) -> bool:
        """Flip a value's membership, or force it when ``selected`` is given. Returns the new state."""
        kind = self._kind(kind)
        self._check_value(kind, value)
        active = self.active[kind]
        if selected is None:
            selected = value not in active
        if selected:
            active.add(value)
        else:
            active.discard(value)
        return selected

    def select_all(self, kind) -> None:
        kind = self._kind(kind)
        self.active[kind] = set(self.vocabulary[kind])

    def clear(self, kind) -> None:
        self.active[self._kind(kind)] = set()

    def set_selection(self, kind, values: Iterable[str]) -> None:
        kind = self._kind(kind)
        values = list(values)
        for value in values:
            self._check_value(kind, value)
        self.active[kind] = set(values)

    def is_visible(self, feature: Feature) -> bool:
        if feature.category.value not in self.active[FacetKind.CATEGORY]:
            return False
        if feature.district not in self.active[FacetKind.DISTRICT]:
            return False
        neighborhood = feature.neighborhood
        return neighborhood == NOT_APPLICABLE or neighborhood in self.active[FacetKind.NEIGHBORHOOD]

    def options(self, kind, include_sentinels: bool = False) -> List[str]:
        values = self.vocabulary[self._kind(kind)]
        if include_sentinels:
            return list(values)
        return [v for v in values if v and v not in SENTINELS]

    def state(self) -> Dict[str, Dict[str, List[str]]]:
        return {
            kind.value: {
                "values": list(self.vocabulary[kind]),
                "selected": [v for v in self.vocabulary[kind] if v in self.active[kind]],
            }
            for kind in FacetKind
        }
