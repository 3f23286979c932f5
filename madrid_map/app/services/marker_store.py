# app/services/marker_store.py
import asyncio
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from madrid_map.app.schemas.feature import (
    AcousticSignalDetails,
    Feature,
    StreetlightDetails,
    TrafficLightDetails,
)


class MarkerStore:
    """In-process stand-in for the map's marker layer.

    Features are kept in commit order; a marker id is the feature's position
    in that order. Each marker carries a shown/hidden flag that the filter
    pass updates.
    """

    def __init__(self) -> None:
        self._features: List[Feature] = []
        self._shown: List[bool] = []
        self.batches: List[int] = []

    def __len__(self) -> int:
        return len(self._features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._features)

    def commit(self, chunk: Sequence[Feature]) -> None:
        if not chunk:
            return
        self._features.extend(chunk)
        self._shown.extend([True] * len(chunk))
        self.batches.append(len(chunk))

    def clear(self) -> None:
        self._features.clear()
        self._shown.clear()
        self.batches.clear()

    def get(self, marker_id: int) -> Optional[Feature]:
        if 0 <= marker_id < len(self._features):
            return self._features[marker_id]
        return None

    def items(self) -> Iterator[Tuple[int, Feature]]:
        return enumerate(self._features)

    def is_shown(self, marker_id: int) -> bool:
        return self._shown[marker_id]

    def set_visible(self, marker_id: int, visible: bool) -> None:
        self._shown[marker_id] = bool(visible)

    @property
    def shown_count(self) -> int:
        return sum(self._shown)

    async def apply_visibility(self, predicate: Callable[[Feature], bool], pass_size: int = 100) -> int:
        """Recompute every marker's flag, yielding to the loop after each pass."""
        step = max(int(pass_size), 1)
        for start in range(0, len(self._features), step):
            for idx in range(start, min(start + step, len(self._features))):
                self._shown[idx] = bool(predicate(self._features[idx]))
            await asyncio.sleep(0)
        return self.shown_count


def popup_content(feature: Feature) -> List[Tuple[str, str]]:
    """Select the (label, value) pairs shown in a marker popup."""
    content = [("Category", feature.category.value), ("District", feature.district)]
    details = feature.details
    if isinstance(details, AcousticSignalDetails):
        content += [("Type", details.type), ("ID", details.id)]
    elif isinstance(details, StreetlightDetails):
        content += [
            ("Type", details.type),
            ("Neighborhood", details.neighborhood),
            ("Address", details.address),
        ]
    elif isinstance(details, TrafficLightDetails):
        content += [("ID", details.id)]
    else:
        raise TypeError(f"Unhandled details type: {type(details).__name__}")
    return content
