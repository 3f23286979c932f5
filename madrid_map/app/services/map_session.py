# app/services/map_session.py
from __future__ import annotations

import logging
import time
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Optional, Sequence

from madrid_map.app.config import Settings
from madrid_map.app.errors import DatasetLoadFailed, LoadInProgress
from madrid_map.app.lib.district_boundaries import DistrictBoundaries
from madrid_map.app.services.datasets import DEFAULT_DATASETS, DatasetSchema, source_from_settings
from madrid_map.app.services.district_normalizer import MADRID_DISTRICTS, DistrictNormalizer
from madrid_map.app.services.filter_engine import FilterEngine
from madrid_map.app.services.incremental_loader import IncrementalLoader, LoadProgress, LoadReport
from madrid_map.app.services.marker_store import MarkerStore
from madrid_map.app.services.statistics_aggregator import StatisticsSnapshot, compute_statistics

logger = logging.getLogger(__name__)

MAX_RECENT_ERRORS = 20


def build_normalizer(settings: Settings) -> DistrictNormalizer:
    normalizer = DistrictNormalizer()
    if settings.districts_geojson is None:
        return normalizer
    try:
        normalizer.boundaries = DistrictBoundaries.from_geojson(
            settings.districts_geojson,
            resolve_name=normalizer.normalize,
            order=MADRID_DISTRICTS,
        )
    except (OSError, ValueError) as exc:
        logger.warning("Could not load district boundaries (%s); using the alias table only", exc)
    return normalizer


class MapSession:
    """Everything one viewer session owns: markers, filters, statistics and load state."""

    _instance: Optional["MapSession"] = None

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        source: Any = None,
        normalizer: Optional[DistrictNormalizer] = None,
        datasets: Sequence[DatasetSchema] = DEFAULT_DATASETS,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.source = source if source is not None else source_from_settings(self.settings)
        self.normalizer = normalizer or build_normalizer(self.settings)
        self.datasets = tuple(datasets)
        self.store = MarkerStore()
        self.filters = FilterEngine()
        self.statistics = StatisticsSnapshot()
        self.progress = LoadProgress()
        self.report: Optional[LoadReport] = None
        self.errors: Deque[Dict[str, Any]] = deque(maxlen=MAX_RECENT_ERRORS)
        self._loading = False

    @classmethod
    def get_instance(cls) -> "MapSession":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def set_instance(cls, session: Optional["MapSession"]) -> None:
        cls._instance = session

    @classmethod
    def reset_instance(cls) -> None:
        cls._instance = None

    @property
    def loading(self) -> bool:
        return self._loading

    def record_error(self, message: str) -> None:
        self.errors.append({"message": message, "at": time.time()})

    def recent_errors(self) -> List[Dict[str, Any]]:
        return list(self.errors)

    def _on_progress(self, message: str, percent: float) -> None:
        logger.debug("%s (%.1f%%)", message, percent)

    async def load(self) -> LoadReport:
        if self._loading:
            raise LoadInProgress("A dataset load is already running")
        self._loading = True
        loader = IncrementalLoader(
            self.source,
            self.store,
            self.normalizer,
            chunk_size=self.settings.chunk_size,
            chunk_delay=self.settings.chunk_delay_s,
            progress_sink=self._on_progress,
            error_sink=self.record_error,
        )
        # share the loader's live progress so status polls see it mid-load
        self.progress = loader.progress
        try:
            report = await loader.load(self.datasets)
        except DatasetLoadFailed:
            self.progress = loader.progress
            self.store.clear()
            self.filters = FilterEngine()
            self.statistics = StatisticsSnapshot()
            self.report = None
            raise
        finally:
            self._loading = False

        self.progress = loader.progress
        self.report = report
        self.filters.seed(self.store)
        await self.refresh()
        return report

    async def refresh(self) -> StatisticsSnapshot:
        """Re-apply the filter predicate to every marker and recompute statistics."""
        await self.store.apply_visibility(self.filters.is_visible, pass_size=self.settings.visibility_pass)
        self.statistics = compute_statistics(self.store, self.filters.is_visible)
        return self.statistics

    async def toggle(self, kind, value: str, selected: Optional[bool] = None) -> bool:
        state = self.filters.toggle(kind, value, selected)
        await self.refresh()
        return state

    async def select_all(self, kind) -> None:
        self.filters.select_all(kind)
        await self.refresh()

    async def clear(self, kind) -> None:
        self.filters.clear(kind)
        await self.refresh()

    async def set_selection(self, kind, values: Iterable[str]) -> None:
        self.filters.set_selection(kind, values)
        await self.refresh()
