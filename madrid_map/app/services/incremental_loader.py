# app/services/incremental_loader.py
from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from madrid_map.app.errors import (
    COORDINATE_ERRORS,
    CoordinateRejected,
    DatasetLoadFailed,
    ErrorKind,
    RecordParseError,
)
from madrid_map.app.schemas.feature import UNKNOWN, Feature
from madrid_map.app.services.coordinate_validator import validate_coordinates
from madrid_map.app.services.datasets import DEFAULT_DATASETS, DatasetSchema
from madrid_map.app.services.district_normalizer import DistrictNormalizer, default_normalizer
from madrid_map.app.services.feature_builder import build_feature
from madrid_map.app.services.marker_store import MarkerStore
from madrid_map.app.services.record_parser import parse_records

logger = logging.getLogger(__name__)

ProgressSink = Callable[[str, float], None]
ErrorSink = Callable[[str], None]


@dataclass
class LoadProgress:
    state: str = "idle"  # idle | loading | complete | failed
    dataset: str = ""
    processed: int = 0
    total: int = 0
    message: str = ""

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 100.0 if self.state == "complete" else 0.0
        return round(100.0 * self.processed / self.total, 2)

    def reset(self, state: str = "idle") -> None:
        self.state = state
        self.dataset = ""
        self.processed = 0
        self.total = 0
        self.message = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "dataset": self.dataset,
            "processed": self.processed,
            "total": self.total,
            "percent": self.percent,
            "message": self.message,
        }


@dataclass
class LoadReport:
    rows: Dict[str, int] = field(default_factory=dict)
    features: Dict[str, int] = field(default_factory=dict)
    batches: Dict[str, List[int]] = field(default_factory=dict)
    rejections: Counter = field(default_factory=Counter)
    unresolved_districts: int = 0

    @property
    def total_features(self) -> int:
        return sum(self.features.values())

    @property
    def total_rows(self) -> int:
        return sum(self.rows.values())

    @property
    def coordinate_rejections(self) -> int:
        return sum(self.rejections[k] for k in COORDINATE_ERRORS)

    def summary_message(self) -> Optional[str]:
        rejected = self.coordinate_rejections
        if not rejected:
            return None
        return (
            f"Skipped {rejected} of {self.total_rows} rows with invalid coordinates "
            f"(missing: {self.rejections[ErrorKind.MISSING_COORDINATE]}, "
            f"malformed: {self.rejections[ErrorKind.MALFORMED_COORDINATE]}, "
            f"out of region: {self.rejections[ErrorKind.OUT_OF_REGION]})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_rows": self.total_rows,
            "total_features": self.total_features,
            "rows": dict(self.rows),
            "features": dict(self.features),
            "batches": {k: list(v) for k, v in self.batches.items()},
            "rejections": {kind.value: int(self.rejections[kind]) for kind in COORDINATE_ERRORS},
            "coordinate_rejections": self.coordinate_rejections,
            "unresolved_districts": self.unresolved_districts,
        }


class IncrementalLoader:
    """
    Loads datasets one after another into a marker store in bounded chunks.

    Each dataset is fetched, parsed, and converted row by row. Accepted
    features are committed ``chunk_size`` at a time; after every commit the
    task reports progress and yields to the event loop. A row with bad
    coordinates is tallied and skipped. A dataset that cannot be fetched or
    parsed aborts the whole load with DatasetLoadFailed.
    """

    def __init__(
        self,
        source: Any,
        store: MarkerStore,
        normalizer: Optional[DistrictNormalizer] = None,
        *,
        chunk_size: int = 500,
        chunk_delay: float = 0.05,
        progress_sink: Optional[ProgressSink] = None,
        error_sink: Optional[ErrorSink] = None,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.source = source
        self.store = store
        self.normalizer = normalizer or default_normalizer()
        self.chunk_size = int(chunk_size)
        self.chunk_delay = max(float(chunk_delay), 0.0)
        self.progress_sink = progress_sink
        self.error_sink = error_sink
        self.progress = LoadProgress()

    def _report_progress(self, message: str) -> None:
        self.progress.message = message
        if self.progress_sink is not None:
            self.progress_sink(message, self.progress.percent)

    def _report_error(self, message: str) -> None:
        if self.error_sink is not None:
            self.error_sink(message)

    async def _commit(self, chunk: List[Feature], report: LoadReport, schema: DatasetSchema, processed: int) -> None:
        self.store.commit(chunk)
        report.batches.setdefault(schema.key, []).append(len(chunk))
        report.features[schema.key] = report.features.get(schema.key, 0) + len(chunk)
        self.progress.processed = processed
        self._report_progress(f"Loading {schema.label}: {processed}/{self.progress.total}")
        await asyncio.sleep(self.chunk_delay)

    async def _load_dataset(self, schema: DatasetSchema, report: LoadReport) -> None:
        self.progress.dataset = schema.label
        self.progress.processed = 0
        self.progress.total = 0
        self._report_progress(f"Loading {schema.label} data...")

        text = await self.source.fetch(schema)
        try:
            rows = list(parse_records(text, has_header=True))
        except RecordParseError as exc:
            raise DatasetLoadFailed(schema.label, f"unreadable CSV ({exc})")

        report.rows[schema.key] = len(rows)
        report.features.setdefault(schema.key, 0)
        report.batches.setdefault(schema.key, [])
        self.progress.total = len(rows)
        if not rows:
            logger.warning("%s: payload has a header but no data rows", schema.label)
            self._report_progress(f"Loading {schema.label}: 0/0")
            return

        columns = schema.resolve_columns(rows[0].keys())
        missing = schema.missing_required(columns)
        if missing:
            raise DatasetLoadFailed(
                schema.label,
                f"no column for {', '.join(missing)} (header: {', '.join(rows[0].keys())})",
            )

        logger.info("%s: converting %d rows", schema.label, len(rows))
        chunk: List[Feature] = []
        committed_upto = 0
        for idx, row in enumerate(rows, start=1):
            try:
                position = validate_coordinates(row, schema, columns)
            except CoordinateRejected as exc:
                report.rejections[exc.kind] += 1
                logger.debug("%s row %d skipped: %s", schema.label, idx, exc)
                continue

            district_col = columns.get("district")
            district = self.normalizer.resolve(row.get(district_col) if district_col else None, position)
            if district == UNKNOWN:
                report.unresolved_districts += 1
                report.rejections[ErrorKind.UNRESOLVED_DISTRICT] += 1

            chunk.append(build_feature(schema.category, position, district, row, schema, columns))
            if len(chunk) >= self.chunk_size:
                await self._commit(chunk, report, schema, idx)
                committed_upto = idx
                chunk = []

        if chunk:
            await self._commit(chunk, report, schema, len(rows))
        elif committed_upto < len(rows):
            self.progress.processed = len(rows)
            self._report_progress(f"Loading {schema.label}: {len(rows)}/{len(rows)}")

        logger.info(
            "%s: committed %d features in %d batch(es)",
            schema.label,
            report.features[schema.key],
            len(report.batches[schema.key]),
        )

    async def load(self, datasets: Sequence[DatasetSchema] = DEFAULT_DATASETS, *, clear_store: bool = True) -> LoadReport:
        if clear_store:
            self.store.clear()
        report = LoadReport()
        # reset in place; callers may hold a reference to this object
        self.progress.reset("loading")
        try:
            for schema in datasets:
                await self._load_dataset(schema, report)
        except DatasetLoadFailed as exc:
            self.progress.state = "failed"
            logger.error("%s", exc)
            self._report_error(str(exc))
            raise

        self.progress.state = "complete"
        summary = report.summary_message()
        if summary:
            logger.warning("%s", summary)
            self._report_error(summary)
        self._report_progress(f"Loaded {report.total_features} features")
        return report
