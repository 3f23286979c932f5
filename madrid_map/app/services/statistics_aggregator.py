# app/services/statistics_aggregator.py
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable

from madrid_map.app.schemas.feature import Feature


def _ordered(counts: Counter) -> Dict[str, int]:
    return {k: int(v) for k, v in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))}


@dataclass(frozen=True)
class StatisticsSnapshot:
    total: int = 0
    by_category: Dict[str, int] = field(default_factory=dict)
    by_district: Dict[str, int] = field(default_factory=dict)
    by_district_category: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "by_category": dict(self.by_category),
            "by_district": dict(self.by_district),
            "by_district_category": {d: dict(c) for d, c in self.by_district_category.items()},
        }


def compute_statistics(features: Iterable[Feature], predicate: Callable[[Feature], bool]) -> StatisticsSnapshot:
    """Count visible features per category, district and district/category in one pass."""
    total = 0
    categories: Counter = Counter()
    districts: Counter = Counter()
    nested: Dict[str, Counter] = defaultdict(Counter)
    for feature in features:
        if not predicate(feature):
            continue
        total += 1
        categories[feature.category.value] += 1
        districts[feature.district] += 1
        nested[feature.district][feature.category.value] += 1

    return StatisticsSnapshot(
        total=total,
        by_category=_ordered(categories),
        by_district=_ordered(districts),
        by_district_category={d: _ordered(nested[d]) for d in _ordered(districts)},
    )
