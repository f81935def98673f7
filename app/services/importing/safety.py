"""Size caps for a single import run.

Limits come from ``run.input.limits``; unrecognized keys and values that are
not positive numbers are dropped rather than rejected.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.models.normalized import NormalizedProviderDataset

LIMIT_FIELDS = {
    "maxModules": "modules",
    "maxAssets": "assets",
}

DEFAULT_WARNING_LIMITS = {
    "maxModules": 200,
    "maxAssets": 5000,
}


@dataclass
class LimitEvaluation:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _as_limit(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    normalized = max(0, math.floor(parsed))
    return normalized if normalized > 0 else None


def normalize_import_limits(raw: Any) -> Dict[str, int]:
    if not isinstance(raw, dict):
        return {}
    limits: Dict[str, int] = {}
    for key in LIMIT_FIELDS:
        value = _as_limit(raw.get(key))
        if value:
            limits[key] = value
    return limits


def evaluate_import_limits(counts: Dict[str, int], limits: Optional[Dict[str, int]] = None) -> LimitEvaluation:
    """One error per breached cap; advisory warnings for large volumes otherwise."""
    limits = limits or {}
    result = LimitEvaluation()
    for key, field_name in LIMIT_FIELDS.items():
        count = int(counts.get(field_name, 0))
        limit = limits.get(key)
        if limit and count > limit:
            result.errors.append(f"{field_name} count {count} exceeds the limit {limit}")
        elif count > DEFAULT_WARNING_LIMITS[key]:
            result.warnings.append(
                f"Large {field_name} volume detected ({count}); consider a dry run or a lower limit."
            )
    return result


def count_dataset_items(dataset: NormalizedProviderDataset) -> Dict[str, int]:
    assets = 0
    for module in dataset.modules:
        assets += len(module.assets)
        for lesson in module.lessons:
            assets += len(lesson.assets)
    return {"modules": len(dataset.modules), "assets": assets}

