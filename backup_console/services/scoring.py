from __future__ import annotations

import math
from typing import Any, Mapping

SCORE_COMPONENTS = ("testScore", "homeworkScore", "projectScore", "examScore")


def as_number(value: Any) -> float | None:
    """Finite numeric value, or None for anything else (bools included)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        if not math.isfinite(value):
            return None
    except OverflowError:
        # ints beyond float range
        return None
    return value


def calculate_total_score(assessment: Mapping[str, Any]) -> float:
    """Sum of the component scores of one assessment; missing components count 0."""
    total = 0
    for component in SCORE_COMPONENTS:
        value = as_number(assessment.get(component))
        if value is not None:
            total += value
    return total
