"""Weighted qualification rules configured per strategic session."""
import logging
from typing import Iterable, Mapping, Optional

from common.db.models import QualificationCriterion

logger = logging.getLogger(__name__)

OPERATORS = {"equals", "contains", "greater_than", "less_than", "not_empty"}
QUALIFIED_RATIO = 0.5


def _as_float(value: str) -> Optional[float]:
    try:
        return float(value.replace(",", "."))
    except (AttributeError, ValueError):
        return None


def criterion_matches(criterion: QualificationCriterion, row: Mapping[str, str]) -> bool:
    field_value = row.get(criterion.field_name.lower(), "") or ""
    expected = criterion.value or ""
    op = criterion.operator

    if op == "equals":
        return field_value.lower() == expected.lower()
    if op == "contains":
        return expected.lower() in field_value.lower()
    if op in ("greater_than", "less_than"):
        left, right = _as_float(field_value), _as_float(expected)
        if left is None or right is None:
            return False
        return left > right if op == "greater_than" else left < right
    if op == "not_empty":
        return field_value.strip() != ""

    logger.warning(f"Unknown qualification operator: {op}")
    return False


def qualify_row(criteria: Iterable[QualificationCriterion], row: Mapping[str, str]) -> tuple[bool, Optional[int]]:
    """Return (is_qualified, score percent). No criteria -> (False, None)."""
    total = 0.0
    matched = 0.0
    for c in criteria:
        weight = float(c.weight)
        total += weight
        if criterion_matches(c, row):
            matched += weight
    if total <= 0:
        return False, None
    ratio = matched / total
    return ratio >= QUALIFIED_RATIO, round(ratio * 100)
