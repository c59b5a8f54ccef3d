"""Weekly quotas and the load-percentage to category ladder."""
from __future__ import annotations

from enum import Enum

# Per-class weekly capacity
MAX_TASKS = 2
MAX_EXAMS = 5


class LoadCategory(str, Enum):
    """How full a class's week is."""
    OVERLOADED = "overloaded"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    MINIMAL = "minimal"


# Evaluated top to bottom, first match wins; bounds are inclusive
LOAD_THRESHOLDS: tuple[tuple[float, LoadCategory], ...] = (
    (100.0, LoadCategory.OVERLOADED),
    (75.0, LoadCategory.HIGH),
    (50.0, LoadCategory.MEDIUM),
    (25.0, LoadCategory.LOW),
)


def load_percentage(used: int, capacity: int) -> float:
    """Return ``used`` as a percentage of ``capacity`` (0 for zero capacity)."""
    if capacity <= 0:
        return 0.0
    return used / capacity * 100


def classify_load(percentage: float) -> LoadCategory:
    """Map a load percentage onto its category."""
    for lower_bound, category in LOAD_THRESHOLDS:
        if percentage >= lower_bound:
            return category
    return LoadCategory.MINIMAL
