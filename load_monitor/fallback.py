"""Offline dataset used when the school-data service cannot be reached."""
from __future__ import annotations

import typing as t
from datetime import date

from load_monitor.models import ClassRecord, Dataset, WeekMarker

GRADES = (7, 8, 9)

# (display name, id code) for every class of a grade
CLASS_CATEGORIES = (
    ("DISCIPLINE", "DIS"),
    ("RESPECT", "RES"),
    ("CREATIVE", "CRE"),
    ("INDEPENDENT", "IND"),
    ("COLLABORATIVE", "COL"),
    ("RESILIENT", "RESI"),
)


def fallback_classes() -> tuple[ClassRecord, ...]:
    """The fixed catalog of 18 classes, grade by grade."""
    return tuple(
        ClassRecord(id=f"{grade}-{code}", grade=grade, name=name, is_active=True)
        for grade in GRADES
        for name, code in CLASS_CATEGORIES
    )


def fallback_week(today: date) -> WeekMarker:
    """Approximate the current week as the 7-day bucket of the day of month.

    Days 1-7 are week 1, 8-14 week 2 and so on up to week 5. This is not an
    ISO calendar week; it only matches the service's week numbering when the
    service counts weeks the same way.
    """
    return WeekMarker(week_number=(today.day + 6) // 7, year=today.year)


def produce_fallback_dataset(today: t.Optional[date] = None) -> Dataset:
    """Build the offline dataset: all classes, no assignments, approximate week."""
    return Dataset(
        classes=fallback_classes(),
        assignments=(),
        week=fallback_week(today or date.today()),
    )
