"""
Status aggregation for the weekly assignment load monitor.

Turns the raw classes, assignments and week marker of a load cycle into one
:class:`ClassStatus` per class. Everything here is pure: the same inputs
always give the same statuses in the same order.
"""
from __future__ import annotations

import logging
import typing as t

from load_monitor.models import (
    AssignmentKind,
    AssignmentRecord,
    ClassRecord,
    ClassStatus,
    WeekMarker,
)
from load_monitor.quota import MAX_EXAMS, MAX_TASKS, LoadCategory, classify_load, load_percentage

logger = logging.getLogger(__name__)


def aggregate(
    classes: t.Optional[t.Sequence[ClassRecord]],
    assignments: t.Optional[t.Sequence[AssignmentRecord]],
    week: t.Optional[WeekMarker],
) -> list[ClassStatus]:
    """Count this week's tasks and exams for every class.

    An assignment counts for a class when its week number and year match
    ``week`` and the class id is one of its ``class_ids``.

    Args:
        classes: Classes to report on; output follows this order.
        assignments: All known assignments. Missing or not a list is treated
            as no assignments.
        week: The week to count. When missing nothing matches and every
            class reports zero.

    Returns:
        One ClassStatus per class, or an empty list when ``classes`` is missing.
    """
    if not isinstance(classes, (list, tuple)):
        logger.warning("aggregate: no classes provided", extra={"event": "aggregate_no_classes"})
        return []

    if not isinstance(assignments, (list, tuple)):
        logger.info("aggregate: no assignments provided, using empty list")
        assignments = []

    if week is None:
        logger.warning("aggregate: no week provided, all counts will be zero",
                       extra={"event": "aggregate_no_week"})
        this_week: list[AssignmentRecord] = []
    else:
        this_week = [
            assignment for assignment in assignments
            if assignment.week_number == week.week_number and assignment.year == week.year
        ]

    logger.debug(
        "aggregate: %d classes, %d assignments, %d in week %s",
        len(classes), len(assignments), len(this_week), week,
    )

    statuses = []
    for class_record in classes:
        tasks = exams = 0
        for assignment in this_week:
            if class_record.id not in assignment.class_ids:
                continue
            if assignment.kind is AssignmentKind.TASK:
                tasks += 1
            elif assignment.kind is AssignmentKind.EXAM:
                exams += 1

        if tasks or exams:
            logger.debug("Class %s: %d tasks, %d exams", class_record.id, tasks, exams)

        statuses.append(ClassStatus(
            class_record=class_record,
            tasks=tasks,
            exams=exams,
            max_tasks=MAX_TASKS,
            max_exams=MAX_EXAMS,
        ))
    return statuses


def overall_percentage(statuses: t.Iterable[ClassStatus]) -> float:
    """Share of all quota slots in use across ``statuses`` (0 when there are none)."""
    used = capacity = 0
    for status in statuses:
        used += status.used
        capacity += status.capacity
    return load_percentage(used, capacity)


def overall_category(statuses: t.Iterable[ClassStatus]) -> LoadCategory:
    """Category of the combined load of ``statuses``."""
    return classify_load(overall_percentage(statuses))


def group_by_grade(statuses: t.Iterable[ClassStatus]) -> dict[int, list[ClassStatus]]:
    """Group statuses by grade, grades ascending, input order kept within a grade."""
    groups: dict[int, list[ClassStatus]] = {}
    for status in statuses:
        groups.setdefault(status.class_record.grade, []).append(status)
    return {grade: groups[grade] for grade in sorted(groups)}
