"""
Data models for the weekly assignment load monitor.

This module contains the immutable records that flow through a load cycle:
what the school-data service (or the offline fallback) provides, and the
per-class status derived from it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from load_monitor.quota import MAX_EXAMS, MAX_TASKS, LoadCategory, classify_load, load_percentage


class AssignmentKind(str, Enum):
    """The two assignment kinds that count against weekly quotas."""
    TASK = "TUGAS"
    EXAM = "UJIAN"


class DataSource(str, Enum):
    """Where the data of a snapshot came from."""
    LIVE = "live"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ClassRecord:
    """A school class such as 7-DIS (grade 7, DISCIPLINE)."""
    id: str
    grade: int
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class AssignmentRecord:
    """A task or exam scheduled for some classes in a given week."""
    id: str
    title: str
    subject: str
    kind: AssignmentKind
    week_number: int
    year: int
    status: str = ""
    class_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class WeekMarker:
    """Identifies the week assignments are counted for."""
    week_number: int
    year: int


@dataclass(frozen=True)
class ClassStatus:
    """Task and exam counts of one class for the current week."""
    class_record: ClassRecord
    tasks: int
    exams: int
    max_tasks: int = MAX_TASKS
    max_exams: int = MAX_EXAMS

    @property
    def used(self) -> int:
        return self.tasks + self.exams

    @property
    def capacity(self) -> int:
        return self.max_tasks + self.max_exams

    @property
    def percentage(self) -> float:
        return load_percentage(self.used, self.capacity)

    @property
    def category(self) -> LoadCategory:
        return classify_load(self.percentage)


@dataclass(frozen=True)
class Dataset:
    """Raw inputs of one load cycle."""
    classes: tuple[ClassRecord, ...]
    assignments: tuple[AssignmentRecord, ...]
    week: WeekMarker


@dataclass(frozen=True)
class StatusSnapshot:
    """Everything a load cycle publishes, swapped in as a single value."""
    classes: tuple[ClassRecord, ...]
    assignments: tuple[AssignmentRecord, ...]
    week: WeekMarker
    statuses: tuple[ClassStatus, ...]
    source: DataSource
    loaded_at: datetime = field(default_factory=datetime.now)

    @property
    def is_live(self) -> bool:
        return self.source is DataSource.LIVE
