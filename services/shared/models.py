"""
Shared Pydantic models for the school-data REST API.

These describe the JSON bodies served by the school-data service and are used
both by the mock service and by the client that validates responses before
converting them into the frozen dataclasses of ``load_monitor.models``.
Field names on the wire are camelCase; unknown fields are ignored.
"""
from __future__ import annotations

import typing as t
from pydantic import BaseModel, ConfigDict, Field, field_validator


# Type literals for commonly used values
Grade = t.Literal[7, 8, 9]
AssignmentType = t.Literal["TUGAS", "UJIAN"]


class WireModel(BaseModel):
    """Base for every wire model: camelCase aliases, extra fields dropped."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SchoolClass(WireModel):
    """
    A class, e.g. ``{"id": "7-DIS", "grade": 7, "name": "DISCIPLINE"}``.
    """
    id: str = Field(min_length=1)
    grade: Grade
    name: str
    is_active: bool = Field(default=True, alias="isActive")


class ClassAssignment(WireModel):
    """Link between an assignment and one class."""
    class_id: str = Field(alias="classId")


class Assignment(WireModel):
    """
    A scheduled task ("TUGAS") or exam ("UJIAN") for a given week.
    """
    id: str = Field(min_length=1)
    title: str
    subject: str
    type: AssignmentType
    week_number: int = Field(ge=1, alias="weekNumber")
    year: int
    status: str = ""
    class_assignments: list[ClassAssignment] = Field(
        default_factory=list, alias="classAssignments"
    )

    @field_validator("class_assignments", mode="before")
    @classmethod
    def _none_is_empty(cls, value: t.Any) -> t.Any:
        # The API sends null when an assignment has no classes yet
        return [] if value is None else value


class WeekInfo(WireModel):
    """The week currently being tracked."""
    week_number: int = Field(ge=1, alias="weekNumber")
    year: int


# Response envelopes, one per endpoint
class ClassesResponse(WireModel):
    """Body of ``GET /api/classes``."""
    classes: list[SchoolClass]


class AssignmentsResponse(WireModel):
    """Body of ``GET /api/home/assignments``."""
    assignments: list[Assignment]


class WeekInfoResponse(WireModel):
    """Body of ``GET /api/utils/week-info``."""
    week_info: WeekInfo = Field(alias="weekInfo")
