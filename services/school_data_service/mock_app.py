"""
Mock school-data service for running the monitor without the real backend.

Serves the three read endpoints the load monitor consumes from fixed,
in-memory data: every grade's classes, a handful of tasks and exams spread
over two weeks, and a fixed current week. Responses are validated through the
shared Pydantic models so the mock can never drift from the wire contract.
"""
from __future__ import annotations

import typing as t
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from services.shared.models import (
    AssignmentsResponse,
    ClassesResponse,
    WeekInfoResponse,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Mock lifespan - no initialization needed."""
    print("🧪 Mock School Data Service starting - serving fixed sample data")
    yield
    print("🧪 Mock School Data Service shutting down")


app = FastAPI(
    title="Mock School Data Service",
    description="Mock REST API serving classes, assignments and week info",
    version="1.0.0-mock",
    lifespan=lifespan,
)


MOCK_WEEK = {"weekNumber": 3, "year": 2024}

_CATEGORIES = [
    ("DISCIPLINE", "DIS"),
    ("RESPECT", "RES"),
    ("CREATIVE", "CRE"),
    ("INDEPENDENT", "IND"),
    ("COLLABORATIVE", "COL"),
    ("RESILIENT", "RESI"),
]


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "service": "mock-school-data-service", "mode": "test"}


@app.get("/api/classes", response_model=ClassesResponse, response_model_by_alias=True)
async def list_classes() -> ClassesResponse:
    """All classes of grades 7 to 9."""
    try:
        return ClassesResponse.model_validate({"classes": _get_mock_classes()})
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Mock classes error: {str(e)}")


@app.get("/api/home/assignments", response_model=AssignmentsResponse, response_model_by_alias=True)
async def list_assignments() -> AssignmentsResponse:
    """Assignments shown on the home page."""
    try:
        return AssignmentsResponse.model_validate({"assignments": _get_mock_assignments()})
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Mock assignments error: {str(e)}")


@app.get("/api/utils/week-info", response_model=WeekInfoResponse, response_model_by_alias=True)
async def week_info() -> WeekInfoResponse:
    """The week the home page counts assignments for."""
    return WeekInfoResponse.model_validate({"weekInfo": MOCK_WEEK})


def _get_mock_classes() -> list[dict[str, t.Any]]:
    """Return the 18 sample classes, grade by grade."""
    return [
        {"id": f"{grade}-{code}", "grade": grade, "name": name, "isActive": True}
        for grade in (7, 8, 9)
        for name, code in _CATEGORIES
    ]


def _get_mock_assignments() -> list[dict[str, t.Any]]:
    """
    Return sample assignments.

    7-DIS is full on tasks this week, 8-CRE has every exam slot taken, and one
    assignment belongs to the following week so it must not be counted.
    """
    week, year = MOCK_WEEK["weekNumber"], MOCK_WEEK["year"]
    return [
        {
            "id": "A-001", "title": "Essay draft", "subject": "Bahasa Indonesia",
            "type": "TUGAS", "weekNumber": week, "year": year, "status": "ACTIVE",
            "classAssignments": [{"classId": "7-DIS"}, {"classId": "7-RES"}],
        },
        {
            "id": "A-002", "title": "Worksheet 4", "subject": "Mathematics",
            "type": "TUGAS", "weekNumber": week, "year": year, "status": "ACTIVE",
            "classAssignments": [{"classId": "7-DIS"}],
        },
        {
            "id": "A-003", "title": "Midterm", "subject": "Science",
            "type": "UJIAN", "weekNumber": week, "year": year, "status": "ACTIVE",
            "classAssignments": [{"classId": "7-DIS"}, {"classId": "9-IND"}],
        },
        *[
            {
                "id": f"E-{index:03d}", "title": f"{subject} quiz", "subject": subject,
                "type": "UJIAN", "weekNumber": week, "year": year, "status": "ACTIVE",
                "classAssignments": [{"classId": "8-CRE"}],
            }
            for index, subject in enumerate(
                ["English", "History", "Geography", "Physics", "Biology"], start=1
            )
        ],
        {
            "id": "A-004", "title": "Project proposal", "subject": "Arts",
            "type": "TUGAS", "weekNumber": week + 1, "year": year, "status": "ACTIVE",
            "classAssignments": [{"classId": "7-DIS"}],
        },
        {
            "id": "A-005", "title": "Reading log", "subject": "English",
            "type": "TUGAS", "weekNumber": week, "year": year, "status": "DRAFT",
            "classAssignments": None,
        },
    ]
