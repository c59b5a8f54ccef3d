"""Tests for the school-data HTTP client.

The network is replaced by ``httpx.MockTransport`` (scripted responses,
delays and connection errors) or by ``httpx.ASGITransport`` over the mock
FastAPI service. Timeouts are scaled down to fractions of a second.
"""
import asyncio
import gc
import logging
import time
import typing as t

import httpx
import pytest
from pydantic import ValidationError

from load_monitor.aggregation import aggregate
from load_monitor.client import SchoolDataClient
from load_monitor.errors import (
    BadStatusError,
    MalformedBodyError,
    NetworkError,
    SourceErrorReason,
    SourceTimeoutError,
)
from load_monitor.models import AssignmentKind, ClassRecord, WeekMarker
from services.school_data_service.mock_app import app as mock_app


BODIES: dict[str, t.Any] = {
    "/api/classes": {
        "classes": [
            {"id": "7-DIS", "grade": 7, "name": "DISCIPLINE", "isActive": True},
            {"id": "8-RES", "grade": 8, "name": "RESPECT", "isActive": False, "room": "B2"},
        ]
    },
    "/api/home/assignments": {
        "assignments": [
            {
                "id": "a1", "title": "Essay", "subject": "English", "type": "TUGAS",
                "weekNumber": 3, "year": 2024, "status": "ACTIVE",
                "classAssignments": [{"classId": "7-DIS"}, {"classId": "8-RES"}],
            },
            {
                "id": "a2", "title": "Quiz", "subject": "Science", "type": "UJIAN",
                "weekNumber": 3, "year": 2024, "status": "ACTIVE",
            },
        ]
    },
    "/api/utils/week-info": {"weekInfo": {"weekNumber": 3, "year": 2024}},
}

Handler = t.Callable[[httpx.Request], t.Awaitable[httpx.Response]]


def make_transport(
    overrides: t.Optional[dict[str, Handler]] = None,
    seen: t.Optional[list[httpx.Request]] = None,
) -> httpx.MockTransport:
    """Serve BODIES, letting ``overrides`` replace individual endpoints."""
    overrides = overrides or {}

    async def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        override = overrides.get(request.url.path)
        if override is not None:
            return await override(request)
        return httpx.Response(200, json=BODIES[request.url.path])

    return httpx.MockTransport(handler)


def respond(status_code: int, content: bytes = b"") -> Handler:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=content)
    return handler


def delayed(seconds: float) -> Handler:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(seconds)
        return httpx.Response(200, json=BODIES[request.url.path])
    return handler


def make_client(transport: httpx.AsyncBaseTransport, **kwargs: float) -> SchoolDataClient:
    return SchoolDataClient(base_url="http://school.test", transport=transport, **kwargs)


@pytest.mark.asyncio
async def test_fetch_all_returns_validated_dataset() -> None:
    """All three endpoints are converted into domain records."""
    seen: list[httpx.Request] = []
    client = make_client(make_transport(seen=seen))

    dataset = await client.fetch_all()

    assert dataset.classes == (
        ClassRecord(id="7-DIS", grade=7, name="DISCIPLINE", is_active=True),
        ClassRecord(id="8-RES", grade=8, name="RESPECT", is_active=False),
    )
    essay, quiz = dataset.assignments
    assert essay.kind is AssignmentKind.TASK
    assert essay.class_ids == ("7-DIS", "8-RES")
    assert quiz.kind is AssignmentKind.EXAM
    assert quiz.class_ids == ()
    assert dataset.week == WeekMarker(week_number=3, year=2024)

    assert sorted(r.url.path for r in seen) == sorted(BODIES)
    assert all(r.headers["cache-control"] == "no-cache" for r in seen)


@pytest.mark.asyncio
async def test_requests_run_concurrently() -> None:
    """Three 100ms responses take about 100ms in total, not 300ms."""
    delay = delayed(0.1)
    client = make_client(make_transport({path: delay for path in BODIES}))

    start = time.monotonic()
    await client.fetch_all()
    total_time = time.monotonic() - start

    assert total_time < 0.25, f"Expected parallel requests (~0.1s), but took {total_time:.2f}s"


@pytest.mark.asyncio
async def test_bad_status_fails_whole_fetch() -> None:
    """A 500 from one endpoint fails the fetch with status and endpoint."""
    client = make_client(make_transport({"/api/home/assignments": respond(500, b"oops")}))

    with pytest.raises(BadStatusError) as exc_info:
        await client.fetch_all()

    assert exc_info.value.status_code == 500
    assert exc_info.value.endpoint == "assignments"
    assert exc_info.value.reason is SourceErrorReason.BAD_STATUS


@pytest.mark.asyncio
async def test_first_failure_cancels_slow_requests() -> None:
    """A fast failure does not wait for the other requests to finish."""
    client = make_client(
        make_transport({
            "/api/classes": respond(503),
            "/api/home/assignments": delayed(5),
        }),
        request_timeout=10,
        fetch_timeout=10,
    )

    start = time.monotonic()
    with pytest.raises(BadStatusError):
        await client.fetch_all()

    assert time.monotonic() - start < 1


@pytest.mark.asyncio
async def test_empty_body_is_malformed() -> None:
    """A 200 with no body is rejected."""
    client = make_client(make_transport({"/api/utils/week-info": respond(200)}))

    with pytest.raises(MalformedBodyError) as exc_info:
        await client.fetch_all()

    assert exc_info.value.endpoint == "week_info"
    assert exc_info.value.reason is SourceErrorReason.MALFORMED_BODY


@pytest.mark.asyncio
async def test_invalid_json_is_malformed_and_chained() -> None:
    """Parse errors are wrapped, with the original error as the cause."""
    client = make_client(make_transport({"/api/classes": respond(200, b"<html>not json</html>")}))

    with pytest.raises(MalformedBodyError) as exc_info:
        await client.fetch_all()

    assert isinstance(exc_info.value.__cause__, ValidationError)


@pytest.mark.parametrize(
    "path, body",
    [
        ("/api/classes", b'{"classes": [{"id": "10-DIS", "grade": 10, "name": "DISCIPLINE"}]}'),
        ("/api/classes", b'{"classes": [{"grade": 7, "name": "DISCIPLINE"}]}'),
        ("/api/home/assignments", b'{"assignments": [{"id": "x", "title": "t", "subject": "s", '
                                  b'"type": "PROJECT", "weekNumber": 1, "year": 2024}]}'),
        ("/api/utils/week-info", b'{"weekInfo": {"weekNumber": 0, "year": 2024}}'),
        ("/api/utils/week-info", b'{"week": {"weekNumber": 3, "year": 2024}}'),
    ],
)
@pytest.mark.asyncio
async def test_off_schema_body_is_malformed(path: str, body: bytes) -> None:
    """Missing fields and out-of-range values are rejected at the boundary."""
    client = make_client(make_transport({path: respond(200, body)}))

    with pytest.raises(MalformedBodyError):
        await client.fetch_all()


@pytest.mark.asyncio
async def test_connection_error_is_network_error() -> None:
    """Transport failures become NetworkError."""
    async def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(make_transport({"/api/classes": refuse}))

    with pytest.raises(NetworkError) as exc_info:
        await client.fetch_all()

    assert exc_info.value.endpoint == "classes"
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_simultaneous_failures_are_all_retrieved(caplog: pytest.LogCaptureFixture) -> None:
    """When every request fails, asyncio has no unretrieved task exceptions to report."""
    async def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(make_transport({path: refuse for path in BODIES}))

    with caplog.at_level(logging.ERROR, logger="asyncio"):
        with pytest.raises(NetworkError) as exc_info:
            await client.fetch_all()
        assert exc_info.value.endpoint == "classes"
        del exc_info
        gc.collect()

    unretrieved = [r for r in caplog.records if r.name == "asyncio" and r.levelno >= logging.ERROR]
    assert unretrieved == []


@pytest.mark.asyncio
async def test_slow_endpoint_hits_request_timeout() -> None:
    """A single slow request fails with a timeout scoped to that endpoint."""
    client = make_client(
        make_transport({"/api/utils/week-info": delayed(1)}),
        request_timeout=0.05,
        fetch_timeout=5,
    )

    with pytest.raises(SourceTimeoutError) as exc_info:
        await client.fetch_all()

    assert exc_info.value.endpoint == "week_info"
    assert exc_info.value.timeout == 0.05


@pytest.mark.asyncio
async def test_aggregate_timeout_wins_over_request_timeouts() -> None:
    """When the whole fetch is too slow, the aggregate timeout fires."""
    delay = delayed(1)
    client = make_client(
        make_transport({path: delay for path in BODIES}),
        request_timeout=5,
        fetch_timeout=0.05,
    )

    start = time.monotonic()
    with pytest.raises(SourceTimeoutError) as exc_info:
        await client.fetch_all()

    assert exc_info.value.endpoint == "all"
    assert exc_info.value.reason is SourceErrorReason.TIMEOUT
    assert time.monotonic() - start < 0.5


@pytest.mark.asyncio
async def test_fetch_from_mock_service() -> None:
    """The mock FastAPI service satisfies the client's schema."""
    client = SchoolDataClient(
        base_url="http://testserver",
        transport=httpx.ASGITransport(app=mock_app),
    )

    dataset = await client.fetch_all()
    statuses = {s.class_record.id: s for s in aggregate(dataset.classes, dataset.assignments, dataset.week)}

    assert len(dataset.classes) == 18
    assert dataset.week == WeekMarker(week_number=3, year=2024)
    assert (statuses["7-DIS"].tasks, statuses["7-DIS"].exams) == (2, 1)
    assert (statuses["8-CRE"].tasks, statuses["8-CRE"].exams) == (0, 5)
    assert (statuses["9-RESI"].tasks, statuses["9-RESI"].exams) == (0, 0)
