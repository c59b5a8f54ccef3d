"""
HTTP client for the school-data service.

Fetches classes, assignments and the current week concurrently, each under
its own timeout and all three under an aggregate timeout. Responses are
validated against the Pydantic wire models and converted into the frozen
dataclasses of :mod:`load_monitor.models`. Any failure is raised as a
:class:`~load_monitor.errors.SourceError`; this module never retries and
never falls back, that is the refresh orchestrator's job.
"""
from __future__ import annotations

import asyncio
import logging
import time
import typing as t

import httpx
from pydantic import BaseModel, ValidationError

from load_monitor import config
from load_monitor.errors import (
    BadStatusError,
    MalformedBodyError,
    NetworkError,
    SourceTimeoutError,
)
from load_monitor.models import (
    AssignmentKind,
    AssignmentRecord,
    ClassRecord,
    Dataset,
    WeekMarker,
)
from services.shared.models import (
    Assignment as PydanticAssignment,
    AssignmentsResponse,
    ClassesResponse,
    SchoolClass as PydanticSchoolClass,
    WeekInfoResponse,
)

logger = logging.getLogger(__name__)

# Endpoint name -> path on the school-data service
ENDPOINTS: dict[str, str] = {
    "classes": "/api/classes",
    "assignments": "/api/home/assignments",
    "week_info": "/api/utils/week-info",
}

NO_CACHE_HEADERS = {"Cache-Control": "no-cache"}

SchemaT = t.TypeVar("SchemaT", bound=BaseModel)


class SchoolDataClient:
    """Reads the three school-data endpoints in one concurrent fetch.

    Args:
        base_url: Root URL of the service. Defaults to ``SCHOOL_DATA_SERVICE_URL``.
        request_timeout: Seconds allowed for each individual request.
        fetch_timeout: Seconds allowed for all three requests together.
        transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in tests.
    """

    def __init__(
        self,
        base_url: t.Optional[str] = None,
        request_timeout: t.Optional[float] = None,
        fetch_timeout: t.Optional[float] = None,
        transport: t.Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url or config.SCHOOL_DATA_SERVICE_URL
        self.request_timeout = request_timeout if request_timeout is not None else config.REQUEST_TIMEOUT
        self.fetch_timeout = fetch_timeout if fetch_timeout is not None else config.FETCH_TIMEOUT
        self.transport = transport

    async def fetch_all(self) -> Dataset:
        """Fetch classes, assignments and week info.

        Returns:
            The validated dataset.

        Raises:
            SourceTimeoutError: A request or the whole fetch timed out.
            NetworkError: A request failed at the connection level.
            BadStatusError: An endpoint answered with a non-2xx status.
            MalformedBodyError: A body was empty, not JSON or off-schema.
        """
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.request_timeout,
            headers=NO_CACHE_HEADERS,
            transport=self.transport,
        ) as client:
            try:
                classes, assignments, week_info = await asyncio.wait_for(
                    self._fetch_concurrently(client), timeout=self.fetch_timeout
                )
            except asyncio.TimeoutError:
                raise SourceTimeoutError(
                    f"Fetching school data timed out after {self.fetch_timeout} seconds",
                    endpoint="all",
                    timeout=self.fetch_timeout,
                ) from None

        dataset = Dataset(
            classes=tuple(_to_class_record(item) for item in classes.classes),
            assignments=tuple(_to_assignment_record(item) for item in assignments.assignments),
            week=WeekMarker(
                week_number=week_info.week_info.week_number,
                year=week_info.week_info.year,
            ),
        )
        logger.info(
            "Fetched %d classes and %d assignments for week %d/%d",
            len(dataset.classes),
            len(dataset.assignments),
            dataset.week.week_number,
            dataset.week.year,
        )
        return dataset

    async def _fetch_concurrently(
        self, client: httpx.AsyncClient
    ) -> tuple[ClassesResponse, AssignmentsResponse, WeekInfoResponse]:
        """Run the three requests in parallel; the first failure wins."""
        tasks = [
            asyncio.create_task(self._get(client, "classes", ClassesResponse)),
            asyncio.create_task(self._get(client, "assignments", AssignmentsResponse)),
            asyncio.create_task(self._get(client, "week_info", WeekInfoResponse)),
        ]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            # Retrieve every finished task's exception, not just the one raised,
            # or asyncio reports the rest as never retrieved
            errors = [task.exception() for task in tasks if task.done()]
            # Endpoint order so simultaneous failures report deterministically
            for error in errors:
                if error is not None:
                    raise error
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        classes, assignments, week_info = (task.result() for task in tasks)
        return classes, assignments, week_info

    async def _get(
        self, client: httpx.AsyncClient, endpoint: str, schema: type[SchemaT]
    ) -> SchemaT:
        """GET one endpoint and validate its body against ``schema``."""
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                client.get(ENDPOINTS[endpoint]), timeout=self.request_timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise SourceTimeoutError(
                f"{endpoint} request timed out after {self.request_timeout} seconds",
                endpoint=endpoint,
                timeout=self.request_timeout,
            ) from e
        except httpx.DecodingError as e:
            raise MalformedBodyError(f"{endpoint} body could not be decoded: {e}", endpoint=endpoint) from e
        except httpx.RequestError as e:
            raise NetworkError(f"{endpoint} request failed: {e}", endpoint=endpoint) from e

        logger.debug(
            "%s responded %d in %.3fs",
            endpoint,
            response.status_code,
            time.monotonic() - started,
        )

        if not response.is_success:
            raise BadStatusError(endpoint, response.status_code)

        if not response.content.strip():
            raise MalformedBodyError(f"{endpoint} returned an empty response body", endpoint=endpoint)

        try:
            return schema.model_validate_json(response.content)
        except ValidationError as e:
            raise MalformedBodyError(
                f"Failed to parse {endpoint} response: {e}", endpoint=endpoint
            ) from e


def _to_class_record(item: PydanticSchoolClass) -> ClassRecord:
    """Convert a validated wire class into a ClassRecord."""
    return ClassRecord(
        id=item.id,
        grade=item.grade,
        name=item.name,
        is_active=item.is_active,
    )


def _to_assignment_record(item: PydanticAssignment) -> AssignmentRecord:
    """Convert a validated wire assignment into an AssignmentRecord."""
    return AssignmentRecord(
        id=item.id,
        title=item.title,
        subject=item.subject,
        kind=AssignmentKind(item.type),
        week_number=item.week_number,
        year=item.year,
        status=item.status,
        class_ids=tuple(link.class_id for link in item.class_assignments),
    )
