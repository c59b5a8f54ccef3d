"""
Refresh orchestration for the weekly assignment load monitor.

A load cycle fetches live data through :class:`SchoolDataClient`, falls back
to the offline dataset on any failure, aggregates statuses and publishes a
new :class:`StatusSnapshot`. Only one cycle runs at a time; refresh requests
made while a cycle is in flight join that cycle instead of starting another.
"""
from __future__ import annotations

import asyncio
import logging
import time
import typing as t
from dataclasses import dataclass
from datetime import date
from enum import Enum

from load_monitor import config
from load_monitor.aggregation import aggregate
from load_monitor.client import SchoolDataClient
from load_monitor.errors import SourceError, SourceTimeoutError
from load_monitor.fallback import produce_fallback_dataset
from load_monitor.models import Dataset, DataSource, StatusSnapshot

logger = logging.getLogger(__name__)


class LoadState(Enum):
    """Lifecycle of the published data."""
    IDLE = "IDLE"
    LOADING = "LOADING"
    READY = "READY"
    DEGRADED = "DEGRADED"
    REFRESHING = "REFRESHING"


@dataclass(frozen=True)
class Notification:
    """A short message for the user, e.g. after a manual refresh."""
    level: t.Literal["success", "error", "info"]
    title: str
    description: str = ""


REFRESH_SUCCEEDED = Notification(
    "success", "Data refreshed", "Class and assignment information was reloaded"
)
REFRESH_FAILED = Notification(
    "error", "Could not refresh data", "Showing offline data until the service is reachable"
)
ASSIGNMENT_ADDED = Notification("success", "Task/exam added")


def log_notification(notification: Notification) -> None:
    """Default notifier: write the notification to the log."""
    level = logging.WARNING if notification.level == "error" else logging.INFO
    logger.log(level, "%s. %s", notification.title, notification.description)


class RefreshOrchestrator:
    """Runs load cycles and holds the current snapshot.

    Args:
        client: Source of live data. Defaults to a SchoolDataClient on the
            configured URL.
        notify: Called with a Notification after manual refreshes and new
            assignments.
        backstop_timeout: Seconds after which a cycle gives up on the client
            and publishes fallback data.
        settle_delay: Seconds to wait after a new assignment before refreshing.
        today: Returns the date used for the fallback week.
        wait: Races the fetch against the backstop; same contract as
            ``asyncio.wait``. Tests pass a stand-in to fire the backstop
            without waiting for it.
    """

    def __init__(
        self,
        client: t.Optional[SchoolDataClient] = None,
        notify: t.Callable[[Notification], None] = log_notification,
        backstop_timeout: t.Optional[float] = None,
        settle_delay: t.Optional[float] = None,
        today: t.Callable[[], date] = date.today,
        wait: t.Callable[..., t.Awaitable[tuple[set, set]]] = asyncio.wait,
    ) -> None:
        self.client = client or SchoolDataClient()
        self.notify = notify
        self.backstop_timeout = backstop_timeout if backstop_timeout is not None else config.BACKSTOP_TIMEOUT
        self.settle_delay = settle_delay if settle_delay is not None else config.SETTLE_DELAY
        self.today = today
        self.wait = wait

        self.state = LoadState.IDLE
        self.snapshot: t.Optional[StatusSnapshot] = None

        self._cycle = 0
        self._refresh_task: t.Optional[asyncio.Task] = None
        self._abandoned: set[asyncio.Task] = set()
        self._listeners: list[t.Callable[[StatusSnapshot], None]] = []

    @property
    def refreshing(self) -> bool:
        return self._refresh_task is not None

    def subscribe(self, listener: t.Callable[[StatusSnapshot], None]) -> None:
        """Call ``listener`` with every newly published snapshot."""
        self._listeners.append(listener)

    async def load(self) -> StatusSnapshot:
        """Initial load. Always ends READY or DEGRADED, never raises a SourceError."""
        if self.state is not LoadState.IDLE:
            raise RuntimeError(f"Initial load already done (state {self.state.value})")
        self.state = LoadState.LOADING
        return await self._run_cycle()

    async def refresh(self, announce: bool = True) -> t.Optional[DataSource]:
        """User-triggered reload.

        If a refresh is already running, waits for it and returns its result
        rather than starting a second cycle.

        Args:
            announce: Send REFRESH_SUCCEEDED / REFRESH_FAILED when done.

        Returns:
            The source of the published snapshot, or None if no initial load
            has completed yet.
        """
        if self._refresh_task is not None:
            logger.info("Refresh already in progress, joining it")
            return await asyncio.shield(self._refresh_task)

        if self.state not in (LoadState.READY, LoadState.DEGRADED):
            logger.warning("Refresh ignored while %s", self.state.value)
            return None

        self._refresh_task = asyncio.create_task(self._refresh(announce))
        return await asyncio.shield(self._refresh_task)

    async def on_assignment_created(self) -> t.Optional[DataSource]:
        """Hook for the assignment form: settle briefly, then reload once."""
        self.notify(ASSIGNMENT_ADDED)
        await asyncio.sleep(self.settle_delay)
        if self._refresh_task is not None:
            # That cycle may have started before the assignment was stored
            await asyncio.shield(self._refresh_task)
        return await self.refresh(announce=False)

    async def aclose(self) -> None:
        """Cancel fetches abandoned by earlier backstop timeouts."""
        for task in list(self._abandoned):
            task.cancel()
        if self._abandoned:
            await asyncio.gather(*self._abandoned, return_exceptions=True)

    async def _refresh(self, announce: bool) -> DataSource:
        previous = self.state
        self.state = LoadState.REFRESHING
        try:
            snapshot = await self._run_cycle()
        except BaseException:
            self.state = previous
            raise
        finally:
            self._refresh_task = None

        if announce:
            self.notify(REFRESH_SUCCEEDED if snapshot.is_live else REFRESH_FAILED)
        return snapshot.source

    async def _run_cycle(self) -> StatusSnapshot:
        """Fetch or fall back, aggregate, publish."""
        self._cycle += 1
        cycle_id = self._cycle
        started = time.monotonic()

        fetch = asyncio.create_task(self.client.fetch_all())
        try:
            done, _ = await self.wait({fetch}, timeout=self.backstop_timeout)
        except asyncio.CancelledError:
            fetch.cancel()
            raise

        try:
            if fetch not in done:
                self._abandon(fetch, cycle_id)
                raise SourceTimeoutError(
                    f"Load cycle exceeded backstop of {self.backstop_timeout} seconds",
                    endpoint="all",
                    timeout=self.backstop_timeout,
                )
            dataset = fetch.result()
            source = DataSource.LIVE
        except SourceError as e:
            logger.warning(
                "School data unavailable, using offline data: %s", e,
                extra={
                    "event": "source_fallback",
                    "cycle": cycle_id,
                    "elapsed": round(time.monotonic() - started, 3),
                    **e.log_context(),
                },
            )
            dataset = produce_fallback_dataset(self.today())
            source = DataSource.FALLBACK

        snapshot = self._build_snapshot(dataset, source)
        self._publish(cycle_id, snapshot)
        return snapshot

    def _build_snapshot(self, dataset: Dataset, source: DataSource) -> StatusSnapshot:
        statuses = aggregate(dataset.classes, dataset.assignments, dataset.week)
        return StatusSnapshot(
            classes=dataset.classes,
            assignments=dataset.assignments,
            week=dataset.week,
            statuses=tuple(statuses),
            source=source,
        )

    def _publish(self, cycle_id: int, snapshot: StatusSnapshot) -> bool:
        """Swap in ``snapshot`` unless a newer cycle has started since."""
        # Cycles are serialized today, so this only guards against a future
        # caller publishing out of turn
        if cycle_id != self._cycle:
            logger.info("Discarding result of superseded cycle %d", cycle_id,
                        extra={"event": "stale_cycle", "cycle": cycle_id})
            return False

        self.snapshot = snapshot
        self.state = LoadState.READY if snapshot.is_live else LoadState.DEGRADED
        logger.info(
            "Published %s snapshot: %d classes, week %d/%d",
            snapshot.source.value,
            len(snapshot.statuses),
            snapshot.week.week_number,
            snapshot.week.year,
        )
        for listener in self._listeners:
            listener(snapshot)
        return True

    def _abandon(self, fetch: asyncio.Task, cycle_id: int) -> None:
        """Let a timed-out fetch finish on its own and ignore whatever it returns."""
        self._abandoned.add(fetch)

        def _discard(task: asyncio.Task) -> None:
            self._abandoned.discard(task)
            if task.cancelled():
                return
            outcome = "error" if task.exception() is not None else "result"
            logger.info(
                "Discarding late %s of cycle %d", outcome, cycle_id,
                extra={"event": "late_result_discarded", "cycle": cycle_id},
            )

        fetch.add_done_callback(_discard)
