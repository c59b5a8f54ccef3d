"""Tests for the load-monitor command line."""
import logging

import httpx
import pytest
from click.testing import CliRunner

from load_monitor import cli
from load_monitor.client import SchoolDataClient
from services.school_data_service.mock_app import app as mock_app


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def live_service(monkeypatch: pytest.MonkeyPatch) -> None:
    """Point the CLI at the mock FastAPI service."""
    def client_factory(base_url=None) -> SchoolDataClient:
        return SchoolDataClient(base_url="http://testserver", transport=httpx.ASGITransport(app=mock_app))
    monkeypatch.setattr(cli, "SchoolDataClient", client_factory)


@pytest.fixture
def broken_service(monkeypatch: pytest.MonkeyPatch) -> None:
    """Point the CLI at a service that always answers 500."""
    def client_factory(base_url=None) -> SchoolDataClient:
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        return SchoolDataClient(base_url="http://school.test", transport=transport)
    monkeypatch.setattr(cli, "SchoolDataClient", client_factory)


def test_status_prints_tables_per_grade(live_service: None) -> None:
    """Every grade gets its own table plus an overall panel."""
    result = CliRunner().invoke(cli.main, ["status"])

    assert result.exit_code == 0, result.output
    for grade in (7, 8, 9):
        assert f"Grade {grade}" in result.output
    assert "7-DIS" in result.output
    assert "Overall load" in result.output
    assert "offline data" not in result.output


def test_status_json(live_service: None) -> None:
    """--json prints the snapshot with camelCase keys."""
    result = CliRunner().invoke(cli.main, ["status", "--json"])

    assert result.exit_code == 0, result.output
    assert '"source": "live"' in result.output
    assert '"classId": "8-CRE"' in result.output
    assert '"weekNumber": 3' in result.output


def test_status_with_broken_service_still_succeeds(broken_service: None) -> None:
    """Degraded data is shown with a notice, not an error exit."""
    result = CliRunner().invoke(cli.main, ["status"])

    assert result.exit_code == 0, result.output
    assert "offline data" in result.output
    assert "9-RESI" in result.output


def test_watch_reports_refresh(live_service: None) -> None:
    """watch loads, refreshes the requested number of times and reports it."""
    result = CliRunner().invoke(cli.main, ["watch", "--interval", "0", "--count", "1"])

    assert result.exit_code == 0, result.output
    assert "Data refreshed" in result.output
    assert result.output.count("Overall load") == 2


def test_snapshot_to_dict_includes_category() -> None:
    """Each status carries its rounded percentage and category."""
    from load_monitor.models import ClassRecord, ClassStatus, DataSource, StatusSnapshot, WeekMarker

    record = ClassRecord(id="7-DIS", grade=7, name="DISCIPLINE")
    snapshot = StatusSnapshot(
        classes=(record,),
        assignments=(),
        week=WeekMarker(week_number=3, year=2024),
        statuses=(ClassStatus(record, tasks=1, exams=1),),
        source=DataSource.FALLBACK,
    )

    data = cli.snapshot_to_dict(snapshot)

    assert data["source"] == "fallback"
    assert data["statuses"][0]["percentage"] == 28.6
    assert data["statuses"][0]["category"] == "low"
    assert data["overall"] == {"percentage": 28.6, "category": "low"}
