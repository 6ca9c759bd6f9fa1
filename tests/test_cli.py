from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import pytest
import typer
from typer.testing import CliRunner

from cli.app import app
from cli.client import ApiClient
from cli.config import CLIConfig, load_config


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.calls: List[tuple] = []
        self.latest: Optional[Dict[str, Any]] = {
            "value": 170.0,
            "reading_date": "2024-02-05T08:00:00Z",
            "created_at": "2024-02-05T08:00:01Z",
            "notes": None,
        }
        self.closed = False

    def record_reading(self, space_id, utility, value, room=None, notes=None, reading_date=None):
        self.calls.append(("record", space_id, utility, value, room, notes, reading_date))
        return {"value": value, "reading_date": reading_date or "2024-03-01T00:00:00Z"}

    def latest_reading(self, space_id, utility, room=None):
        self.calls.append(("latest", space_id, utility, room))
        return self.latest

    def reading_history(self, space_id, utility, room=None, price=None):
        self.calls.append(("history", space_id, utility, room, price))
        return {
            "utility": utility,
            "unit": "kWh",
            "unit_price": 2800,
            "readings": [
                {"value": 170, "reading_date": "2024-02-05", "consumption": 20, "cost": 56000,
                 "consumption_status": "defined", "notes": None},
                {"value": 100, "reading_date": "2024-01-01", "consumption": None, "cost": None,
                 "consumption_status": "not_applicable", "notes": "move-in"},
            ],
        }

    def monthly(self, space_id, utility, room=None, price=None, year=None, month=None):
        self.calls.append(("monthly", space_id, utility, room, price, year, month))
        return {
            "utility": utility,
            "unit": "kWh",
            "unit_price": 2800,
            "months": [
                {"month_name": "February 2024", "first_reading": {"value": 170},
                 "last_reading": {"value": 170}, "consumption": 0, "cost": 0},
            ],
        }

    def combined_monthly(self, space_id, room=None, year=None, month=None):
        self.calls.append(("utilities", space_id, room, year, month))
        return [
            {"month_name": "April 2024", "electricity_consumption": None, "electricity_cost": None,
             "water_consumption": 0, "water_cost": 0, "total_cost": 0},
        ]

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    client = StubClient(config=None)

    def factory(config):
        client.config = config
        return client

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return client


def test_record_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(
        app,
        ["-b", "http://meters:9000/", "record", "house-1", "water", "12.5", "--room", "101", "-n", "monthly check"],
    )

    assert result.exit_code == 0, result.output
    assert "Reading recorded: 12.5 m³" in result.stdout
    assert stub.calls == [("record", "house-1", "water", 12.5, "101", "monthly check", None)]
    assert stub.config.base_url == "http://meters:9000"
    assert stub.closed is True


def test_record_command_rejects_negative_value(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["record", "apt-1", "electricity", "--", "-5"])

    assert result.exit_code != 0
    assert stub.calls == []


def test_latest_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["latest", "apt-1", "electricity"])

    assert result.exit_code == 0, result.output
    assert "170.00 kWh" in result.stdout

    water = runner.invoke(app, ["latest", "apt-1", "water"])
    assert "170.00 m³" in water.stdout

    stub.latest = None
    empty = runner.invoke(app, ["latest", "apt-1", "electricity"])
    assert "No readings recorded yet." in empty.stdout


def test_history_command_shows_no_data_marker(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["history", "apt-1", "electricity", "--price", "3000"])

    assert result.exit_code == 0, result.output
    assert "consumption 20.00 kWh | cost 56,000.00" in result.stdout
    assert "consumption — | cost —" in result.stdout
    assert stub.calls == [("history", "apt-1", "electricity", None, 3000.0)]


def test_monthly_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["monthly", "apt-1", "electricity", "--year", "2024", "--month", "2"])

    assert result.exit_code == 0, result.output
    assert "February 2024" in result.stdout
    assert "consumption 0.00 kWh" in result.stdout
    assert stub.calls == [("monthly", "apt-1", "electricity", None, None, 2024, 2)]


def test_utilities_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["utilities", "house-1", "--room", "101"])

    assert result.exit_code == 0, result.output
    assert "electricity — (—)" in result.stdout
    assert "total 0.00" in result.stdout


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://example.test/")
    monkeypatch.setenv("CLI_TIMEOUT", "not-a-number")

    config = load_config()

    assert config == CLIConfig(base_url="http://example.test", timeout=30.0)


def test_api_client_reports_duplicate(capsys) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            409,
            json={
                "detail": "reading must exceed previous value",
                "reason": "duplicate",
                "latest_value": 120,
            },
        )

    client = ApiClient(CLIConfig(base_url="http://meters"))
    client._client = httpx.Client(base_url="http://meters", transport=httpx.MockTransport(handler))

    with pytest.raises(typer.Exit):
        client.record_reading("apt-1", "water", 120)

    err = capsys.readouterr().err
    assert "status 409" in err
    assert "latest value is 120" in err
    client.close()


def test_api_client_sends_room_and_price() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"months": []})

    client = ApiClient(CLIConfig(base_url="http://meters"))
    client._client = httpx.Client(base_url="http://meters", transport=httpx.MockTransport(handler))

    client.monthly("house-1", "water", room="101", price=2.5)

    assert seen[0].url.path == "/spaces/house-1/readings/water/monthly"
    assert dict(seen[0].url.params) == {"room": "101", "price": "2.5"}
    client.close()
