"""Tests for the command-line interface."""

import json

import polars as pl
import pytest
from typer.testing import CliRunner

from cc_reports.cli import app

runner = CliRunner()


@pytest.fixture
def data_files(tmp_path, calls, chats, requests) -> list[str]:
    calls_path = tmp_path / "calls.csv"
    chats_path = tmp_path / "chats.ndjson"
    requests_path = tmp_path / "requests.json"

    pl.DataFrame([call.model_dump() for call in calls]).write_csv(calls_path)
    pl.DataFrame([chat.model_dump() for chat in chats]).write_ndjson(chats_path)
    requests_path.write_text(
        json.dumps([request.model_dump(mode="json", by_alias=True) for request in requests])
    )

    return [
        "--calls",
        str(calls_path),
        "--chats",
        str(chats_path),
        "--requests",
        str(requests_path),
    ]


class TestCli:
    """Tests for the report commands."""

    def test_daily_saves_json(self, data_files, tmp_path) -> None:
        output = tmp_path / "daily.json"

        result = runner.invoke(
            app,
            [*data_files, "daily", "-s", "2024-03-01", "-e", "2024-03-01", "-q", "m10", "-o", str(output)],
        )

        assert result.exit_code == 0, result.output
        [row] = json.loads(output.read_text())["data"]
        assert row["total_calls"] == 12
        assert row["sl"] == 80.0
        assert row["total_abandoned"] == 2
        assert row["distinct_agents"] == 2

    def test_hourly_saves_csv(self, data_files, tmp_path) -> None:
        output = tmp_path / "hourly.csv"

        result = runner.invoke(
            app,
            [*data_files, "hourly", "-m", "agents", "-s", "2024-03-01", "-e", "2024-03-01", "-o", str(output)],
        )

        assert result.exit_code == 0, result.output
        assert pl.read_csv(output)["hour_9"].to_list() == [2]

    def test_topics_printed(self, data_files) -> None:
        result = runner.invoke(app, [*data_files, "topics", "-s", "2024-03-01", "-e", "2024-03-01"])

        assert result.exit_code == 0, result.output
        assert "Billing" in result.output

    def test_classifiers_chat_aml(self, data_files) -> None:
        result = runner.invoke(
            app,
            [*data_files, "classifiers", "-s", "2024-03-01", "-e", "2024-03-01", "-q", "aml", "-c", "chat"],
        )

        assert result.exit_code == 0, result.output
        assert "No chat_classifiers rows" in result.output

    def test_available_topics(self, data_files, tmp_path) -> None:
        output = tmp_path / "topics.json"

        result = runner.invoke(app, [*data_files, "available-topics", "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert json.loads(output.read_text())["data"] == ["Billing", "Complaint", "Delivery"]

    def test_subtopics(self, data_files) -> None:
        result = runner.invoke(
            app,
            [*data_files, "subtopics", "-t", "Billing", "-s", "2024-03-01", "-e", "2024-03-01"],
        )

        assert result.exit_code == 0, result.output
        assert "Refund" in result.output

    def test_queue_stats(self, data_files, tmp_path) -> None:
        output = tmp_path / "stats.json"

        result = runner.invoke(
            app, [*data_files, "queue-stats", "-s", "2024-03-01", "-e", "2024-03-02", "-o", str(output)]
        )

        assert result.exit_code == 0, result.output
        assert json.loads(output.read_text())["queues"][0]["count"] == 16

    def test_unsupported_metric_exits_with_error(self, data_files) -> None:
        result = runner.invoke(
            app, [*data_files, "hourly", "-m", "speed", "-s", "2024-03-01", "-e", "2024-03-01"]
        )

        assert result.exit_code == 1

    def test_bad_date_exits_with_error(self, data_files) -> None:
        result = runner.invoke(app, [*data_files, "monthly", "-s", "March", "-e", "2024-03-01"])

        assert result.exit_code == 1

    def test_reports_without_files_are_empty(self) -> None:
        result = runner.invoke(app, ["daily", "-s", "2024-03-01", "-e", "2024-03-01"])

        assert result.exit_code == 0, result.output
        assert "No daily rows" in result.output
