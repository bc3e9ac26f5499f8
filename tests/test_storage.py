"""Tests for saving report results."""

import json

import polars as pl
import pytest

from cc_reports import InvalidRequestError, ReportResult, ReportStorage
from cc_reports.constants import ReportKind


@pytest.fixture
def storage() -> ReportStorage:
    return ReportStorage()


class TestReportStorage:
    """Tests for ReportStorage."""

    def test_save_json(self, storage, service, tmp_path) -> None:
        result = service.daily("2024-03-01", "2024-03-01", "m10")
        path = tmp_path / "daily.json"

        storage.save_json(result=result, filepath=path)

        saved = json.loads(path.read_text())
        assert saved == result.to_dict()
        assert saved["data"][0]["avg_call_duration"] == "00:02:00"

    def test_save_csv_hourly_columns(self, storage, service, tmp_path) -> None:
        result = service.hourly("2024-03-01", "2024-03-02", "total", "m10")
        path = tmp_path / "hourly.csv"

        storage.save_csv(result=result, filepath=path)

        df = pl.read_csv(path)
        assert df.columns == ["date", *[f"hour_{hour}" for hour in range(24)]]
        assert df["hour_5"].to_list() == [0, 4]

    def test_save_csv_available_topics(self, storage, service, tmp_path) -> None:
        path = tmp_path / "topics.csv"

        storage.save_csv(result=service.available_topics(), filepath=path)

        assert pl.read_csv(path)["topic"].to_list() == ["Billing", "Complaint", "Delivery"]

    def test_save_csv_empty_result_writes_nothing(self, storage, tmp_path) -> None:
        path = tmp_path / "empty.csv"

        storage.save_csv(result=ReportResult(kind=ReportKind.DAILY), filepath=path)

        assert not path.exists()

    def test_save_by_suffix(self, storage, service, tmp_path) -> None:
        result = service.queue_stats("2024-03-01", "2024-03-01")

        storage.save(result=result, filepath=tmp_path / "stats.json")
        storage.save(result=result, filepath=tmp_path / "stats.csv")

        assert json.loads((tmp_path / "stats.json").read_text())["type"] == "queue_stats"
        assert pl.read_csv(tmp_path / "stats.csv")["queue_name"].to_list() == [
            "m10",
            "m10-shikayet",
        ]

    def test_unsupported_suffix(self, storage, tmp_path) -> None:
        with pytest.raises(InvalidRequestError):
            storage.save(result=ReportResult(kind=ReportKind.DAILY), filepath=tmp_path / "x.txt")
