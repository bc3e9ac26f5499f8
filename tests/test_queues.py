"""Unit tests for queue selector normalization and settings."""

import json

import pytest
from pydantic import ValidationError

from cc_reports.config import (
    DEFAULT_QUEUE_TABLE,
    QueueTable,
    ReportingSettings,
    load_queue_table,
)
from cc_reports.constants import CHAT_QUEUES, Channel, QueueDomain
from cc_reports.queues import QueueFilter, normalize


class TestKpiDomain:
    """Tests for the KPI queue literal set."""

    def test_all_matches_both_call_queues(self) -> None:
        queue_filter = normalize("all", QueueDomain.KPI)

        assert "m10" in queue_filter
        assert "m10-shikayet" in queue_filter
        assert len(queue_filter.queues) == 2

    def test_main_queue(self) -> None:
        assert normalize("m10", QueueDomain.KPI).queues == ("m10",)

    def test_aml_is_case_insensitive(self) -> None:
        assert normalize("AML", QueueDomain.KPI).queues == normalize("aml", QueueDomain.KPI).queues
        assert normalize("Aml", QueueDomain.KPI).queues == ("m10-shikayet",)

    def test_unknown_selector_passes_through(self) -> None:
        queue_filter = normalize("xyz", QueueDomain.KPI)

        assert queue_filter.queues == ("xyz",)
        assert queue_filter.selector == "xyz"

    def test_other_selectors_keep_their_case(self) -> None:
        assert normalize("ALL", QueueDomain.KPI).queues == ("ALL",)

    def test_domain_accepts_plain_strings(self) -> None:
        assert normalize("m10", "kpi") == normalize("m10", QueueDomain.KPI)


class TestClassificationDomain:
    """Tests for the per-channel classification literal sets."""

    @pytest.mark.parametrize("selector", ["all", "m10"])
    def test_call_channel_is_main_queue_only(self, selector: str) -> None:
        queue_filter = normalize(selector, QueueDomain.CLASSIFICATION, Channel.CALL)

        assert queue_filter.queues == ("m10",)

    def test_call_channel_aml(self) -> None:
        queue_filter = normalize("AML", QueueDomain.CLASSIFICATION, Channel.CALL)

        assert queue_filter.queues == ("m10-shikayet",)

    @pytest.mark.parametrize("selector", ["all", "m10"])
    def test_chat_channel_uses_chat_queues(self, selector: str) -> None:
        queue_filter = normalize(selector, QueueDomain.CLASSIFICATION, Channel.CHAT)

        assert queue_filter.queues == CHAT_QUEUES

    def test_chat_channel_aml_is_empty(self) -> None:
        queue_filter = normalize("aml", QueueDomain.CLASSIFICATION, Channel.CHAT)

        assert queue_filter.is_empty
        assert queue_filter.queues == ()

    def test_combined_is_union_of_channels(self) -> None:
        combined = normalize("m10", QueueDomain.CLASSIFICATION, Channel.COMBINED)

        assert set(combined.queues) == {"m10", *CHAT_QUEUES}

    def test_channel_defaults_to_combined(self) -> None:
        assert normalize("all", QueueDomain.CLASSIFICATION) == normalize(
            "all", QueueDomain.CLASSIFICATION, Channel.COMBINED
        )

    def test_unknown_selector_passes_through(self) -> None:
        queue_filter = normalize("telegram", QueueDomain.CLASSIFICATION, Channel.CHAT)

        assert queue_filter.queues == ("telegram",)


class TestQueueTable:
    """Tests for loading a replacement queue table."""

    def test_load_queue_table(self, tmp_path) -> None:
        path = tmp_path / "queues.json"
        path.write_text(
            json.dumps(
                {
                    "routes": {"kpi": {"all": ["q1", "q2"], "vip": ["q9"]}},
                    "case_insensitive": ["vip"],
                }
            )
        )

        table = load_queue_table(path)

        assert normalize("VIP", QueueDomain.KPI, table=table).queues == ("q9",)
        assert normalize("all", QueueDomain.KPI, table=table).queues == ("q1", "q2")
        # Scopes the file leaves out fall back to pass-through.
        assert normalize("all", QueueDomain.CLASSIFICATION, table=table).queues == ("all",)

    def test_invalid_table_rejected(self, tmp_path) -> None:
        path = tmp_path / "queues.json"
        path.write_text(json.dumps({"routes": {"kpi": {"all": "m10"}}}))

        with pytest.raises(ValidationError):
            load_queue_table(path)

    def test_default_table_is_frozen(self) -> None:
        with pytest.raises(ValidationError):
            DEFAULT_QUEUE_TABLE.routes = {}

    def test_queue_filter_membership(self) -> None:
        queue_filter = QueueFilter(selector="x", queues=("a", "b"))

        assert "a" in queue_filter
        assert "c" not in queue_filter
        assert not queue_filter.is_empty


class TestReportingSettings:
    """Tests for ReportingSettings."""

    def test_defaults(self) -> None:
        settings = ReportingSettings()

        assert settings.reporting_timezone == "Asia/Baku"
        assert settings.service_level_threshold == 20
        assert settings.queue_table() is DEFAULT_QUEUE_TABLE

    def test_read_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("CC_REPORTS_SERVICE_LEVEL_THRESHOLD", "30")
        monkeypatch.setenv("CC_REPORTS_REPORTING_TIMEZONE", "UTC")

        settings = ReportingSettings()

        assert settings.service_level_threshold == 30
        assert settings.reporting_timezone == "UTC"

    def test_unknown_timezone_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ReportingSettings(reporting_timezone="Mars/Olympus")

    def test_negative_threshold_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ReportingSettings(service_level_threshold=-1)

    def test_queue_table_path(self, tmp_path) -> None:
        path = tmp_path / "queues.json"
        path.write_text(json.dumps({"routes": {"kpi": {"all": ["only"]}}}))

        table = ReportingSettings(queue_table_path=path).queue_table()

        assert isinstance(table, QueueTable)
        assert table.lookup("kpi", "all") == ("only",)
