"""Tests for topic and subtopic aggregation."""

from collections import defaultdict
from datetime import date, datetime, timezone

import pytest

from cc_reports import (
    ClassificationAggregator,
    DateRange,
    PolarsRecordStore,
    merge_classifier_rows,
)
from cc_reports.constants import Channel, QueueDomain
from cc_reports.models import ClassifierRow
from cc_reports.queues import normalize

from conftest import RecordingStore, make_request

MARCH_1 = DateRange(start=date(2024, 3, 1), end=date(2024, 3, 1))
MARCH_1_2 = DateRange(start=date(2024, 3, 1), end=date(2024, 3, 2))


def queues(selector: str, channel: Channel = Channel.COMBINED):
    return normalize(selector, QueueDomain.CLASSIFICATION, channel)


@pytest.fixture
def aggregator(store) -> ClassificationAggregator:
    return ClassificationAggregator(store)


class TestFull:
    """Tests for the (date, topic, subtopic) breakdown."""

    def test_call_channel(self, aggregator) -> None:
        rows = aggregator.full(MARCH_1, queues("all", Channel.CALL))

        assert [(row.report_date, row.topic, row.subtopic, row.total) for row in rows] == [
            ("2024-03-01", "Billing", "", 1),
            ("2024-03-01", "Billing", "Refund", 1),
            ("2024-03-01", "Delivery", "", 1),
        ]

    def test_report_date_uses_reporting_timezone(self, aggregator) -> None:
        rows = aggregator.full(
            DateRange(start=date(2024, 2, 29), end=date(2024, 2, 29)), queues("all", Channel.CALL)
        )

        assert rows == []

    def test_other_timezone_moves_the_date(self, store) -> None:
        rows = ClassificationAggregator(store, reporting_timezone="UTC").full(
            DateRange(start=date(2024, 2, 29), end=date(2024, 2, 29)), queues("all", Channel.CALL)
        )

        assert [(row.report_date, row.topic) for row in rows] == [("2024-02-29", "Delivery")]

    def test_chat_channel(self, aggregator) -> None:
        rows = aggregator.full(MARCH_1, queues("m10", Channel.CHAT))

        assert [(row.topic, row.subtopic, row.total) for row in rows] == [("Billing", "Refund", 1)]

    def test_chat_aml_is_empty_without_querying(self) -> None:
        store = RecordingStore()

        rows = ClassificationAggregator(store).full(MARCH_1, queues("aml", Channel.CHAT))

        assert rows == []
        assert store.queries == []

    def test_non_incoming_requests_ignored(self, aggregator) -> None:
        rows = aggregator.full(MARCH_1_2, queues("all"))

        assert "Ignored" not in {row.topic for row in rows}

    def test_whitespace_trimmed(self, aggregator) -> None:
        [row] = aggregator.full(MARCH_1, queues("aml", Channel.CALL))

        assert (row.topic, row.subtopic) == ("Complaint", "Service / Delay")

    def test_sorted_by_key(self, aggregator) -> None:
        rows = aggregator.full(MARCH_1_2, queues("all"))

        assert [row.key for row in rows] == sorted(row.key for row in rows)


class TestTopics:
    """Tests for the (date, topic) breakdown with ratios."""

    def test_ratios_sum_to_100_per_date(self, aggregator) -> None:
        rows = aggregator.topics(MARCH_1_2, queues("all"))

        ratios: dict[str, float] = defaultdict(float)
        for row in rows:
            ratios[row.report_date] += row.ratio
        for total in ratios.values():
            assert total == pytest.approx(100.0, abs=1e-6)

    def test_counts_and_order(self, aggregator) -> None:
        rows = aggregator.topics(MARCH_1, queues("all"))

        assert [(row.topic, row.total, row.ratio) for row in rows] == [
            ("Billing", 3, pytest.approx(60.0)),
            ("Complaint", 1, pytest.approx(20.0)),
            ("Delivery", 1, pytest.approx(20.0)),
        ]
        assert sum(row.total for row in rows) == 5

    def test_sorted_by_date_then_total_descending(self, aggregator) -> None:
        rows = aggregator.topics(MARCH_1_2, queues("all"))

        assert [row.report_date for row in rows] == sorted(row.report_date for row in rows)
        assert rows[-1].report_date == "2024-03-02"


class TestAvailableTopics:
    """Tests for the distinct topic list."""

    def test_all_dates(self, aggregator) -> None:
        assert aggregator.available_topics(queues("all")) == ["Billing", "Complaint", "Delivery"]

    def test_queue_scoped(self, aggregator) -> None:
        assert aggregator.available_topics(queues("aml")) == ["Complaint"]


class TestSubtopics:
    """Tests for one topic's subtopics."""

    def test_filtered_to_topic(self, aggregator) -> None:
        rows = aggregator.subtopics(MARCH_1, queues("all"), "Billing")

        assert [(row.subtopic, row.total) for row in rows] == [("", 1), ("Refund", 2)]

    def test_topic_match_is_case_sensitive(self, aggregator) -> None:
        assert aggregator.subtopics(MARCH_1, queues("all"), "billing") == []


class TestMerge:
    """Tests for merging call and chat rows."""

    def test_same_key_is_summed(self) -> None:
        merged = merge_classifier_rows(
            [ClassifierRow(report_date="2024-01-01", topic="Billing", subtopic="", total=3)],
            [ClassifierRow(report_date="2024-01-01", topic="Billing", subtopic="", total=2)],
        )

        assert merged == [
            ClassifierRow(report_date="2024-01-01", topic="Billing", subtopic="", total=5)
        ]

    def test_union_of_keys(self) -> None:
        merged = merge_classifier_rows(
            [ClassifierRow(report_date="2024-01-02", topic="A", subtopic="", total=1)],
            [ClassifierRow(report_date="2024-01-01", topic="B", subtopic="x", total=4)],
        )

        assert [(row.topic, row.total) for row in merged] == [("B", 4), ("A", 1)]

    def test_empty_sides(self) -> None:
        assert merge_classifier_rows([], []) == []


class TestDeepPaths:
    """Tests for paths with several subtopic levels."""

    def test_subtopic_keeps_remaining_levels(self) -> None:
        store = PolarsRecordStore.from_records(
            requests=[
                make_request(
                    created=datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc),
                    paths=["Root/Billing/Refund/Card", "Root/Billing/Refund/Card"],
                )
            ]
        )

        [row] = ClassificationAggregator(store).full(MARCH_1, queues("m10", Channel.CALL))

        assert (row.topic, row.subtopic, row.total) == ("Billing", "Refund/Card", 2)
