"""Topic and subtopic aggregation over classified requests."""

from collections import defaultdict
from collections.abc import Iterable

from loguru import logger

from ..cancellation import CancelToken
from ..constants import (
    DEFAULT_REPORTING_TIMEZONE,
    PERCENT_SCALE,
    Collection,
    EventType,
    LogMessage,
    RequestField,
    RowKey,
)
from ..models import (
    ClassifierRow,
    ClassifierStoreRow,
    DateRange,
    TopicNameRow,
    TopicRow,
    TopicStoreRow,
)
from ..pipeline import (
    Between,
    Count,
    Equals,
    Field,
    IsIn,
    PathSubtopic,
    PathTopic,
    Pipeline,
    ReportDate,
    ShareOfTotal,
    SortKey,
)
from ..queues import QueueFilter
from ..store.base import RecordStore, decode_rows, run_query


def merge_classifier_rows(
    call_rows: Iterable[ClassifierRow], chat_rows: Iterable[ClassifierRow]
) -> list[ClassifierRow]:
    """Merge call and chat classifier counts, summing totals per key.

    Args:
        call_rows: Rows from the call channel.
        chat_rows: Rows from the chat channel.

    Returns:
        list[ClassifierRow]: One row per (date, topic, subtopic), sorted by key.
    """
    totals: dict[tuple[str, str, str], int] = defaultdict(int)
    call_count = chat_count = 0
    for row in call_rows:
        totals[row.key] += row.total
        call_count += 1
    for row in chat_rows:
        totals[row.key] += row.total
        chat_count += 1

    merged = [
        ClassifierRow(report_date=date, topic=topic, subtopic=subtopic, total=total)
        for (date, topic, subtopic), total in sorted(totals.items())
    ]
    logger.debug(LogMessage.MERGED_CLASSIFIERS.format(call_count, chat_count, len(merged)))
    return merged


class ClassificationAggregator:
    """Builds topic and subtopic breakdowns from the request collection.

    Report dates are the calendar date of each request's creation time in the
    reporting timezone.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        reporting_timezone: str = DEFAULT_REPORTING_TIMEZONE,
    ):
        """Initialize the aggregator.

        Args:
            store: Record store holding the request collection.
            reporting_timezone: Zone report dates are taken in.
        """
        self.store = store
        self.reporting_timezone = reporting_timezone

    def _parsed(self, queue_filter: QueueFilter, date_range: DateRange | None) -> Pipeline:
        """Unwound, filtered classifications with their report date, topic and subtopic."""
        predicates = [
            Equals(RequestField.TYPE, EventType.IN.value),
            IsIn(RequestField.QUEUE_NAME, queue_filter.queues),
        ]
        if date_range is not None:
            predicates.append(
                Between(
                    RowKey.REPORT_DATE,
                    date_range.start.isoformat(),
                    date_range.end.isoformat(),
                )
            )

        return (
            Pipeline()
            .unwind(RequestField.CLASSIFIERS)
            .project(
                keep_existing=True,
                report_date=ReportDate(RequestField.CREATED_DATE, self.reporting_timezone),
            )
            .match(*predicates)
            .project(
                report_date=Field(RowKey.REPORT_DATE),
                topic=PathTopic(RequestField.CLASSIFIER_PATH),
                subtopic=PathSubtopic(RequestField.CLASSIFIER_PATH),
            )
        )

    def _breakdown(
        self, pipeline: Pipeline, *, step: str, token: CancelToken | None
    ) -> list[ClassifierRow]:
        pipeline = pipeline.group(
            (RowKey.REPORT_DATE, RowKey.TOPIC, RowKey.SUBTOPIC), total=Count()
        ).sort(RowKey.REPORT_DATE, RowKey.TOPIC, RowKey.SUBTOPIC)
        rows = run_query(self.store, Collection.REQUEST, pipeline, step=step, token=token)
        return [
            ClassifierRow(**row.model_dump())
            for row in decode_rows(rows, ClassifierStoreRow, step=step)
        ]

    def _is_empty(self, queue_filter: QueueFilter, step: str) -> bool:
        if queue_filter.is_empty:
            logger.warning(LogMessage.EMPTY_CHANNEL.format(step, queue_filter.selector))
            return True
        return False

    def full(
        self,
        date_range: DateRange,
        queue_filter: QueueFilter,
        *,
        step: str = "classifiers",
        token: CancelToken | None = None,
    ) -> list[ClassifierRow]:
        """Count classifications per (date, topic, subtopic).

        Args:
            date_range: Inclusive report date range.
            queue_filter: Queues to include. An empty filter yields no rows.
            step: Step name used in logs and errors.
            token: Optional cancellation token.

        Returns:
            list[ClassifierRow]: Rows sorted by date, topic and subtopic.
        """
        if self._is_empty(queue_filter, step):
            return []
        return self._breakdown(self._parsed(queue_filter, date_range), step=step, token=token)

    def subtopics(
        self,
        date_range: DateRange,
        queue_filter: QueueFilter,
        topic: str,
        *,
        token: CancelToken | None = None,
    ) -> list[ClassifierRow]:
        """Like :meth:`full`, restricted to one topic (exact, case-sensitive match)."""
        step = "subtopics"
        if self._is_empty(queue_filter, step):
            return []
        pipeline = self._parsed(queue_filter, date_range).match(Equals(RowKey.TOPIC, topic))
        return self._breakdown(pipeline, step=step, token=token)

    def topics(
        self,
        date_range: DateRange,
        queue_filter: QueueFilter,
        *,
        token: CancelToken | None = None,
    ) -> list[TopicRow]:
        """Count classifications per (date, topic) with each topic's share of the day.

        Returns:
            list[TopicRow]: Rows sorted by date, then total descending, then
            topic. The ratios of one date add up to 100.
        """
        step = "topics"
        if self._is_empty(queue_filter, step):
            return []

        pipeline = (
            self._parsed(queue_filter, date_range)
            .group((RowKey.REPORT_DATE, RowKey.TOPIC), total=Count())
            .project(
                keep_existing=True,
                ratio=ShareOfTotal(RowKey.TOTAL, (RowKey.REPORT_DATE,), PERCENT_SCALE),
            )
            .sort(
                RowKey.REPORT_DATE,
                SortKey(RowKey.TOTAL, descending=True),
                RowKey.TOPIC,
            )
        )
        rows = run_query(self.store, Collection.REQUEST, pipeline, step=step, token=token)
        return [
            TopicRow(**row.model_dump()) for row in decode_rows(rows, TopicStoreRow, step=step)
        ]

    def available_topics(
        self,
        queue_filter: QueueFilter,
        *,
        token: CancelToken | None = None,
    ) -> list[str]:
        """Distinct topics across all dates for the given queues, sorted."""
        step = "available_topics"
        if self._is_empty(queue_filter, step):
            return []

        pipeline = (
            self._parsed(queue_filter, None)
            .group((RowKey.TOPIC,), total=Count())
            .sort(RowKey.TOPIC)
        )
        rows = run_query(self.store, Collection.REQUEST, pipeline, step=step, token=token)
        return [row.topic for row in decode_rows(rows, TopicNameRow, step=step)]
