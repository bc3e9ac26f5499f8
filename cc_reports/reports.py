"""Report facade: one entry point per report shape."""

from datetime import date, datetime

from loguru import logger

from .cancellation import CancelToken
from .classification.aggregator import ClassificationAggregator, merge_classifier_rows
from .config import ReportingSettings, get_settings
from .constants import (
    DATE_FORMAT,
    OVERALL_CHANNEL,
    Channel,
    Granularity,
    HourlyMetric,
    LogMessage,
    QueueDomain,
    QueueSelector,
    ReportKind,
)
from .errors import InvalidRequestError, StoreUnavailableError
from .kpi import KpiAggregator
from .models import ClassifierSummary, DateRange, ReportResult
from .queues import QueueFilter, normalize
from .store.base import RecordStore

# The overall view is the merge of the call and chat channels.
CLASSIFIER_KINDS: dict[str, ReportKind] = {
    Channel.CALL: ReportKind.CALL_CLASSIFIERS,
    Channel.CHAT: ReportKind.CHAT_CLASSIFIERS,
    OVERALL_CHANNEL: ReportKind.OVERALL_CLASSIFIERS,
}


def parse_date(value: date | str) -> date:
    """Parse a ``YYYY-MM-DD`` string, passing dates through."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError) as e:
        raise InvalidRequestError(f"Invalid date: {value!r}") from e


def date_range(start: date | str, end: date | str) -> DateRange:
    """Build an inclusive date range; the bounds are not checked against each other."""
    return DateRange(start=parse_date(start), end=parse_date(end))


class ReportService:
    """Builds every report against one record store.

    The service keeps no state between calls, so it can be shared by
    concurrent callers. Every report accepts either a ``timeout`` in seconds
    or a caller-owned :class:`CancelToken`.
    """

    def __init__(
        self,
        store: RecordStore | None,
        *,
        settings: ReportingSettings | None = None,
    ):
        """Initialize the service.

        Args:
            store: Live record store.
            settings: Reporting settings. Defaults to the environment settings.

        Raises:
            StoreUnavailableError: ``store`` is None.
        """
        if store is None:
            raise StoreUnavailableError()

        self.store = store
        self.settings = settings or get_settings()
        self.queue_table = self.settings.queue_table()
        self.kpi = KpiAggregator(
            store, service_level_threshold=self.settings.service_level_threshold
        )
        self.classification = ClassificationAggregator(
            store, reporting_timezone=self.settings.reporting_timezone
        )

    def _queues(
        self, selector: str, domain: QueueDomain, channel: Channel | None = None
    ) -> QueueFilter:
        return normalize(selector, domain, channel, table=self.queue_table)

    @staticmethod
    def _token(timeout: float | None, token: CancelToken | None) -> CancelToken | None:
        if token is None and timeout is not None:
            return CancelToken(timeout=timeout)
        return token

    def _kpi_report(
        self,
        granularity: Granularity,
        start: date | str,
        end: date | str,
        queue: str,
        metric: str | None,
        timeout: float | None,
        token: CancelToken | None,
    ) -> ReportResult:
        dates = date_range(start, end)
        logger.info(LogMessage.REPORT_REQUESTED.format(granularity, dates.start, dates.end, queue))

        rows = self.kpi.aggregate(
            dates,
            self._queues(queue, QueueDomain.KPI),
            granularity,
            metric,
            token=self._token(timeout, token),
        )
        result = ReportResult(
            kind=ReportKind(granularity.value),
            rows=list(rows),
            metric=metric if granularity == Granularity.HOURLY else None,
        )
        logger.info(LogMessage.REPORT_READY.format(result.kind, len(result.rows)))
        return result

    def daily(
        self,
        start: date | str,
        end: date | str,
        queue: str = QueueSelector.ALL,
        *,
        timeout: float | None = None,
        token: CancelToken | None = None,
    ) -> ReportResult:
        """Daily KPI rows for ``start``..``end`` inclusive."""
        return self._kpi_report(Granularity.DAILY, start, end, queue, None, timeout, token)

    def monthly(
        self,
        start: date | str,
        end: date | str,
        queue: str = QueueSelector.ALL,
        *,
        timeout: float | None = None,
        token: CancelToken | None = None,
    ) -> ReportResult:
        """KPI rows per day-of-month for ``start``..``end`` inclusive."""
        return self._kpi_report(Granularity.MONTHLY, start, end, queue, None, timeout, token)

    def hourly(
        self,
        start: date | str,
        end: date | str,
        metric: HourlyMetric | str,
        queue: str = QueueSelector.ALL,
        *,
        timeout: float | None = None,
        token: CancelToken | None = None,
    ) -> ReportResult:
        """One KPI per date and hour.

        Raises:
            UnsupportedMetricError: ``metric`` is not an hourly metric.
        """
        return self._kpi_report(
            Granularity.HOURLY, start, end, queue, str(metric), timeout, token
        )

    def classifiers(
        self,
        start: date | str,
        end: date | str,
        queue: str = QueueSelector.ALL,
        channel: str = OVERALL_CHANNEL,
        *,
        timeout: float | None = None,
        token: CancelToken | None = None,
    ) -> ReportResult:
        """Classification counts per (date, topic, subtopic) for one channel.

        Args:
            start: First report date.
            end: Last report date.
            queue: Queue selector.
            channel: ``call``, ``chat`` or ``overall`` (both merged).
            timeout: Seconds before the report is abandoned.
            token: Caller-owned cancellation token.

        Returns:
            ReportResult: Rows plus a summary. AML chat requests are empty.
        """
        kind = CLASSIFIER_KINDS.get(channel)
        if kind is None:
            raise InvalidRequestError(f"Unsupported channel: {channel}")

        dates = date_range(start, end)
        token = self._token(timeout, token)
        logger.info(LogMessage.REPORT_REQUESTED.format(kind, dates.start, dates.end, queue))

        def channel_rows(source: Channel):
            return self.classification.full(
                dates,
                self._queues(queue, QueueDomain.CLASSIFICATION, source),
                step=f"classifiers.{source}",
                token=token,
            )

        if kind == ReportKind.OVERALL_CLASSIFIERS:
            rows = merge_classifier_rows(channel_rows(Channel.CALL), channel_rows(Channel.CHAT))
        else:
            rows = channel_rows(Channel(channel))

        logger.info(LogMessage.REPORT_READY.format(kind, len(rows)))
        return ReportResult(kind=kind, rows=rows, summary=ClassifierSummary.from_rows(rows))

    def topics(
        self,
        start: date | str,
        end: date | str,
        queue: str = QueueSelector.ALL,
        *,
        timeout: float | None = None,
        token: CancelToken | None = None,
    ) -> ReportResult:
        """Topic counts and daily shares across both channels."""
        dates = date_range(start, end)
        logger.info(
            LogMessage.REPORT_REQUESTED.format(ReportKind.TOPICS, dates.start, dates.end, queue)
        )
        rows = self.classification.topics(
            dates,
            self._queues(queue, QueueDomain.CLASSIFICATION, Channel.COMBINED),
            token=self._token(timeout, token),
        )
        logger.info(LogMessage.REPORT_READY.format(ReportKind.TOPICS, len(rows)))
        return ReportResult(
            kind=ReportKind.TOPICS, rows=rows, summary=ClassifierSummary.from_rows(rows)
        )

    def available_topics(
        self,
        queue: str = QueueSelector.ALL,
        *,
        timeout: float | None = None,
        token: CancelToken | None = None,
    ) -> ReportResult:
        """Every topic seen on the selected queues, regardless of date."""
        topics = self.classification.available_topics(
            self._queues(queue, QueueDomain.CLASSIFICATION, Channel.COMBINED),
            token=self._token(timeout, token),
        )
        logger.info(LogMessage.REPORT_READY.format(ReportKind.AVAILABLE_TOPICS, len(topics)))
        return ReportResult(kind=ReportKind.AVAILABLE_TOPICS, rows=topics)

    def subtopics(
        self,
        start: date | str,
        end: date | str,
        topic: str,
        queue: str = QueueSelector.ALL,
        *,
        timeout: float | None = None,
        token: CancelToken | None = None,
    ) -> ReportResult:
        """Subtopic counts per date for one topic across both channels."""
        dates = date_range(start, end)
        logger.info(
            LogMessage.REPORT_REQUESTED.format(
                ReportKind.SUBTOPICS_DAILY, dates.start, dates.end, queue
            )
        )
        rows = self.classification.subtopics(
            dates,
            self._queues(queue, QueueDomain.CLASSIFICATION, Channel.COMBINED),
            topic,
            token=self._token(timeout, token),
        )
        logger.info(LogMessage.REPORT_READY.format(ReportKind.SUBTOPICS_DAILY, len(rows)))
        return ReportResult(
            kind=ReportKind.SUBTOPICS_DAILY,
            rows=rows,
            summary=ClassifierSummary.from_rows(rows),
        )

    def queue_stats(
        self,
        start: date | str,
        end: date | str,
        *,
        timeout: float | None = None,
        token: CancelToken | None = None,
    ) -> ReportResult:
        """Call counts per raw queue and the AML daily breakdown."""
        dates = date_range(start, end)
        logger.info(
            LogMessage.REPORT_REQUESTED.format(
                ReportKind.QUEUE_STATS, dates.start, dates.end, QueueSelector.ALL
            )
        )
        stats = self.kpi.queue_stats(
            dates,
            self._queues(QueueSelector.AML, QueueDomain.KPI),
            token=self._token(timeout, token),
        )
        logger.info(LogMessage.REPORT_READY.format(ReportKind.QUEUE_STATS, len(stats.queues)))
        return ReportResult(kind=ReportKind.QUEUE_STATS, rows=stats.queues, stats=stats)
