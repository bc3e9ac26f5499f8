"""KPI aggregation over call and chat events.

Each KPI is described once in a metric catalog: which collections it reads,
which timestamp column dates it, which events qualify and how they are
accumulated. The aggregator turns a catalog entry into a pipeline for the
requested granularity and aligns the resulting series by date.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from .cancellation import CancelToken
from .constants import (
    DEFAULT_SERVICE_LEVEL_THRESHOLD,
    HOURS_PER_DAY,
    PERCENT_DIGITS,
    PERCENT_SCALE,
    CallField,
    ChatField,
    Collection,
    EventType,
    Granularity,
    HourlyMetric,
    PeriodMetric,
    RowKey,
    ValueKind,
)
from .errors import InvalidRequestError, UnsupportedMetricError
from .formatters import format_duration, round_half_up
from .models import (
    AmlDailyRow,
    AmlStoreRow,
    DailyRow,
    DateBucketsRow,
    DateRange,
    DateValueRow,
    DayValueRow,
    HourlyRow,
    MonthlyRow,
    QueueCount,
    QueueCountRow,
    QueueStats,
)
from .pipeline import (
    Accumulator,
    AtMost,
    Between,
    Count,
    CountDistinct,
    CountWhere,
    DayOfMonth,
    Equals,
    Expr,
    GreaterThan,
    HourOf,
    IsIn,
    Mean,
    Pipeline,
    Predicate,
    Ratio,
    ReportDate,
    SortKey,
)
from .queues import QueueFilter
from .store.base import RecordStore, decode_rows, run_query

# Both collections name their event type column "type".
TYPE_FIELD = CallField.TYPE


@dataclass(frozen=True)
class MetricSource:
    """Where a KPI's events come from.

    Attributes:
        collection: Collection to read.
        timestamp: Column whose local calendar date (and hour) keys the event.
        event_types: Event types that qualify. Empty means any type.
        queue_scoped: Restrict to the request's queue filter.
        predicates: Extra conditions on qualifying events.
    """

    collection: Collection
    timestamp: str
    event_types: tuple[str, ...] = ()
    queue_scoped: bool = False
    predicates: tuple[Predicate, ...] = ()


@dataclass(frozen=True)
class KpiMetric:
    """One KPI: its sources, how events are accumulated and how values read.

    A metric with several sources accumulates over the union of their events.
    """

    name: str
    sources: tuple[MetricSource, ...]
    accumulator: Accumulator
    kind: ValueKind


def _calls(timestamp: str, *event_types: EventType) -> MetricSource:
    return MetricSource(
        collection=Collection.CALL_REPORT,
        timestamp=timestamp,
        event_types=tuple(event_type.value for event_type in event_types),
        queue_scoped=True,
    )


def _chats(timestamp: str) -> MetricSource:
    return MetricSource(
        collection=Collection.CHAT_REPORT,
        timestamp=timestamp,
        event_types=(EventType.IN.value,),
    )


def _service_level(threshold: int) -> Ratio:
    return Ratio(
        numerator=CountWhere(AtMost(CallField.QUEUE_WAIT_TIME, threshold)),
        denominator=Count(),
        scale=PERCENT_SCALE,
    )


# Agents answering calls and agents who responded to a chat, deduplicated.
AGENT_SOURCES = (
    _calls(CallField.ANSWER_DATE, EventType.IN),
    MetricSource(
        collection=Collection.CHAT_REPORT,
        timestamp=ChatField.ASSIGN_DATE,
        predicates=(GreaterThan(ChatField.AGENT_FRT, 0),),
    ),
)


def period_metrics(
    service_level_threshold: int = DEFAULT_SERVICE_LEVEL_THRESHOLD,
) -> dict[PeriodMetric, KpiMetric]:
    """Catalog of the daily and monthly KPIs."""
    entries = [
        KpiMetric(
            PeriodMetric.TOTAL_CALLS,
            (_calls(CallField.ENTER_QUEUE_DATE, EventType.IN, EventType.ABANDON),),
            Count(),
            ValueKind.COUNT,
        ),
        KpiMetric(
            PeriodMetric.AVG_CALL_DURATION,
            (_calls(CallField.ENTER_QUEUE_DATE, EventType.IN),),
            Mean(CallField.CALL_DURATION),
            ValueKind.DURATION,
        ),
        KpiMetric(
            PeriodMetric.SL,
            (_calls(CallField.ENTER_QUEUE_DATE, EventType.IN),),
            _service_level(service_level_threshold),
            ValueKind.PERCENT,
        ),
        KpiMetric(
            PeriodMetric.TOTAL_ABANDONED,
            (_calls(CallField.ENTER_QUEUE_DATE, EventType.ABANDON),),
            Count(),
            ValueKind.COUNT,
        ),
        KpiMetric(
            PeriodMetric.TOTAL_CHATS,
            (_chats(ChatField.ASSIGN_DATE),),
            Count(),
            ValueKind.COUNT,
        ),
        KpiMetric(
            PeriodMetric.AVG_CHAT_FRT,
            (_chats(ChatField.ASSIGN_DATE),),
            Mean(ChatField.CHAT_FRT),
            ValueKind.DURATION,
        ),
        KpiMetric(
            PeriodMetric.RESOLUTION_TIME_AVG,
            (_chats(ChatField.ASSIGN_DATE),),
            Mean(ChatField.RESOLUTION_TIME_TOTAL),
            ValueKind.DURATION,
        ),
        KpiMetric(
            PeriodMetric.DISTINCT_AGENTS,
            AGENT_SOURCES,
            CountDistinct(CallField.USER_ID),
            ValueKind.COUNT,
        ),
    ]
    return {PeriodMetric(entry.name): entry for entry in entries}


def hourly_metrics(
    service_level_threshold: int = DEFAULT_SERVICE_LEVEL_THRESHOLD,
) -> dict[HourlyMetric, KpiMetric]:
    """Catalog of the hourly KPIs, except ``total`` which combines two of them."""
    entries = [
        KpiMetric(
            HourlyMetric.CALLS,
            (_calls(CallField.ENTER_QUEUE_DATE, EventType.IN),),
            Count(),
            ValueKind.COUNT,
        ),
        KpiMetric(
            HourlyMetric.AHT,
            (_calls(CallField.ANSWER_DATE, EventType.IN),),
            Mean(CallField.CALL_DURATION),
            ValueKind.DURATION,
        ),
        KpiMetric(
            HourlyMetric.SL,
            (_calls(CallField.ENTER_QUEUE_DATE, EventType.IN),),
            _service_level(service_level_threshold),
            ValueKind.PERCENT,
        ),
        KpiMetric(
            HourlyMetric.ABANDONED,
            (_calls(CallField.ENTER_QUEUE_DATE, EventType.ABANDON),),
            Count(),
            ValueKind.COUNT,
        ),
        KpiMetric(
            HourlyMetric.CHATS,
            (_chats(ChatField.CREATED_DATE),),
            Count(),
            ValueKind.COUNT,
        ),
        KpiMetric(
            HourlyMetric.FRT,
            (_chats(ChatField.ASSIGN_DATE),),
            Mean(ChatField.CHAT_FRT),
            ValueKind.DURATION,
        ),
        KpiMetric(
            HourlyMetric.RT,
            (_chats(ChatField.ASSIGN_DATE),),
            Mean(ChatField.RESOLUTION_TIME_TOTAL),
            ValueKind.DURATION,
        ),
        KpiMetric(
            HourlyMetric.AGENTS,
            AGENT_SOURCES,
            CountDistinct(CallField.USER_ID),
            ValueKind.COUNT,
        ),
    ]
    return {HourlyMetric(entry.name): entry for entry in entries}


def period_value(kind: ValueKind, value: float | None) -> Any:
    """Turn a raw daily/monthly aggregate into its report value."""
    match kind:
        case ValueKind.COUNT:
            return int(value or 0)
        case ValueKind.DURATION:
            return format_duration(value)
        case ValueKind.PERCENT:
            return None if value is None else round_half_up(value, PERCENT_DIGITS)


def hourly_value(kind: ValueKind, value: float | None) -> int | float:
    """Turn a raw hourly aggregate into its report value; empty hours are 0."""
    match kind:
        case ValueKind.COUNT:
            return int(value or 0)
        case ValueKind.DURATION:
            return int(round_half_up(value or 0))
        case ValueKind.PERCENT:
            return round_half_up(value or 0, PERCENT_DIGITS)


def _parse_enum(enum_type: type, value: Any) -> Any:
    try:
        return enum_type(value)
    except ValueError:
        raise UnsupportedMetricError(str(value)) from None


class KpiAggregator:
    """Computes call and chat KPIs per date, day-of-month or hour.

    Dates come from the local wall-clock timestamps stored with each event.
    Each metric is dated by its own timestamp column, so one calendar date
    can have calls from one metric and none from another.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        service_level_threshold: int = DEFAULT_SERVICE_LEVEL_THRESHOLD,
    ):
        """Initialize the aggregator.

        Args:
            store: Record store holding call_report and chat_report.
            service_level_threshold: Queue wait (seconds) at or under which an
                answered call meets the service level.
        """
        self.store = store
        self.period_metrics = period_metrics(service_level_threshold)
        self.hourly_metrics = hourly_metrics(service_level_threshold)

    def _source_pipeline(
        self,
        source: MetricSource,
        date_range: DateRange,
        queue_filter: QueueFilter,
        keys: Callable[[str], dict[str, Expr]],
    ) -> Pipeline:
        predicates: list[Predicate] = [
            Between(source.timestamp, date_range.lower, date_range.upper)
        ]
        if source.event_types:
            predicates.append(IsIn(TYPE_FIELD, source.event_types))
        if source.queue_scoped:
            predicates.append(IsIn(CallField.QUEUE_NAME, queue_filter.queues))
        predicates.extend(source.predicates)

        return Pipeline().match(*predicates).project(
            keep_existing=True, **keys(source.timestamp)
        )

    def _events(
        self,
        metric: KpiMetric,
        date_range: DateRange,
        queue_filter: QueueFilter,
        keys: Callable[[str], dict[str, Expr]],
    ) -> tuple[Collection, Pipeline]:
        """Qualifying events of every source, keyed, in one pipeline."""
        first, *others = metric.sources
        pipeline = self._source_pipeline(first, date_range, queue_filter, keys)
        for source in others:
            pipeline = pipeline.union_with(
                source.collection,
                self._source_pipeline(source, date_range, queue_filter, keys),
            )
        return first.collection, pipeline

    def _daily_series(
        self,
        metric: KpiMetric,
        date_range: DateRange,
        queue_filter: QueueFilter,
        token: CancelToken | None,
    ) -> dict[str, float | None]:
        step = f"{Granularity.DAILY}.{metric.name}"
        collection, pipeline = self._events(
            metric,
            date_range,
            queue_filter,
            lambda ts: {RowKey.DATE: ReportDate(ts)},
        )
        pipeline = pipeline.group((RowKey.DATE,), value=metric.accumulator).sort(RowKey.DATE)
        rows = run_query(self.store, collection, pipeline, step=step, token=token)
        return {row.date: row.value for row in decode_rows(rows, DateValueRow, step=step)}

    def _monthly_series(
        self,
        metric: KpiMetric,
        date_range: DateRange,
        queue_filter: QueueFilter,
        token: CancelToken | None,
    ) -> dict[int, float | None]:
        step = f"{Granularity.MONTHLY}.{metric.name}"
        collection, pipeline = self._events(
            metric,
            date_range,
            queue_filter,
            lambda ts: {RowKey.DAY: DayOfMonth(ts)},
        )
        pipeline = pipeline.group((RowKey.DAY,), value=metric.accumulator).sort(RowKey.DAY)
        rows = run_query(self.store, collection, pipeline, step=step, token=token)
        return {row.day: row.value for row in decode_rows(rows, DayValueRow, step=step)}

    def _hourly_series(
        self,
        metric: KpiMetric,
        date_range: DateRange,
        queue_filter: QueueFilter,
        token: CancelToken | None,
    ) -> dict[str, list[int | float]]:
        step = f"{Granularity.HOURLY}.{metric.name}"
        collection, pipeline = self._events(
            metric,
            date_range,
            queue_filter,
            lambda ts: {RowKey.DATE: ReportDate(ts), RowKey.HOUR: HourOf(ts)},
        )
        pipeline = pipeline.bucket(
            (RowKey.DATE,),
            bucket=RowKey.HOUR,
            count=HOURS_PER_DAY,
            accumulator=metric.accumulator,
            output=RowKey.BUCKETS,
        ).sort(RowKey.DATE)
        rows = run_query(self.store, collection, pipeline, step=step, token=token)
        return {
            row.date: [hourly_value(metric.kind, value) for value in row.buckets]
            for row in decode_rows(rows, DateBucketsRow, step=step)
        }

    def _select(self, metrics: Iterable[PeriodMetric | str] | None) -> list[PeriodMetric]:
        if metrics is None:
            return list(self.period_metrics)
        return [_parse_enum(PeriodMetric, metric) for metric in metrics]

    def daily(
        self,
        date_range: DateRange,
        queue_filter: QueueFilter,
        *,
        metrics: Iterable[PeriodMetric | str] | None = None,
        token: CancelToken | None = None,
    ) -> list[DailyRow]:
        """Compute KPIs per calendar date.

        Rows cover every date on which any computed metric has events. A
        date without events for a metric gets 0 for counts and None for
        durations and the service level.

        Args:
            date_range: Inclusive date range.
            queue_filter: Queues the call metrics are restricted to.
            metrics: Columns to compute. Defaults to all of them; the others
                keep their empty values.
            token: Optional cancellation token.

        Returns:
            list[DailyRow]: Rows sorted by date.
        """
        selected = self._select(metrics)
        series = {
            name: self._daily_series(self.period_metrics[name], date_range, queue_filter, token)
            for name in selected
        }

        dates = sorted(set().union(*series.values()))
        return [
            DailyRow(
                date=date,
                **{
                    name.value: period_value(self.period_metrics[name].kind, series[name].get(date))
                    for name in selected
                },
            )
            for date in dates
        ]

    def monthly(
        self,
        date_range: DateRange,
        queue_filter: QueueFilter,
        *,
        metrics: Iterable[PeriodMetric | str] | None = None,
        token: CancelToken | None = None,
    ) -> list[MonthlyRow]:
        """Compute KPIs per day-of-month.

        Same-numbered days of different months share a bucket: counts add up
        and averages are taken over the pooled events.

        Returns:
            list[MonthlyRow]: Rows sorted by day.
        """
        selected = self._select(metrics)
        series = {
            name: self._monthly_series(self.period_metrics[name], date_range, queue_filter, token)
            for name in selected
        }

        days = sorted(set().union(*series.values()))
        return [
            MonthlyRow(
                day=day,
                **{
                    name.value: period_value(self.period_metrics[name].kind, series[name].get(day))
                    for name in selected
                },
            )
            for day in days
        ]

    def hourly(
        self,
        date_range: DateRange,
        queue_filter: QueueFilter,
        metric: HourlyMetric | str,
        *,
        token: CancelToken | None = None,
    ) -> list[HourlyRow]:
        """Compute one KPI per calendar date and hour of day.

        Args:
            date_range: Inclusive date range.
            queue_filter: Queues the call metrics are restricted to.
            metric: One of calls, aht, sl, abandoned, chats, frt, rt, agents
                or total (calls plus chats).
            token: Optional cancellation token.

        Returns:
            list[HourlyRow]: Rows sorted by date, 24 values each.

        Raises:
            UnsupportedMetricError: ``metric`` is not an hourly metric. No query
                is issued.
        """
        metric = _parse_enum(HourlyMetric, metric)

        if metric == HourlyMetric.TOTAL:
            calls = self._hourly_series(
                self.hourly_metrics[HourlyMetric.CALLS], date_range, queue_filter, token
            )
            chats = self._hourly_series(
                self.hourly_metrics[HourlyMetric.CHATS], date_range, queue_filter, token
            )
            empty = [0] * HOURS_PER_DAY
            return [
                HourlyRow(
                    date=date,
                    values=[
                        call + chat
                        for call, chat in zip(calls.get(date, empty), chats.get(date, empty))
                    ],
                )
                for date in sorted(calls.keys() | chats.keys())
            ]

        series = self._hourly_series(self.hourly_metrics[metric], date_range, queue_filter, token)
        return [HourlyRow(date=date, values=series[date]) for date in sorted(series)]

    def aggregate(
        self,
        date_range: DateRange,
        queue_filter: QueueFilter,
        granularity: Granularity | str,
        metric: str | None = None,
        *,
        token: CancelToken | None = None,
    ) -> list[DailyRow] | list[MonthlyRow] | list[HourlyRow]:
        """Compute KPIs at the requested granularity.

        Args:
            date_range: Inclusive date range.
            queue_filter: Queues the call metrics are restricted to.
            granularity: daily, monthly or hourly.
            metric: Required for hourly. For daily and monthly, limits the
                computation to that column.
            token: Optional cancellation token.

        Returns:
            Rows of the granularity's row type, ordered by date or day.
        """
        try:
            granularity = Granularity(granularity)
        except ValueError:
            raise InvalidRequestError(f"Unsupported granularity: {granularity}") from None

        if granularity == Granularity.HOURLY:
            if metric is None:
                raise InvalidRequestError("Hourly reports need a metric")
            return self.hourly(date_range, queue_filter, metric, token=token)

        metrics = None if metric is None else [metric]
        if granularity == Granularity.MONTHLY:
            return self.monthly(date_range, queue_filter, metrics=metrics, token=token)
        return self.daily(date_range, queue_filter, metrics=metrics, token=token)

    def queue_stats(
        self,
        date_range: DateRange,
        aml_filter: QueueFilter,
        *,
        token: CancelToken | None = None,
    ) -> QueueStats:
        """Call volume per raw queue, plus a daily breakdown of the complaint queue.

        Args:
            date_range: Inclusive range of queue-entry dates.
            aml_filter: Queues making up the complaint (AML) line.
            token: Optional cancellation token.

        Returns:
            QueueStats: Queues by descending call count and the AML days.
        """
        in_range = Between(CallField.ENTER_QUEUE_DATE, date_range.lower, date_range.upper)

        step = "queue_stats.queues"
        pipeline = (
            Pipeline()
            .match(in_range)
            .group((CallField.QUEUE_NAME,), count=Count())
            .sort(SortKey(RowKey.COUNT, descending=True), RowKey.QUEUE_NAME)
        )
        rows = run_query(self.store, Collection.CALL_REPORT, pipeline, step=step, token=token)
        queues = [
            QueueCount(queue_name=row.queue_name, count=row.count)
            for row in decode_rows(rows, QueueCountRow, step=step)
        ]

        step = "queue_stats.aml"
        pipeline = (
            Pipeline()
            .match(in_range, IsIn(CallField.QUEUE_NAME, aml_filter.queues))
            .project(keep_existing=True, date=ReportDate(CallField.ENTER_QUEUE_DATE))
            .group(
                (RowKey.DATE,),
                total_calls=Count(),
                incoming_calls=CountWhere(Equals(TYPE_FIELD, EventType.IN.value)),
                abandoned_calls=CountWhere(Equals(TYPE_FIELD, EventType.ABANDON.value)),
            )
            .sort(RowKey.DATE)
        )
        rows = run_query(self.store, Collection.CALL_REPORT, pipeline, step=step, token=token)
        aml_data = [
            AmlDailyRow(**row.model_dump()) for row in decode_rows(rows, AmlStoreRow, step=step)
        ]

        return QueueStats(queues=queues, aml_data=aml_data)
