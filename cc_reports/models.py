"""Data models for contact-centre reporting.

Event models (pydantic) describe the raw records held by the record store.
Result rows (dataclasses) are the fixed, documented shapes each report mode
returns; they are serialized only at the boundary through ``to_dict``.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    HOURS_PER_DAY,
    ReportKind,
    ResultKey,
    RowKey,
    SummaryKey,
)
from .formatters import hour_columns


class CallEvent(BaseModel):
    """A single telephony queue event (one row of call_report).

    Attributes:
        queue_name: Raw queue identifier.
        type: ``in`` for answered calls, ``abandon`` for abandoned ones.
        enter_queue_date: Local time the caller entered the queue.
        answer_date: Local time an agent answered, if answered.
        call_duration: Handling duration in seconds.
        queue_wait_time: Seconds spent waiting in the queue.
        user_id: Agent who took the call.
    """

    model_config = ConfigDict(frozen=True)

    queue_name: str
    type: str
    enter_queue_date: datetime
    answer_date: datetime | None = None
    call_duration: int | None = None
    queue_wait_time: int | None = None
    user_id: str | None = None


class ChatEvent(BaseModel):
    """A single chat session (one row of chat_report)."""

    model_config = ConfigDict(frozen=True)

    type: str
    created_date: datetime
    assign_date: datetime | None = None
    chat_frt: int | None = None
    resolution_time_total: int | None = None
    user_id: str | None = None
    agent_frt: int | None = None


class Classifier(BaseModel):
    """One classification attached to a request."""

    model_config = ConfigDict(frozen=True)

    path: str


class ClassificationRecord(BaseModel):
    """A request document carrying zero or more classification paths.

    ``created_date`` is stored in UTC; naive values are taken to be UTC.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str
    queue_name: str = Field(alias="queueName")
    created_date: datetime = Field(alias="createdDate")
    classifiers: list[Classifier] = Field(default_factory=list)

    @field_validator("created_date")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar dates.

    Attributes:
        start: First calendar date.
        end: Last calendar date.
    """

    start: date
    end: date

    @property
    def lower(self) -> datetime:
        """Start floored to 00:00:00."""
        return datetime(self.start.year, self.start.month, self.start.day)

    @property
    def upper(self) -> datetime:
        """End ceiled to 23:59:59."""
        return datetime(self.end.year, self.end.month, self.end.day, 23, 59, 59)

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


@dataclass
class DailyRow:
    """KPIs for one calendar date."""

    date: str
    total_calls: int = 0
    avg_call_duration: str | None = None
    sl: float | None = None
    total_abandoned: int = 0
    total_chats: int = 0
    avg_chat_frt: str | None = None
    resolution_time_avg: str | None = None
    distinct_agents: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class MonthlyRow:
    """KPIs for one day-of-month.

    Days with the same number in different months share a row.
    """

    day: int
    total_calls: int = 0
    avg_call_duration: str | None = None
    sl: float | None = None
    total_abandoned: int = 0
    total_chats: int = 0
    avg_chat_frt: str | None = None
    resolution_time_avg: str | None = None
    distinct_agents: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class HourlyRow:
    """One metric for one date, split into 24 hourly values.

    Attributes:
        date: Calendar date (YYYY-MM-DD).
        values: Value for hour 0 through hour 23.
    """

    date: str
    values: list[int | float] = field(default_factory=lambda: [0] * HOURS_PER_DAY)

    def to_dict(self) -> dict[str, Any]:
        return {RowKey.DATE: self.date, **hour_columns(self.values)}


@dataclass
class ClassifierRow:
    """Count of classifications for one (date, topic, subtopic)."""

    report_date: str
    topic: str
    subtopic: str
    total: int

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.report_date, self.topic, self.subtopic)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TopicRow:
    """Count of classifications for one (date, topic) and its share of the day."""

    report_date: str
    topic: str
    total: int
    ratio: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class QueueCount:
    """Number of call events seen on one raw queue."""

    queue_name: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AmlDailyRow:
    """Per-day breakdown of complaint-queue calls."""

    date: str
    total_calls: int
    incoming_calls: int
    abandoned_calls: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class QueueStats:
    """Queue diagnostics for a date range."""

    queues: list[QueueCount]
    aml_data: list[AmlDailyRow]

    def to_dict(self) -> dict[str, Any]:
        return {
            ResultKey.QUEUES: [queue.to_dict() for queue in self.queues],
            ResultKey.AML_DATA: [row.to_dict() for row in self.aml_data],
        }


@dataclass
class ClassifierSummary:
    """Headline figures for a classifier report."""

    total_entries: int
    unique_topics: int
    first_date: str | None
    last_date: str | None

    @classmethod
    def from_rows(cls, rows: list[ClassifierRow] | list[TopicRow]) -> "ClassifierSummary":
        dates = sorted(row.report_date for row in rows)
        return cls(
            total_entries=sum(row.total for row in rows),
            unique_topics=len({row.topic for row in rows}),
            first_date=dates[0] if dates else None,
            last_date=dates[-1] if dates else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            SummaryKey.TOTAL_ENTRIES: self.total_entries,
            SummaryKey.UNIQUE_TOPICS: self.unique_topics,
            SummaryKey.FIRST_DATE: self.first_date,
            SummaryKey.LAST_DATE: self.last_date,
        }


@dataclass
class ReportResult:
    """Uniform envelope returned by every report.

    Attributes:
        kind: Which report produced the rows.
        rows: Result rows (or plain topic names for available topics).
        metric: Hourly metric name, for hourly reports.
        summary: Headline figures, for classifier reports.
        stats: Queue diagnostics, for the queue stats report.
    """

    kind: ReportKind
    rows: list[Any] = field(default_factory=list)
    metric: str | None = None
    summary: ClassifierSummary | None = None
    stats: QueueStats | None = None

    def records(self) -> list[dict[str, Any]]:
        """Rows as plain dictionaries, ready for tabular output."""
        if self.stats is not None:
            return [queue.to_dict() for queue in self.stats.queues]
        return [
            row.to_dict() if hasattr(row, "to_dict") else {RowKey.TOPIC: row}
            for row in self.rows
        ]

    def to_dict(self) -> dict[str, Any]:
        """Convert the result to a dictionary for serialization.

        Returns:
            dict[str, Any]: ``{"type", "data"}`` plus ``metric`` or ``summary``
            where the report has one.
        """
        if self.stats is not None:
            return {ResultKey.TYPE: self.kind, **self.stats.to_dict()}

        data: list[Any] = [
            row.to_dict() if hasattr(row, "to_dict") else row for row in self.rows
        ]
        base: dict[str, Any] = {ResultKey.TYPE: self.kind, ResultKey.DATA: data}
        if self.metric is not None:
            base[ResultKey.METRIC] = self.metric
        if self.summary is not None:
            base[ResultKey.SUMMARY] = self.summary.to_dict()
        return base


class DateValueRow(BaseModel):
    """Store row: one value keyed by calendar date."""

    date: str
    value: float | None = None


class DayValueRow(BaseModel):
    """Store row: one value keyed by day-of-month."""

    day: int = Field(ge=1, le=31)
    value: float | None = None


class DateBucketsRow(BaseModel):
    """Store row: 24 hourly values keyed by calendar date."""

    date: str
    buckets: list[float | None] = Field(
        min_length=HOURS_PER_DAY, max_length=HOURS_PER_DAY
    )


class ClassifierStoreRow(BaseModel):
    """Store row of a (date, topic, subtopic) classification count."""

    report_date: str
    topic: str
    subtopic: str
    total: int = Field(ge=0)


class TopicStoreRow(BaseModel):
    """Store row of a (date, topic) count with its share of the day."""

    report_date: str
    topic: str
    total: int = Field(ge=0)
    ratio: float


class TopicNameRow(BaseModel):
    """Store row of a single topic name."""

    topic: str


class QueueCountRow(BaseModel):
    """Store row of a queue name and its event count."""

    queue_name: str
    count: int = Field(ge=0)


class AmlStoreRow(BaseModel):
    """Store row of the complaint-queue daily breakdown."""

    date: str
    total_calls: int = Field(ge=0)
    incoming_calls: int = Field(ge=0)
    abandoned_calls: int = Field(ge=0)
