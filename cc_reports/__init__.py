"""Contact-centre KPI and classification reporting package."""

from .cancellation import CancelToken
from .classification import ClassificationAggregator, merge_classifier_rows, parse_path
from .config import QueueTable, ReportingSettings
from .errors import (
    AggregationCancelledError,
    InvalidRequestError,
    QueryFailedError,
    ReportingError,
    StoreUnavailableError,
    UnsupportedMetricError,
)
from .kpi import KpiAggregator
from .models import CallEvent, ChatEvent, ClassificationRecord, DateRange, ReportResult
from .queues import QueueFilter, normalize
from .reports import ReportService
from .storage import ReportStorage
from .store import PolarsRecordStore, RecordStore

__all__ = [
    "AggregationCancelledError",
    "CallEvent",
    "CancelToken",
    "ChatEvent",
    "ClassificationAggregator",
    "ClassificationRecord",
    "DateRange",
    "InvalidRequestError",
    "KpiAggregator",
    "PolarsRecordStore",
    "QueryFailedError",
    "QueueFilter",
    "QueueTable",
    "RecordStore",
    "ReportResult",
    "ReportService",
    "ReportStorage",
    "ReportingError",
    "ReportingSettings",
    "StoreUnavailableError",
    "UnsupportedMetricError",
    "merge_classifier_rows",
    "normalize",
    "parse_path",
]
