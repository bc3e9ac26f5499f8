"""Constants and enumerations for contact-centre reporting."""

from enum import StrEnum
from typing import Final


# Reporting defaults
DEFAULT_REPORTING_TIMEZONE: Final[str] = "Asia/Baku"
DEFAULT_SERVICE_LEVEL_THRESHOLD: Final[int] = 20
DEFAULT_LOG_LEVEL: Final[str] = "INFO"
HOURS_PER_DAY: Final[int] = 24
PERCENT_SCALE: Final[float] = 100.0
PERCENT_DIGITS: Final[int] = 2

# Date handling
DATE_FORMAT: Final[str] = "%Y-%m-%d"

# Classification paths
PATH_DELIMITER: Final[str] = "/"
TOPIC_INDEX: Final[int] = 1
SUBTOPIC_START: Final[int] = 2

# Queue literals used by the underlying stores
QUEUE_MAIN: Final[str] = "m10"
QUEUE_COMPLAINTS: Final[str] = "m10-shikayet"
CHAT_QUEUES: Final[tuple[str, ...]] = (
    "m10 Facebook",
    "WHATSAPP",
    "m10 Instagram",
    "telegram",
)

# Environment
ENV_PREFIX: Final[str] = "CC_REPORTS_"

# JSON Serialization
JSON_INDENT: Final[int] = 2

# Empty Values
EMPTY_STRING: Final[str] = ""

# Classifier channel merging the call and chat channels
OVERALL_CHANNEL: Final[str] = "overall"

# Numeric Constants
EXIT_CODE_ERROR: Final[int] = 1
QUERY_POLL_SECONDS: Final[float] = 0.01


class QueueSelector(StrEnum):
    """User-facing queue selectors with a dedicated mapping."""

    ALL = "all"
    MAIN = "m10"
    AML = "aml"


class QueueDomain(StrEnum):
    """Store domains with their own queue literal sets."""

    KPI = "kpi"
    CLASSIFICATION = "classification"


class Channel(StrEnum):
    """Classification channels."""

    CALL = "call"
    CHAT = "chat"
    COMBINED = "combined"


class Granularity(StrEnum):
    """KPI time bucket sizes."""

    DAILY = "daily"
    MONTHLY = "monthly"
    HOURLY = "hourly"


class HourlyMetric(StrEnum):
    """Metrics available in the hourly breakdown."""

    CALLS = "calls"
    AHT = "aht"
    SL = "sl"
    ABANDONED = "abandoned"
    CHATS = "chats"
    FRT = "frt"
    RT = "rt"
    AGENTS = "agents"
    TOTAL = "total"


class PeriodMetric(StrEnum):
    """Metrics of the daily and monthly reports, named by their output column."""

    TOTAL_CALLS = "total_calls"
    AVG_CALL_DURATION = "avg_call_duration"
    SL = "sl"
    TOTAL_ABANDONED = "total_abandoned"
    TOTAL_CHATS = "total_chats"
    AVG_CHAT_FRT = "avg_chat_frt"
    RESOLUTION_TIME_AVG = "resolution_time_avg"
    DISTINCT_AGENTS = "distinct_agents"


class ValueKind(StrEnum):
    """How a raw aggregate value is turned into a report value."""

    COUNT = "count"
    DURATION = "duration"
    PERCENT = "percent"


class Collection(StrEnum):
    """Record store collections."""

    CALL_REPORT = "call_report"
    CHAT_REPORT = "chat_report"
    REQUEST = "request"


class EventType(StrEnum):
    """Event type values shared by calls, chats and requests."""

    IN = "in"
    ABANDON = "abandon"


class CallField(StrEnum):
    """call_report field names."""

    QUEUE_NAME = "queue_name"
    TYPE = "type"
    ENTER_QUEUE_DATE = "enter_queue_date"
    ANSWER_DATE = "answer_date"
    CALL_DURATION = "call_duration"
    QUEUE_WAIT_TIME = "queue_wait_time"
    USER_ID = "user_id"


class ChatField(StrEnum):
    """chat_report field names."""

    TYPE = "type"
    CREATED_DATE = "created_date"
    ASSIGN_DATE = "assign_date"
    CHAT_FRT = "chat_frt"
    RESOLUTION_TIME_TOTAL = "resolution_time_total"
    USER_ID = "user_id"
    AGENT_FRT = "agent_frt"


class RequestField(StrEnum):
    """request (classification document) field names."""

    TYPE = "type"
    QUEUE_NAME = "queueName"
    CREATED_DATE = "createdDate"
    CLASSIFIERS = "classifiers"
    CLASSIFIER_PATH = "classifiers.path"


class RowKey(StrEnum):
    """Column names of rows coming back from the record store."""

    DATE = "date"
    REPORT_DATE = "report_date"
    DAY = "day"
    HOUR = "hour"
    VALUE = "value"
    BUCKETS = "buckets"
    TOPIC = "topic"
    SUBTOPIC = "subtopic"
    TOTAL = "total"
    RATIO = "ratio"
    QUEUE_NAME = "queue_name"
    COUNT = "count"
    TOTAL_CALLS = "total_calls"
    INCOMING_CALLS = "incoming_calls"
    ABANDONED_CALLS = "abandoned_calls"


class ReportKind(StrEnum):
    """Result type tags returned at the boundary."""

    DAILY = "daily"
    MONTHLY = "monthly"
    HOURLY = "hourly"
    CALL_CLASSIFIERS = "call_classifiers"
    CHAT_CLASSIFIERS = "chat_classifiers"
    OVERALL_CLASSIFIERS = "overall_classifiers"
    TOPICS = "topics"
    AVAILABLE_TOPICS = "available_topics"
    SUBTOPICS_DAILY = "subtopics_daily"
    QUEUE_STATS = "queue_stats"


class ResultKey(StrEnum):
    """Top-level keys of a serialized report."""

    TYPE = "type"
    DATA = "data"
    METRIC = "metric"
    SUMMARY = "summary"
    QUEUES = "queues"
    AML_DATA = "aml_data"


class SummaryKey(StrEnum):
    """Classifier summary field names."""

    TOTAL_ENTRIES = "total_entries"
    UNIQUE_TOPICS = "unique_topics"
    FIRST_DATE = "first_date"
    LAST_DATE = "last_date"


class LogMessage(StrEnum):
    """Log message templates."""

    REPORT_REQUESTED = "Building {} report for {}..{} (queue={})"
    REPORT_READY = "{} report ready: {} rows"
    RUNNING_STEP = "Running {} against {}"
    STEP_ROWS = "{} returned {} rows"
    SKIPPED_ROW = "Skipping undecodable row in {}: {}"
    SKIPPED_ROWS = "{}: skipped {} undecodable rows"
    EMPTY_CHANNEL = "No {} queues for selector '{}', returning an empty result"
    MERGED_CLASSIFIERS = "Merged {} call and {} chat rows into {} classifier rows"
    LOADED_COLLECTION = "Loaded {} rows into {} from {}"
    SAVED_REPORT = "Saved {} report to {}"
    ERROR_OCCURRED = "Error occurred: {}"


class CliHelp(StrEnum):
    """CLI help messages."""

    APP = "Contact-centre KPI and classification reports"
    CALLS = "Call report file (CSV, JSON, NDJSON or Parquet)."
    CHATS = "Chat report file (CSV, JSON, NDJSON or Parquet)."
    REQUESTS = "Classification request documents (JSON, NDJSON or Parquet)."
    VERBOSE = "Log every store query at DEBUG level."
    START = "First report date (YYYY-MM-DD), inclusive."
    END = "Last report date (YYYY-MM-DD), inclusive."
    QUEUE = "Queue selector: all, m10, aml or a raw queue name."
    METRIC = "Hourly metric: calls, aht, sl, abandoned, chats, frt, rt, agents or total."
    CHANNEL = "Classifier channel: call, chat or overall."
    TOPIC = "Topic whose subtopics should be listed."
    OUTPUT = "Save the report to this .json or .csv file."
    TIMEOUT = "Abort the report if it takes longer than this many seconds."
