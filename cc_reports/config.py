"""Runtime settings and the queue literal table."""

from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    CHAT_QUEUES,
    DEFAULT_LOG_LEVEL,
    DEFAULT_REPORTING_TIMEZONE,
    DEFAULT_SERVICE_LEVEL_THRESHOLD,
    ENV_PREFIX,
    QUEUE_COMPLAINTS,
    QUEUE_MAIN,
    Channel,
    QueueDomain,
    QueueSelector,
)


def scope_key(domain: QueueDomain, channel: Channel | None = None) -> str:
    """Build the queue table key for a domain and, for classification, a channel."""
    if domain == QueueDomain.KPI:
        return QueueDomain.KPI.value
    return f"{domain.value}.{(channel or Channel.COMBINED).value}"


class QueueTable(BaseModel):
    """Static mapping from (scope, selector) to raw queue identifiers.

    Attributes:
        routes: ``scope -> selector -> queue ids``. Scopes are ``kpi`` and
            ``classification.<channel>``.
        case_insensitive: Selectors that match regardless of case.
    """

    model_config = ConfigDict(frozen=True)

    routes: dict[str, dict[str, tuple[str, ...]]]
    case_insensitive: frozenset[str] = frozenset({QueueSelector.AML.value})

    def lookup(self, scope: str, selector: str) -> tuple[str, ...] | None:
        """Return the queue ids for ``selector`` in ``scope``, or None if unmapped."""
        key = selector
        if selector.casefold() in self.case_insensitive:
            key = selector.casefold()
        return self.routes.get(scope, {}).get(key)


DEFAULT_QUEUE_TABLE = QueueTable(
    routes={
        scope_key(QueueDomain.KPI): {
            QueueSelector.ALL: (QUEUE_MAIN, QUEUE_COMPLAINTS),
            QueueSelector.MAIN: (QUEUE_MAIN,),
            QueueSelector.AML: (QUEUE_COMPLAINTS,),
        },
        # AML is call-only; its calls are reported through the aml selector.
        scope_key(QueueDomain.CLASSIFICATION, Channel.CALL): {
            QueueSelector.ALL: (QUEUE_MAIN,),
            QueueSelector.MAIN: (QUEUE_MAIN,),
            QueueSelector.AML: (QUEUE_COMPLAINTS,),
        },
        scope_key(QueueDomain.CLASSIFICATION, Channel.CHAT): {
            QueueSelector.ALL: CHAT_QUEUES,
            QueueSelector.MAIN: CHAT_QUEUES,
            QueueSelector.AML: (),
        },
        scope_key(QueueDomain.CLASSIFICATION, Channel.COMBINED): {
            QueueSelector.ALL: (QUEUE_MAIN, QUEUE_COMPLAINTS, *CHAT_QUEUES),
            QueueSelector.MAIN: (QUEUE_MAIN, *CHAT_QUEUES),
            QueueSelector.AML: (QUEUE_COMPLAINTS,),
        },
    }
)


class ReportingSettings(BaseSettings):
    """Settings for the reporting engine, read from ``CC_REPORTS_*`` variables.

    Attributes:
        reporting_timezone: IANA zone used to derive classification report dates.
        service_level_threshold: Queue wait (seconds) at or under which a call
            counts towards the service level.
        queue_table_path: Optional JSON file replacing the built-in queue table.
        log_level: Minimum loguru level for the CLI sink.
    """

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, frozen=True, extra="ignore")

    reporting_timezone: str = DEFAULT_REPORTING_TIMEZONE
    service_level_threshold: int = Field(default=DEFAULT_SERVICE_LEVEL_THRESHOLD, ge=0)
    queue_table_path: Path | None = None
    log_level: str = DEFAULT_LOG_LEVEL

    @field_validator("reporting_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    def queue_table(self) -> QueueTable:
        if self.queue_table_path is None:
            return DEFAULT_QUEUE_TABLE
        return load_queue_table(self.queue_table_path)


def load_queue_table(path: Path | str) -> QueueTable:
    """Load and validate a queue table from a JSON file.

    Args:
        path: JSON file shaped like ``{"routes": {...}, "case_insensitive": [...]}``.

    Returns:
        QueueTable: The validated table.
    """
    path = Path(path)
    table = QueueTable.model_validate_json(path.read_text())
    logger.debug(f"Loaded queue table with {len(table.routes)} scopes from {path}")
    return table


@lru_cache(maxsize=1)
def get_settings() -> ReportingSettings:
    """Process-wide settings, read from the environment once."""
    return ReportingSettings()
