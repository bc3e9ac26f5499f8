"""Errors raised by the reporting engine."""


class ReportingError(Exception):
    """Base class for every error the reporting engine raises."""


class StoreUnavailableError(ReportingError):
    """No live record store handle was supplied."""

    def __init__(self, message: str = "Record store connection is not established"):
        super().__init__(message)


class QueryFailedError(ReportingError):
    """The record store rejected or failed a query.

    Attributes:
        step: Name of the aggregate step whose query failed.
        cause: The underlying exception.
    """

    def __init__(self, step: str, cause: BaseException):
        self.step = step
        self.cause = cause
        super().__init__(f"Failed to compute {step}: {cause}")


class InvalidRequestError(ReportingError, ValueError):
    """A request could not be understood (bad date, granularity or channel)."""


class UnsupportedMetricError(InvalidRequestError):
    """The hourly report was asked for a metric it does not know."""

    def __init__(self, metric: str):
        self.metric = metric
        super().__init__(f"Unsupported metric: {metric}")


class AggregationCancelledError(ReportingError):
    """The caller cancelled the request or its timeout elapsed."""

    def __init__(self, step: str):
        self.step = step
        super().__init__(f"Aggregation cancelled during {step}")
