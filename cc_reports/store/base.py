"""Record store protocol and the query helpers the aggregators share."""

from typing import Any, Protocol, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from ..cancellation import CancelToken
from ..constants import LogMessage
from ..errors import AggregationCancelledError, QueryFailedError
from ..pipeline import Pipeline

RowModel = TypeVar("RowModel", bound=BaseModel)


class RecordStore(Protocol):
    """Anything that can run a typed pipeline against a named collection."""

    def aggregate(
        self,
        collection: str,
        pipeline: Pipeline,
        *,
        token: CancelToken | None = None,
    ) -> list[dict[str, Any]]:
        """Run ``pipeline`` over ``collection`` and return the resulting rows.

        Implementations abandon the query and raise AggregationCancelledError
        once ``token`` is cancelled.
        """
        ...


def run_query(
    store: RecordStore,
    collection: str,
    pipeline: Pipeline,
    *,
    step: str,
    token: CancelToken | None = None,
) -> list[dict[str, Any]]:
    """Run one aggregate step, naming it in any failure.

    Args:
        store: Record store to query.
        collection: Collection the pipeline starts from.
        pipeline: Stages to run.
        step: Aggregate step name, e.g. ``daily.sl``.
        token: Optional cancellation token, checked before the query is issued.

    Returns:
        list[dict[str, Any]]: Raw rows from the store.

    Raises:
        AggregationCancelledError: The token was cancelled.
        QueryFailedError: The store failed the query.
    """
    if token is not None:
        token.raise_if_cancelled(step)

    logger.debug(LogMessage.RUNNING_STEP.format(step, collection))
    try:
        rows = store.aggregate(collection, pipeline, token=token)
    except AggregationCancelledError as e:
        raise AggregationCancelledError(step) from e
    except Exception as e:
        raise QueryFailedError(step, e) from e

    logger.debug(LogMessage.STEP_ROWS.format(step, len(rows)))
    return rows


def decode_rows(
    rows: list[dict[str, Any]], model: type[RowModel], *, step: str
) -> list[RowModel]:
    """Validate raw rows, dropping the ones that do not fit ``model``."""
    decoded: list[RowModel] = []
    skipped = 0
    for row in rows:
        try:
            decoded.append(model.model_validate(row))
        except ValidationError as e:
            skipped += 1
            logger.debug(LogMessage.SKIPPED_ROW.format(step, e.errors()[0]["msg"]))

    if skipped:
        logger.debug(LogMessage.SKIPPED_ROWS.format(step, skipped))
    return decoded
