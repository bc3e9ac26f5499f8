"""In-memory record store backed by polars.

Every collection is held as a ``polars.LazyFrame`` with a declared schema.
:class:`PolarsRecordStore` is the one place typed pipeline stages are turned
into polars expressions.
"""

from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any

import polars as pl
from loguru import logger

from ..cancellation import CancelToken
from ..constants import (
    EMPTY_STRING,
    PATH_DELIMITER,
    QUERY_POLL_SECONDS,
    SUBTOPIC_START,
    TOPIC_INDEX,
    CallField,
    ChatField,
    Collection,
    LogMessage,
    RequestField,
)
from ..errors import AggregationCancelledError, InvalidRequestError
from ..models import CallEvent, ChatEvent, ClassificationRecord
from ..pipeline import (
    Accumulator,
    AtMost,
    Between,
    Bucket,
    Count,
    CountDistinct,
    CountWhere,
    DayOfMonth,
    Equals,
    Expr,
    Field,
    GreaterThan,
    Group,
    HourOf,
    IsIn,
    Literal,
    Match,
    Mean,
    PathSubtopic,
    PathTopic,
    Pipeline,
    Predicate,
    Project,
    Ratio,
    ReportDate,
    ShareOfTotal,
    Sort,
    Stage,
    Sum,
    UnionWith,
    Unwind,
)

CALL_SCHEMA = pl.Schema(
    {
        CallField.QUEUE_NAME: pl.String,
        CallField.TYPE: pl.String,
        CallField.ENTER_QUEUE_DATE: pl.Datetime("us"),
        CallField.ANSWER_DATE: pl.Datetime("us"),
        CallField.CALL_DURATION: pl.Int64,
        CallField.QUEUE_WAIT_TIME: pl.Int64,
        CallField.USER_ID: pl.String,
    }
)

CHAT_SCHEMA = pl.Schema(
    {
        ChatField.TYPE: pl.String,
        ChatField.CREATED_DATE: pl.Datetime("us"),
        ChatField.ASSIGN_DATE: pl.Datetime("us"),
        ChatField.CHAT_FRT: pl.Int64,
        ChatField.RESOLUTION_TIME_TOTAL: pl.Int64,
        ChatField.USER_ID: pl.String,
        ChatField.AGENT_FRT: pl.Int64,
    }
)

REQUEST_SCHEMA = pl.Schema(
    {
        RequestField.TYPE: pl.String,
        RequestField.QUEUE_NAME: pl.String,
        RequestField.CREATED_DATE: pl.Datetime("us", "UTC"),
        RequestField.CLASSIFIERS: pl.List(pl.Struct({"path": pl.String})),
    }
)

SCHEMAS: dict[str, pl.Schema] = {
    Collection.CALL_REPORT: CALL_SCHEMA,
    Collection.CHAT_REPORT: CHAT_SCHEMA,
    Collection.REQUEST: REQUEST_SCHEMA,
}

_READERS: dict[str, Callable[[Path], pl.DataFrame]] = {
    ".csv": lambda path: pl.read_csv(path, try_parse_dates=True),
    ".json": pl.read_json,
    ".ndjson": pl.read_ndjson,
    ".jsonl": pl.read_ndjson,
    ".parquet": pl.read_parquet,
}

_BUCKET_VALUE = "__value"


def _coerce(expr: pl.Expr, source: pl.DataType, target: pl.DataType) -> pl.Expr:
    if isinstance(target, pl.Datetime) and isinstance(source, pl.Datetime):
        if source.time_zone is None and target.time_zone is not None:
            expr = expr.dt.replace_time_zone(target.time_zone)
        elif source.time_zone is not None and target.time_zone is None:
            expr = expr.dt.replace_time_zone(None)
        elif source.time_zone != target.time_zone:
            expr = expr.dt.convert_time_zone(target.time_zone)
        return expr.dt.cast_time_unit(target.time_unit)
    if isinstance(target, pl.Datetime) and source == pl.String:
        # Offsets such as "Z" are honoured; strings without one are read as UTC.
        expr = expr.str.to_datetime(
            time_unit=target.time_unit,
            time_zone=target.time_zone or "UTC",
            strict=False,
        )
        return expr if target.time_zone else expr.dt.replace_time_zone(None)
    return expr.cast(target, strict=False)


def conform(frame: pl.LazyFrame, schema: pl.Schema) -> pl.LazyFrame:
    """Bring a frame in line with a collection schema.

    Missing columns are added as nulls; timestamps given as strings are parsed.
    List columns are left as they are so sub-documents may carry extra fields.

    Args:
        frame: Frame to conform.
        schema: Declared collection schema.

    Returns:
        pl.LazyFrame: Frame whose declared columns have the declared types.
    """
    present = frame.collect_schema()
    exprs = []
    for name, target in schema.items():
        if name not in present:
            exprs.append(pl.lit(None, dtype=target).alias(name))
        elif present[name] != target and not isinstance(present[name], pl.List):
            exprs.append(_coerce(pl.col(name), present[name], target).alias(name))

    return frame.with_columns(exprs) if exprs else frame


class PolarsRecordStore:
    """Record store over polars frames, one per collection.

    Attributes:
        frames: Conformed lazy frame for each known collection.
    """

    def __init__(self, frames: Mapping[str, pl.LazyFrame | pl.DataFrame] | None = None):
        """Initialize the store.

        Args:
            frames: Collection name to frame. Collections not given are empty.
        """
        frames = frames or {}
        unknown = set(frames) - set(SCHEMAS)
        if unknown:
            raise InvalidRequestError(f"Unknown collections: {sorted(unknown)}")

        self.frames: dict[str, pl.LazyFrame] = {}
        for name, schema in SCHEMAS.items():
            frame = frames.get(name)
            if frame is None:
                self.frames[name] = pl.LazyFrame(schema=schema)
            else:
                self.frames[name] = conform(frame.lazy(), schema)

    @classmethod
    def from_frames(
        cls, frames: Mapping[str, pl.LazyFrame | pl.DataFrame]
    ) -> "PolarsRecordStore":
        return cls(frames)

    @classmethod
    def from_records(
        cls,
        *,
        calls: Iterable[CallEvent] = (),
        chats: Iterable[ChatEvent] = (),
        requests: Iterable[ClassificationRecord] = (),
    ) -> "PolarsRecordStore":
        """Build a store from validated event models."""
        return cls(
            {
                Collection.CALL_REPORT: pl.DataFrame(
                    [call.model_dump() for call in calls], schema=CALL_SCHEMA
                ),
                Collection.CHAT_REPORT: pl.DataFrame(
                    [chat.model_dump() for chat in chats], schema=CHAT_SCHEMA
                ),
                Collection.REQUEST: pl.DataFrame(
                    [request.model_dump(by_alias=True) for request in requests],
                    schema=REQUEST_SCHEMA,
                ),
            }
        )

    @classmethod
    def from_files(
        cls,
        *,
        calls: Path | str | None = None,
        chats: Path | str | None = None,
        requests: Path | str | None = None,
    ) -> "PolarsRecordStore":
        """Build a store from CSV, JSON, NDJSON or Parquet files.

        Args:
            calls: call_report file.
            chats: chat_report file.
            requests: request (classification) file. Nested classifiers need
                a JSON, NDJSON or Parquet file.

        Returns:
            PolarsRecordStore: Store over the loaded files.
        """
        frames: dict[str, pl.DataFrame] = {}
        for collection, path in (
            (Collection.CALL_REPORT, calls),
            (Collection.CHAT_REPORT, chats),
            (Collection.REQUEST, requests),
        ):
            if path is None:
                continue
            path = Path(path)
            reader = _READERS.get(path.suffix.lower())
            if reader is None:
                raise InvalidRequestError(f"Unsupported file type: {path.suffix}")
            frames[collection] = reader(path)
            logger.info(
                LogMessage.LOADED_COLLECTION.format(len(frames[collection]), collection, path)
            )
        return cls(frames)

    def aggregate(
        self,
        collection: str,
        pipeline: Pipeline,
        *,
        token: CancelToken | None = None,
    ) -> list[dict[str, Any]]:
        """Run a pipeline over a collection.

        Args:
            collection: Collection the pipeline starts from.
            pipeline: Stages to apply, in order.
            token: When given, the query runs on a worker thread and is
                abandoned as soon as the token is cancelled.

        Returns:
            list[dict[str, Any]]: Result rows.
        """
        frame = self.build(collection, pipeline.stages)
        if token is None:
            return frame.collect().to_dicts()
        if token.cancelled:
            raise AggregationCancelledError(collection)

        # A cancelled query is left to finish on its worker; its result is dropped.
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(frame.collect)
            while not future.done():
                if token.cancelled:
                    future.cancel()
                    raise AggregationCancelledError(collection)
                wait([future], timeout=QUERY_POLL_SECONDS)
            return future.result().to_dicts()
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def build(self, collection: str, stages: Iterable[Stage]) -> pl.LazyFrame:
        """Translate stages into a lazy query over ``collection``."""
        if collection not in self.frames:
            raise KeyError(f"Unknown collection: {collection}")

        frame = self.frames[collection]
        for stage in stages:
            frame = self._apply(frame, stage)
        return frame

    def _apply(self, frame: pl.LazyFrame, stage: Stage) -> pl.LazyFrame:
        schema = frame.collect_schema()
        match stage:
            case Match(predicates=predicates):
                if not predicates:
                    return frame
                return frame.filter(*[self._predicate(p, schema) for p in predicates])
            case Unwind(field=name):
                return frame.explode(name, empty_as_null=True).filter(pl.col(name).is_not_null())
            case Project(fields=fields, keep_existing=keep_existing):
                exprs = [self._expr(expr, schema).alias(name) for name, expr in fields]
                return frame.with_columns(exprs) if keep_existing else frame.select(exprs)
            case Group(keys=keys, accumulators=accumulators):
                return frame.group_by(list(keys)).agg(
                    [self._accumulator(acc, schema).alias(name) for name, acc in accumulators]
                )
            case Bucket():
                return self._bucket(frame, stage, schema)
            case Sort(keys=keys):
                return frame.sort(
                    [key.field for key in keys],
                    descending=[key.descending for key in keys],
                    nulls_last=True,
                    maintain_order=True,
                )
            case UnionWith(collection=collection, stages=stages):
                other = self.build(collection, stages)
                return pl.concat([frame, other], how="diagonal_relaxed")
        raise TypeError(f"Unsupported stage: {stage!r}")

    def _bucket(self, frame: pl.LazyFrame, stage: Bucket, schema: pl.Schema) -> pl.LazyFrame:
        keys = list(stage.keys)
        per_bucket = frame.group_by([*keys, stage.bucket]).agg(
            self._accumulator(stage.accumulator, schema).alias(_BUCKET_VALUE)
        )
        slots = [f"{_BUCKET_VALUE}_{index}" for index in range(stage.count)]
        spread = per_bucket.group_by(keys).agg(
            [
                pl.col(_BUCKET_VALUE).filter(pl.col(stage.bucket) == index).first().alias(slot)
                for index, slot in enumerate(slots)
            ]
        )
        return spread.select(
            *keys,
            pl.concat_list([pl.col(slot).fill_null(stage.fill) for slot in slots]).alias(
                stage.output
            ),
        )

    def _column(self, name: str, schema: pl.Schema) -> pl.Expr:
        if name in schema or "." not in name:
            return pl.col(name)
        head, *rest = name.split(".")
        expr = pl.col(head)
        for part in rest:
            expr = expr.struct.field(part)
        return expr

    def _timestamp(self, name: str, timezone: str | None, schema: pl.Schema) -> pl.Expr:
        expr = self._column(name, schema)
        if timezone is None:
            return expr
        dtype = schema.get(name)
        if isinstance(dtype, pl.Datetime) and dtype.time_zone is None:
            expr = expr.dt.replace_time_zone("UTC")
        return expr.dt.convert_time_zone(timezone)

    def _expr(self, expr: Expr, schema: pl.Schema) -> pl.Expr:
        match expr:
            case Field(name=name):
                return self._column(name, schema)
            case Literal(value=value):
                return pl.lit(value)
            case ReportDate(field=name, timezone=timezone):
                return self._timestamp(name, timezone, schema).dt.strftime("%Y-%m-%d")
            case HourOf(field=name, timezone=timezone):
                return self._timestamp(name, timezone, schema).dt.hour().cast(pl.Int32)
            case DayOfMonth(field=name, timezone=timezone):
                return self._timestamp(name, timezone, schema).dt.day().cast(pl.Int32)
            case PathTopic(field=name):
                parts = self._column(name, schema).str.split(PATH_DELIMITER)
                # slice + first yields null instead of raising on short paths
                second = parts.list.slice(TOPIC_INDEX, 1).list.first()
                return (
                    pl.when(parts.list.len() > TOPIC_INDEX)
                    .then(second)
                    .otherwise(parts.list.first())
                    .str.strip_chars()
                )
            case PathSubtopic(field=name):
                parts = self._column(name, schema).str.split(PATH_DELIMITER)
                rest = parts.list.slice(SUBTOPIC_START).list.join(PATH_DELIMITER)
                return (
                    pl.when(parts.list.len() > SUBTOPIC_START)
                    .then(rest)
                    .otherwise(pl.lit(EMPTY_STRING))
                    .str.strip_chars()
                )
            case ShareOfTotal(field=name, partition_by=partition_by, scale=scale):
                value = pl.col(name).cast(pl.Float64)
                return value / value.sum().over(list(partition_by)) * scale
        raise TypeError(f"Unsupported expression: {expr!r}")

    def _predicate(self, predicate: Predicate, schema: pl.Schema) -> pl.Expr:
        match predicate:
            case Equals(field=name, value=value):
                return self._column(name, schema) == value
            case IsIn(field=name, values=values):
                if not values:
                    return pl.lit(False)
                return self._column(name, schema).is_in(list(values))
            case Between(field=name, low=low, high=high):
                return self._column(name, schema).is_between(
                    pl.lit(low), pl.lit(high), closed="both"
                )
            case AtMost(field=name, value=value):
                return self._column(name, schema) <= value
            case GreaterThan(field=name, value=value):
                return self._column(name, schema) > value
        raise TypeError(f"Unsupported predicate: {predicate!r}")

    def _accumulator(self, accumulator: Accumulator, schema: pl.Schema) -> pl.Expr:
        match accumulator:
            case Count():
                return pl.len().cast(pl.Int64)
            case CountWhere(predicate=predicate):
                return self._predicate(predicate, schema).sum().cast(pl.Int64)
            case Sum(field=name):
                return self._column(name, schema).sum()
            case Mean(field=name):
                return self._column(name, schema).mean()
            case CountDistinct(field=name):
                return self._column(name, schema).drop_nulls().n_unique().cast(pl.Int64)
            case Ratio(numerator=numerator, denominator=denominator, scale=scale):
                top = self._accumulator(numerator, schema).cast(pl.Float64)
                bottom = self._accumulator(denominator, schema)
                return pl.when(bottom != 0).then(top / bottom * scale).otherwise(None)
        raise TypeError(f"Unsupported accumulator: {accumulator!r}")
