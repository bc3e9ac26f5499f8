"""Typed aggregation pipelines.

A pipeline is an ordered, immutable sequence of stages drawn from a closed
set (Match, Unwind, Project, Group, Bucket, Sort, UnionWith). Stages hold
typed expressions, predicates and accumulators; a record store adapter
translates them into its native query form.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Union

Scalar = Union[str, int, float, bool, date, datetime, None]


# Expressions


@dataclass(frozen=True)
class Field:
    """Reference to a field; dotted names reach into sub-documents."""

    name: str


@dataclass(frozen=True)
class Literal:
    value: Scalar


@dataclass(frozen=True)
class ReportDate:
    """Calendar date (YYYY-MM-DD) of a timestamp field.

    Attributes:
        field: Timestamp field.
        timezone: Zone to convert into before taking the date. None keeps the
            stored wall-clock time.
    """

    field: str
    timezone: str | None = None


@dataclass(frozen=True)
class HourOf:
    """Hour of day (0-23) of a timestamp field."""

    field: str
    timezone: str | None = None


@dataclass(frozen=True)
class DayOfMonth:
    """Day of month (1-31) of a timestamp field."""

    field: str
    timezone: str | None = None


@dataclass(frozen=True)
class PathTopic:
    """Topic component of a slash-delimited classification path."""

    field: str


@dataclass(frozen=True)
class PathSubtopic:
    """Subtopic components of a slash-delimited classification path."""

    field: str


@dataclass(frozen=True)
class ShareOfTotal:
    """Percentage a field contributes to its partition's sum."""

    field: str
    partition_by: tuple[str, ...]
    scale: float = 100.0


Expr = Union[
    Field,
    Literal,
    ReportDate,
    HourOf,
    DayOfMonth,
    PathTopic,
    PathSubtopic,
    ShareOfTotal,
]


# Predicates


@dataclass(frozen=True)
class Equals:
    field: str
    value: Scalar


@dataclass(frozen=True)
class IsIn:
    field: str
    values: tuple[Scalar, ...]


@dataclass(frozen=True)
class Between:
    """Inclusive range test."""

    field: str
    low: Scalar
    high: Scalar


@dataclass(frozen=True)
class AtMost:
    field: str
    value: Scalar


@dataclass(frozen=True)
class GreaterThan:
    field: str
    value: Scalar


Predicate = Union[Equals, IsIn, Between, AtMost, GreaterThan]


# Accumulators


@dataclass(frozen=True)
class Count:
    pass


@dataclass(frozen=True)
class CountWhere:
    predicate: Predicate


@dataclass(frozen=True)
class Sum:
    field: str


@dataclass(frozen=True)
class Mean:
    """Average of the non-null values of a field."""

    field: str


@dataclass(frozen=True)
class CountDistinct:
    """Number of distinct non-null values of a field."""

    field: str


@dataclass(frozen=True)
class Ratio:
    """``numerator / denominator * scale``; null when the denominator is 0."""

    numerator: "Accumulator"
    denominator: "Accumulator"
    scale: float = 100.0


Accumulator = Union[Count, CountWhere, Sum, Mean, CountDistinct, Ratio]


# Stages


@dataclass(frozen=True)
class Match:
    """Keep rows satisfying every predicate."""

    predicates: tuple[Predicate, ...]


@dataclass(frozen=True)
class Unwind:
    """One row per element of an array field; rows with no elements are dropped."""

    field: str


@dataclass(frozen=True)
class Project:
    """Compute output fields.

    Attributes:
        fields: Output name and expression pairs.
        keep_existing: Keep the incoming fields alongside the computed ones.
    """

    fields: tuple[tuple[str, Expr], ...]
    keep_existing: bool = False


@dataclass(frozen=True)
class Group:
    """Group by key fields and compute one value per accumulator."""

    keys: tuple[str, ...]
    accumulators: tuple[tuple[str, Accumulator], ...]


@dataclass(frozen=True)
class Bucket:
    """Group by key fields and spread one accumulator over numbered buckets.

    Produces one row per key with ``output`` holding ``count`` values, the
    value at index ``i`` being the accumulator over rows whose ``bucket``
    field equals ``i``. Buckets without rows hold ``fill``.
    """

    keys: tuple[str, ...]
    bucket: str
    count: int
    accumulator: Accumulator
    output: str
    fill: Scalar = 0


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class Sort:
    keys: tuple[SortKey, ...]


@dataclass(frozen=True)
class UnionWith:
    """Append the rows another collection's pipeline produces."""

    collection: str
    stages: tuple["Stage", ...]


Stage = Union[Match, Unwind, Project, Group, Bucket, Sort, UnionWith]


@dataclass(frozen=True)
class Pipeline:
    """An immutable sequence of stages with a fluent builder interface.

    Each builder method returns a new pipeline, so partial pipelines can be
    shared and extended safely.
    """

    stages: tuple[Stage, ...] = field(default_factory=tuple)

    def _then(self, stage: Stage) -> "Pipeline":
        return Pipeline(stages=(*self.stages, stage))

    def match(self, *predicates: Predicate) -> "Pipeline":
        return self._then(Match(predicates=tuple(predicates)))

    def unwind(self, field_name: str) -> "Pipeline":
        return self._then(Unwind(field=field_name))

    def project(self, *, keep_existing: bool = False, **fields: Expr) -> "Pipeline":
        return self._then(
            Project(fields=tuple(fields.items()), keep_existing=keep_existing)
        )

    def group(self, keys: tuple[str, ...], **accumulators: Accumulator) -> "Pipeline":
        return self._then(Group(keys=tuple(keys), accumulators=tuple(accumulators.items())))

    def bucket(
        self,
        keys: tuple[str, ...],
        *,
        bucket: str,
        count: int,
        accumulator: Accumulator,
        output: str,
        fill: Scalar = 0,
    ) -> "Pipeline":
        return self._then(
            Bucket(
                keys=tuple(keys),
                bucket=bucket,
                count=count,
                accumulator=accumulator,
                output=output,
                fill=fill,
            )
        )

    def sort(self, *keys: str | SortKey) -> "Pipeline":
        sort_keys = tuple(
            key if isinstance(key, SortKey) else SortKey(field=key) for key in keys
        )
        return self._then(Sort(keys=sort_keys))

    def union_with(self, collection: str, other: "Pipeline") -> "Pipeline":
        return self._then(UnionWith(collection=collection, stages=other.stages))

    def __len__(self) -> int:
        return len(self.stages)
