"""Classification path parsing and topic aggregation."""

from .aggregator import ClassificationAggregator, merge_classifier_rows
from .parser import ParsedPath, parse_path

__all__ = [
    "ClassificationAggregator",
    "ParsedPath",
    "merge_classifier_rows",
    "parse_path",
]
