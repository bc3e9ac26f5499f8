"""Record stores the reporting engine can query."""

from .base import RecordStore, decode_rows, run_query
from .frame import PolarsRecordStore

__all__ = [
    "PolarsRecordStore",
    "RecordStore",
    "decode_rows",
    "run_query",
]
