"""Export of report results to disk."""

import json
from pathlib import Path

import polars as pl
from loguru import logger

from .constants import JSON_INDENT, LogMessage
from .errors import InvalidRequestError
from .models import ReportResult


class ReportStorage:
    """Handles saving report results to JSON and CSV files."""

    def save_json(self, *, result: ReportResult, filepath: Path | str) -> None:
        """Save a report result to a JSON file.

        Writes the same ``{"type", "data", ...}`` shape the report returns.

        Args:
            result: Report result to save.
            filepath: Path where the JSON file should be saved.
        """
        filepath = Path(filepath)

        with filepath.open("w") as f:
            json.dump(result.to_dict(), f, indent=JSON_INDENT, default=str)

        logger.success(LogMessage.SAVED_REPORT.format(result.kind, filepath))

    def save_csv(self, *, result: ReportResult, filepath: Path | str) -> None:
        """Save a report's rows to a CSV file using Polars.

        Hourly rows become one ``hour_N`` column per hour. Queue stats save
        the per-queue counts.

        Args:
            result: Report result to save.
            filepath: Path where the CSV file should be saved.
        """
        filepath = Path(filepath)

        records = result.records()
        if not records:
            logger.warning(f"No {result.kind} rows to save to CSV")
            return

        df = pl.DataFrame(records)
        df.write_csv(filepath)

        logger.success(LogMessage.SAVED_REPORT.format(result.kind, filepath))

    def save(self, *, result: ReportResult, filepath: Path | str) -> None:
        """Save a result in the format its file extension names (.json or .csv)."""
        filepath = Path(filepath)
        match filepath.suffix.lower():
            case ".json":
                self.save_json(result=result, filepath=filepath)
            case ".csv":
                self.save_csv(result=result, filepath=filepath)
            case suffix:
                raise InvalidRequestError(f"Unsupported output format: {suffix}")
