"""
Spark reader for exported public_profiles snapshots (JSON lines or Parquet).

Used to backfill the flattened store from a dump instead of the live table.
"""

import json
from collections.abc import Iterator
from datetime import datetime
from typing import Any

from pyspark.sql import DataFrame, Row, SparkSession

from profile_sync.core.models import SourceRecord
from profile_sync.observability.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_FORMATS = ("json", "parquet")


def _parse_version(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _parse_document(value: Any) -> Any:
    if isinstance(value, Row):
        return value.asDict(recursive=True)
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return None
    return value


def message_to_source_record(message: Any) -> SourceRecord:
    """
    Map one exported row ({id, profile, label, updated_at}) to a SourceRecord.

    Unusable rows map to an empty SourceRecord, which the reconciler counts
    as skipped.
    """
    if not isinstance(message, dict):
        return SourceRecord()

    label = message.get("label")
    return SourceRecord(
        key=message.get("id"),
        document=_parse_document(message.get("profile")),
        label=label if isinstance(label, str) else None,
        source_version=_parse_version(message.get("updated_at")),
    )


class ExportReader:
    """
    Reads source record exports with Spark and streams them to the driver.

    JSON exports are read as text so each document keeps its original shape
    instead of being coerced into one inferred struct schema.
    """

    def __init__(self, spark: SparkSession):
        """
        Initialize export reader.

        Args:
            spark: Active Spark session
        """
        self.spark = spark

    def read(self, file_path: str, file_format: str = "json") -> DataFrame:
        """
        Read an export into a DataFrame.

        Args:
            file_path: Path to the export
            file_format: "json" (JSON lines) or "parquet"

        Raises:
            ValueError: If file format is unsupported
        """
        file_format = file_format.lower()
        if file_format == "json":
            return self.spark.read.text(file_path)
        elif file_format == "parquet":
            return self.spark.read.parquet(file_path)
        else:
            raise ValueError(f"Unsupported export format: {file_format}")

    def iter_records(self, file_path: str, file_format: str = "json") -> Iterator[SourceRecord]:
        """
        Yield SourceRecords from an export in file order.

        Args:
            file_path: Path to the export
            file_format: "json" (JSON lines) or "parquet"
        """
        df = self.read(file_path, file_format)

        for row in df.toLocalIterator():
            if file_format.lower() == "json":
                line = row["value"]
                if not line or not line.strip():
                    continue
                try:
                    message = json.loads(line)
                except json.JSONDecodeError as e:
                    logger.warning(f"Unparseable export line: {e}")
                    message = None
            else:
                message = row.asDict(recursive=False)

            yield message_to_source_record(message)
