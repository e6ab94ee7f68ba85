"""
Integration tests for reading source exports with Spark.
"""

import json

import pytest

from profile_sync.batch import BulkReconciler
from profile_sync.batch.readers.export_reader import ExportReader


@pytest.fixture
def export_rows(jane_document):
    return [
        {"id": "p1", "profile": jane_document, "label": "Q4", "updated_at": "2024-11-17T12:00:00Z"},
        {"id": "p2", "profile": {"candidate": {"name": "Ana Lima"}}, "label": None, "updated_at": None},
        {"id": "p1", "profile": {"name": "Jane Older"}, "label": "Q3", "updated_at": "2024-08-01T00:00:00Z"},
    ]


@pytest.mark.integration
@pytest.mark.slow
class TestExportReader:
    """Tests for ExportReader"""

    def test_json_lines(self, spark_session, tmp_path, export_rows):
        export_file = tmp_path / "profiles.jsonl"
        lines = [json.dumps(row) for row in export_rows] + ["", "{not json"]
        export_file.write_text("\n".join(lines))

        records = list(ExportReader(spark_session).iter_records(str(export_file), "json"))

        assert [record.key for record in records] == ["p1", "p2", "p1", None]
        assert records[0].document["name"] == "Jane Smith"
        assert records[1].document == {"candidate": {"name": "Ana Lima"}}
        assert records[0].source_version > records[2].source_version

    def test_parquet_with_json_text_documents(self, spark_session, tmp_path, export_rows):
        rows = [
            (row["id"], json.dumps(row["profile"]), row["label"], row["updated_at"])
            for row in export_rows
        ]
        df = spark_session.createDataFrame(rows, "id string, profile string, label string, updated_at string")
        export_dir = str(tmp_path / "profiles.parquet")
        df.coalesce(1).write.parquet(export_dir)

        records = list(ExportReader(spark_session).iter_records(export_dir, "parquet"))

        assert sorted(record.key for record in records) == ["p1", "p1", "p2"]
        assert {record.document.get("name") for record in records if record.key == "p1"} == {
            "Jane Smith", "Jane Older"
        }

    def test_unsupported_format(self, spark_session):
        with pytest.raises(ValueError, match="Unsupported"):
            ExportReader(spark_session).read("/tmp/profiles.csv", "csv")

    def test_reconcile_from_export(self, spark_session, tmp_path, export_rows, memory_store):
        export_file = tmp_path / "profiles.jsonl"
        export_file.write_text("\n".join(json.dumps(row) for row in export_rows))

        records = ExportReader(spark_session).iter_records(str(export_file), "json")
        report = BulkReconciler(memory_store, current_year=2024).reconcile(records)

        assert report.considered == 3
        assert report.written == 2
        assert report.duplicate_keys == ["p1"]
        assert memory_store.get("p1").full_name == "Jane Smith"
