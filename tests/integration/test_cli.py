"""Integration tests for the command line entry points.

Tests the workflow from a snapshot on disk (JSON file or CSV directory)
through the CLI to the exported scores and Markdown report.
"""

import json
from datetime import date

import pandas as pd
import pytest

from bookstore_analytics.cli import generate_snapshot_cli, segment_customers_cli
from bookstore_analytics.foundation.rfm import calculate_rfm_segmentation
from bookstore_analytics.pandas import snapshot_to_dataframes
from bookstore_analytics.synthetic import SnapshotConfig, generate_snapshot


@pytest.fixture
def snapshot():
    return generate_snapshot(
        60, 12, date(2023, 1, 1), date(2023, 12, 31), SnapshotConfig(seed=17)
    )


@pytest.fixture
def snapshot_json(tmp_path, snapshot):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(snapshot.as_dict()), encoding="utf-8")
    return path


class TestSegmentCustomersCLI:
    """Test segment_customers_cli."""

    def test_csv_output(self, tmp_path, snapshot, snapshot_json):
        output = tmp_path / "out" / "scores.csv"
        exit_code = segment_customers_cli([str(snapshot_json), "--output", str(output)])

        assert exit_code == 0
        df = pd.read_csv(output, dtype={"customer_id": str})
        expected = calculate_rfm_segmentation(snapshot)
        assert df["customer_id"].tolist() == [s.customer_id for s in expected]
        assert df["rfm_total"].tolist() == [s.rfm_total for s in expected]
        assert set(df["customer_segment"]) <= {
            "Champions",
            "Loyal",
            "Potential",
            "At Risk",
        }

    def test_csv_keeps_exact_cents(self, tmp_path, snapshot, snapshot_json):
        output = tmp_path / "scores.csv"
        assert segment_customers_cli([str(snapshot_json), "--output", str(output)]) == 0

        df = pd.read_csv(output, dtype={"customer_id": str, "total_spent": str})
        expected = calculate_rfm_segmentation(snapshot)
        assert df["total_spent"].tolist() == [str(s.total_spent) for s in expected]

    def test_json_output(self, tmp_path, snapshot, snapshot_json):
        output = tmp_path / "scores.json"
        exit_code = segment_customers_cli(
            [str(snapshot_json), "--output", str(output), "--format", "json"]
        )

        assert exit_code == 0
        rows = json.loads(output.read_text(encoding="utf-8"))
        expected = calculate_rfm_segmentation(snapshot)
        assert len(rows) == len(expected)
        assert rows[0]["customer_id"] == expected[0].customer_id
        assert rows[0]["total_spent"] == str(expected[0].total_spent)
        assert rows[0]["last_purchase_date"] == expected[0].last_purchase_date.isoformat()

    def test_stdout_output(self, snapshot_json, capsys):
        exit_code = segment_customers_cli([str(snapshot_json)])

        assert exit_code == 0
        rows = json.loads(capsys.readouterr().out)
        totals = [row["rfm_total"] for row in rows]
        assert totals == sorted(totals, reverse=True)

    def test_csv_directory_input(self, tmp_path, snapshot):
        tables = tmp_path / "tables"
        tables.mkdir()
        for table, frame in snapshot_to_dataframes(snapshot).items():
            frame.to_csv(tables / f"{table}.csv", index=False)
        output = tmp_path / "scores.csv"

        assert segment_customers_cli([str(tables), "--output", str(output)]) == 0
        df = pd.read_csv(output, dtype={"customer_id": str})
        assert len(df) == len(calculate_rfm_segmentation(snapshot))

    def test_report_written(self, tmp_path, snapshot_json):
        output = tmp_path / "scores.csv"
        report = tmp_path / "reports" / "segments.md"
        exit_code = segment_customers_cli(
            [
                str(snapshot_json),
                "--output",
                str(output),
                "--report",
                str(report),
                "--top",
                "5",
            ]
        )

        assert exit_code == 0
        content = report.read_text(encoding="utf-8")
        assert "# RFM Customer Segmentation Report" in content
        assert "## Top 5 Customers by RFM Total" in content

    def test_reverse_ranks_flag(self, tmp_path, snapshot, snapshot_json):
        output = tmp_path / "scores.json"
        segment_customers_cli(
            [
                str(snapshot_json),
                "--output",
                str(output),
                "--format",
                "json",
                "--reverse-ranks",
            ]
        )
        rows = {r["customer_id"]: r for r in json.loads(output.read_text())}
        for score in calculate_rfm_segmentation(snapshot):
            assert rows[score.customer_id]["recency_score"] == 6 - score.recency_score

    def test_referential_error_returns_exit_code_one(self, tmp_path, snapshot, caplog):
        payload = snapshot.as_dict()
        payload["orders"].append(
            {
                "order_id": "O-BAD",
                "customer_id": payload["customers"][0]["customer_id"],
                "book_id": "B-404",
                "quantity": 1,
                "order_date": "2023-06-01",
            }
        )
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        output = tmp_path / "scores.csv"

        exit_code = segment_customers_cli([str(path), "--output", str(output)])

        assert exit_code == 1
        assert not output.exists()
        assert "O-BAD->B-404" in caplog.text

    def test_oversized_input_rejected(self, tmp_path, monkeypatch, snapshot_json):
        monkeypatch.setattr("bookstore_analytics.cli.MAX_INPUT_BYTES", 10)
        with pytest.raises(ValueError, match="exceeds limit"):
            segment_customers_cli([str(snapshot_json)])


class TestGenerateSnapshotCLI:
    """Test generate_snapshot_cli."""

    def test_generated_snapshot_is_scoreable(self, tmp_path):
        path = tmp_path / "synthetic.json"
        exit_code = generate_snapshot_cli(
            [str(path), "--customers", "25", "--books", "6", "--seed", "3"]
        )

        assert exit_code == 0
        payload = json.loads(path.read_text(encoding="utf-8"))
        assert len(payload["customers"]) == 25
        assert len(payload["books"]) == 6

        output = tmp_path / "scores.csv"
        assert segment_customers_cli([str(path), "--output", str(output)]) == 0
