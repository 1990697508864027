"""Command line entry points for bookstore RFM segmentation."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Any, Sequence

from bookstore_analytics.analyses.segments import (
    render_segment_report_markdown,
    summarize_segments,
)
from bookstore_analytics.foundation import (
    DataIntegrityError,
    RetailSnapshot,
    RFMConfig,
    RFMScore,
    SnapshotContract,
    calculate_rfm_segmentation,
)
from bookstore_analytics.pandas import load_snapshot_csv, rfm_scores_to_dataframe
from bookstore_analytics.synthetic import SnapshotConfig, generate_snapshot

logger = logging.getLogger(__name__)


MAX_INPUT_BYTES = 25 * 1024 * 1024  # 25 MiB cap to avoid accidental OOM

LOG_LEVEL_ENV = "BOOKSTORE_RFM_LOG_LEVEL"


def _configure_logging(level: str | None) -> None:
    resolved = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load_snapshot(path: Path) -> RetailSnapshot:
    """Load a snapshot from a JSON file or a directory of CSV tables."""

    if path.is_dir():
        return load_snapshot_csv(path)

    resolved = path.resolve()
    size = resolved.stat().st_size
    if size > MAX_INPUT_BYTES:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )
    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    snapshot = SnapshotContract().build(payload)
    logger.info(
        f"Loaded snapshot from {path}: {len(snapshot.books)} books, "
        f"{len(snapshot.customers)} customers, {len(snapshot.orders)} orders"
    )
    return snapshot


def _score_to_json(score: RFMScore) -> dict[str, Any]:
    return {
        "customer_id": score.customer_id,
        "name": score.name,
        "recency_score": score.recency_score,
        "frequency_score": score.frequency_score,
        "monetary_score": score.monetary_score,
        "rfm_total": score.rfm_total,
        "customer_segment": score.customer_segment.value,
        "last_purchase_date": score.last_purchase_date.isoformat(),
        "purchase_frequency": score.purchase_frequency,
        "total_spent": str(score.total_spent),
    }


def segment_customers_cli(argv: Sequence[str] | None = None) -> int:
    """Score customers into RFM segments from a bookstore snapshot.

    The input is either a JSON file with ``books``, ``customers``,
    ``orders`` (and optionally ``marketing_spend``) arrays, or a directory
    containing ``books.csv``, ``customers.csv`` and ``orders.csv``.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for data integrity errors)
    """
    parser = argparse.ArgumentParser(
        description="Score customers into RFM segments from a bookstore snapshot"
    )
    parser.add_argument(
        "input",
        type=Path,
        help="Snapshot JSON file or directory of CSV tables",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Path for the scored customers. Written to stdout as JSON when omitted.",
    )
    parser.add_argument(
        "--format",
        choices=["csv", "json"],
        default="csv",
        help="Output format when --output is given (default: csv)",
    )
    parser.add_argument(
        "--report",
        type=Path,
        help="Optional path for a Markdown segment report",
    )
    parser.add_argument(
        "--top",
        type=int,
        default=10,
        help="Number of top customers listed in the report (default: 10)",
    )
    parser.add_argument(
        "--reverse-ranks",
        action="store_true",
        help="Give the best quintile rank 5 instead of rank 1",
    )
    parser.add_argument(
        "--n-workers",
        type=int,
        help="Worker processes for parallel aggregation (default: CPU count)",
    )
    parser.add_argument(
        "--parallel-threshold",
        type=int,
        default=10_000_000,
        help="Customer count at which aggregation runs in parallel (default: 10,000,000)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: ${LOG_LEVEL_ENV} or INFO)",
    )

    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    config = RFMConfig(
        reverse_ranks=args.reverse_ranks,
        parallel_threshold=args.parallel_threshold,
        n_workers=args.n_workers,
    )

    try:
        snapshot = _load_snapshot(args.input)
        scores = calculate_rfm_segmentation(snapshot, config)
    except DataIntegrityError as exc:
        logger.error(f"Snapshot failed integrity checks: {exc}")
        return 1

    if args.output:
        output_path = args.output
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if args.format == "csv":
            df = rfm_scores_to_dataframe(scores)
            # Exact cents, matching the JSON export.
            df["total_spent"] = [str(s.total_spent) for s in scores]
            df.to_csv(output_path, index=False)
        else:
            with output_path.open("w", encoding="utf-8") as fh:
                json.dump([_score_to_json(s) for s in scores], fh, indent=2)
        logger.info(f"{len(scores)} RFM scores exported to {output_path}")
    else:  # stdout fallback enables piping in shell usage.
        json.dump([_score_to_json(s) for s in scores], fp=sys.stdout, indent=2)
        print()

    if args.report:
        summaries = summarize_segments(scores)
        report_path = args.report
        report_path.parent.mkdir(parents=True, exist_ok=True)
        with report_path.open("w", encoding="utf-8") as fh:
            fh.write(render_segment_report_markdown(summaries, scores, top_n=args.top))
        logger.info(f"Segment report exported to {report_path}")

    return 0


def generate_snapshot_cli(argv: Sequence[str] | None = None) -> int:
    """Write a synthetic bookstore snapshot as JSON for demos and testing."""

    parser = argparse.ArgumentParser(description=generate_snapshot_cli.__doc__)
    parser.add_argument("output", type=Path, help="Path for the snapshot JSON file")
    parser.add_argument("--customers", type=int, default=200)
    parser.add_argument("--books", type=int, default=50)
    parser.add_argument("--start", type=date.fromisoformat, default=date(2023, 1, 1))
    parser.add_argument("--end", type=date.fromisoformat, default=date(2023, 12, 31))
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )

    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    snapshot = generate_snapshot(
        args.customers, args.books, args.start, args.end, SnapshotConfig(seed=args.seed)
    )
    output_path = args.output
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as fh:
        json.dump(snapshot.as_dict(), fh, indent=2)
    logger.info(
        f"Wrote synthetic snapshot to {output_path}: {len(snapshot.customers)} customers, "
        f"{len(snapshot.orders)} orders"
    )
    return 0


def main() -> None:
    raise SystemExit(segment_customers_cli())


def generate_main() -> None:
    raise SystemExit(generate_snapshot_cli())


if __name__ == "__main__":  # pragma: no cover
    main()
