"""Segment-level summary of an RFM scoring run.

Answers the questions a merchandising or marketing team asks once
customers are segmented:
- How many customers fall into each segment?
- How much of the revenue does each segment account for?
- How often do customers in a segment buy?

The summary can be rendered as a Markdown report for sharing.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from bookstore_analytics.foundation.rfm import RFMScore, Segment

# Standard percentage precision: 2 decimal places (e.g., 45.67%)
PERCENTAGE_PRECISION = Decimal("0.01")

# Segments are always reported best-to-worst by label, even when empty.
SEGMENT_ORDER = (
    Segment.CHAMPIONS,
    Segment.LOYAL,
    Segment.POTENTIAL,
    Segment.AT_RISK,
)


@dataclass(frozen=True)
class SegmentSummary:
    """Aggregate figures for one segment.

    Attributes
    ----------
    segment:
        Segment label
    customer_count:
        Customers assigned to the segment
    customer_pct:
        Share of scored customers (0-100)
    total_revenue:
        Sum of total_spent across the segment
    revenue_pct:
        Share of total revenue (0-100)
    avg_purchase_frequency:
        Mean number of orders per customer in the segment
    avg_rfm_total:
        Mean rfm_total in the segment
    """

    segment: Segment
    customer_count: int
    customer_pct: Decimal
    total_revenue: Decimal
    revenue_pct: Decimal
    avg_purchase_frequency: Decimal
    avg_rfm_total: Decimal

    def __post_init__(self) -> None:
        """Validate segment summary."""
        if self.customer_count < 0:
            raise ValueError(
                f"Customer count cannot be negative: {self.customer_count} (segment={self.segment.value})"
            )
        if self.total_revenue < 0:
            raise ValueError(
                f"Total revenue cannot be negative: {self.total_revenue} (segment={self.segment.value})"
            )
        if not 0 <= self.customer_pct <= 100:
            raise ValueError(
                f"Customer percentage must be 0-100: {self.customer_pct} (segment={self.segment.value})"
            )
        if not 0 <= self.revenue_pct <= 100:
            raise ValueError(
                f"Revenue percentage must be 0-100: {self.revenue_pct} (segment={self.segment.value})"
            )


def _pct(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return Decimal("0.00")
    return (part / whole * 100).quantize(PERCENTAGE_PRECISION, rounding=ROUND_HALF_UP)


def summarize_segments(scores: Sequence[RFMScore]) -> list[SegmentSummary]:
    """Summarise a scored batch per segment.

    Parameters
    ----------
    scores:
        Output of :func:`~bookstore_analytics.foundation.rfm.calculate_rfm_segmentation`

    Returns
    -------
    list[SegmentSummary]
        One entry per segment in Champions, Loyal, Potential, At Risk order.
        Segments without customers are reported with zero counts.
    """
    total_customers = Decimal(len(scores))
    total_revenue = sum((s.total_spent for s in scores), Decimal("0"))

    summaries: list[SegmentSummary] = []
    for segment in SEGMENT_ORDER:
        members = [s for s in scores if s.customer_segment == segment]
        count = len(members)
        revenue = sum((s.total_spent for s in members), Decimal("0")).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
        if count:
            avg_frequency = (
                Decimal(sum(s.purchase_frequency for s in members)) / count
            ).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
            avg_total = (Decimal(sum(s.rfm_total for s in members)) / count).quantize(
                Decimal("0.01"), rounding=ROUND_HALF_UP
            )
        else:
            avg_frequency = Decimal("0.00")
            avg_total = Decimal("0.00")

        summaries.append(
            SegmentSummary(
                segment=segment,
                customer_count=count,
                customer_pct=_pct(Decimal(count), total_customers),
                total_revenue=revenue,
                revenue_pct=_pct(revenue, total_revenue),
                avg_purchase_frequency=avg_frequency,
                avg_rfm_total=avg_total,
            )
        )
    return summaries


def render_segment_report_markdown(
    summaries: Sequence[SegmentSummary],
    scores: Sequence[RFMScore],
    top_n: int = 10,
) -> str:
    """Render a segment summary and the top ``top_n`` scored customers as Markdown."""

    if top_n < 0:
        raise ValueError(f"top_n cannot be negative: {top_n}")

    lines: list[str] = []
    lines.append("# RFM Customer Segmentation Report\n")
    lines.append(f"**Customers Scored:** {len(scores)}\n")

    lines.append("## Segment Summary\n")
    lines.append(
        "| Segment | Customers | % Customers | Revenue | % Revenue | Avg Orders | Avg RFM Total |"
    )
    lines.append("|---|---:|---:|---:|---:|---:|---:|")
    for summary in summaries:
        lines.append(
            f"| {summary.segment.value} | {summary.customer_count} | "
            f"{summary.customer_pct}% | ${summary.total_revenue} | "
            f"{summary.revenue_pct}% | {summary.avg_purchase_frequency} | "
            f"{summary.avg_rfm_total} |"
        )
    lines.append("")

    if top_n and scores:
        lines.append(f"## Top {min(top_n, len(scores))} Customers by RFM Total\n")
        lines.append("| Customer | Name | R | F | M | Total | Segment |")
        lines.append("|---|---|---:|---:|---:|---:|---|")
        for score in scores[:top_n]:
            lines.append(
                f"| {score.customer_id} | {score.name} | {score.recency_score} | "
                f"{score.frequency_score} | {score.monetary_score} | "
                f"{score.rfm_total} | {score.customer_segment.value} |"
            )
        lines.append("")

    return "\n".join(lines)
