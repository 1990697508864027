"""Analyses built on top of scored RFM batches."""

from .segments import (
    SegmentSummary,
    render_segment_report_markdown,
    summarize_segments,
)

__all__ = [
    "SegmentSummary",
    "render_segment_report_markdown",
    "summarize_segments",
]
