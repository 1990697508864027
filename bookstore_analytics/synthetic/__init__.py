"""Synthetic data generation utilities.

This package produces realistic-but-fake bookstore snapshots to exercise
the segmentation pipeline without access to production data.
"""

from .generator import (
    SnapshotConfig,
    generate_books,
    generate_customers,
    generate_marketing_spend,
    generate_orders,
    generate_snapshot,
)

__all__ = [
    "SnapshotConfig",
    "generate_books",
    "generate_customers",
    "generate_marketing_spend",
    "generate_orders",
    "generate_snapshot",
]
