"""Foundational building blocks for bookstore customer analytics.

This package exposes the snapshot records and their validation contract,
per-customer purchase metrics and RFM (Recency-Frequency-Monetary)
ranking and segmentation.
"""

from .errors import DataIntegrityError, ReferentialIntegrityError
from .metrics import CustomerMetrics, aggregate_customer_metrics
from .records import (
    Book,
    Customer,
    MarketingSpend,
    Order,
    RetailSnapshot,
    SnapshotContract,
)
from .rfm import (
    N_TILES,
    QuintileRanks,
    RFMConfig,
    RFMScore,
    Segment,
    assign_quintile_ranks,
    calculate_rfm_segmentation,
    classify_segment,
    ntile_groups,
    score_customers,
)

__all__ = [
    "DataIntegrityError",
    "ReferentialIntegrityError",
    "CustomerMetrics",
    "aggregate_customer_metrics",
    "Book",
    "Customer",
    "MarketingSpend",
    "Order",
    "RetailSnapshot",
    "SnapshotContract",
    "N_TILES",
    "QuintileRanks",
    "RFMConfig",
    "RFMScore",
    "Segment",
    "assign_quintile_ranks",
    "calculate_rfm_segmentation",
    "classify_segment",
    "ntile_groups",
    "score_customers",
]
