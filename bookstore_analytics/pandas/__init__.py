"""Pandas DataFrame adapters for bookstore analytics components."""

from .rfm import (
    RFM_SCORE_COLUMNS,
    rfm_scores_to_dataframe,
    dataframe_to_rfm_scores,
    calculate_rfm_segmentation_df,
)
from .snapshot import (
    dataframe_to_books,
    dataframe_to_customers,
    dataframe_to_orders,
    dataframe_to_marketing_spend,
    snapshot_from_dataframes,
    snapshot_to_dataframes,
    load_snapshot_csv,
)

__all__ = [
    # RFM adapters
    "RFM_SCORE_COLUMNS",
    "rfm_scores_to_dataframe",
    "dataframe_to_rfm_scores",
    "calculate_rfm_segmentation_df",
    # Snapshot adapters
    "dataframe_to_books",
    "dataframe_to_customers",
    "dataframe_to_orders",
    "dataframe_to_marketing_spend",
    "snapshot_from_dataframes",
    "snapshot_to_dataframes",
    "load_snapshot_csv",
]
