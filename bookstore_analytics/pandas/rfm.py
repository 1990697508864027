"""Pandas DataFrame adapters for RFM segmentation."""

from typing import List, Optional, Sequence

import pandas as pd  # type: ignore

from bookstore_analytics.foundation.rfm import (
    DEFAULT_CONFIG,
    RFMConfig,
    RFMScore,
    Segment,
    calculate_rfm_segmentation,
)
from ._utils import decimal_to_float, float_to_decimal, validate_frame
from .snapshot import snapshot_from_dataframes

RFM_SCORE_COLUMNS = [
    "customer_id",
    "name",
    "recency_score",
    "frequency_score",
    "monetary_score",
    "rfm_total",
    "customer_segment",
    "last_purchase_date",
    "purchase_frequency",
    "total_spent",
]


def rfm_scores_to_dataframe(rfm_scores: Sequence[RFMScore]) -> pd.DataFrame:
    """Convert RFM scores to a pandas DataFrame.

    Row order is preserved, so the output of
    :func:`calculate_rfm_segmentation` stays ordered by rfm_total descending.

    Args:
        rfm_scores: Sequence of RFMScore objects

    Returns:
        DataFrame with columns listed in ``RFM_SCORE_COLUMNS``; segments are
        plain strings and total_spent is a float

    Example:
        >>> scores = calculate_rfm_segmentation(snapshot)
        >>> df = rfm_scores_to_dataframe(scores)
        >>> df[df["customer_segment"] == "Champions"]
    """
    if not rfm_scores:
        return pd.DataFrame(columns=RFM_SCORE_COLUMNS)

    rows = [
        {
            "customer_id": s.customer_id,
            "name": s.name,
            "recency_score": s.recency_score,
            "frequency_score": s.frequency_score,
            "monetary_score": s.monetary_score,
            "rfm_total": s.rfm_total,
            "customer_segment": Segment(s.customer_segment).value,
            "last_purchase_date": s.last_purchase_date,
            "purchase_frequency": s.purchase_frequency,
            "total_spent": decimal_to_float(s.total_spent),
        }
        for s in rfm_scores
    ]
    return pd.DataFrame(rows, columns=RFM_SCORE_COLUMNS)


def dataframe_to_rfm_scores(scores_df: pd.DataFrame) -> List[RFMScore]:
    """Convert a DataFrame produced by :func:`rfm_scores_to_dataframe` back to records.

    Raises:
        ValueError: If columns are missing, contain nulls, or scores are invalid
    """
    validate_frame(scores_df, RFM_SCORE_COLUMNS, "RFM scores")
    if scores_df.empty:
        return []

    scores = []
    for record in scores_df.to_dict("records"):
        scores.append(
            RFMScore(
                customer_id=str(record["customer_id"]),
                name=str(record["name"]),
                last_purchase_date=pd.to_datetime(record["last_purchase_date"]).date(),
                purchase_frequency=int(record["purchase_frequency"]),
                total_spent=float_to_decimal(float(record["total_spent"])),
                recency_score=int(record["recency_score"]),
                frequency_score=int(record["frequency_score"]),
                monetary_score=int(record["monetary_score"]),
                rfm_total=int(record["rfm_total"]),
                customer_segment=Segment(record["customer_segment"]),
            )
        )
    return scores


def calculate_rfm_segmentation_df(
    books_df: pd.DataFrame,
    customers_df: pd.DataFrame,
    orders_df: pd.DataFrame,
    config: RFMConfig = DEFAULT_CONFIG,
    marketing_spend_df: Optional[pd.DataFrame] = None,
) -> pd.DataFrame:
    """Run RFM segmentation on DataFrames and return the scores as a DataFrame.

    Convenience function that combines conversion and calculation.

    Args:
        books_df: Books table
        customers_df: Customers table
        orders_df: Orders table
        config: Scoring configuration
        marketing_spend_df: Optional marketing spend table (validated, not scored)

    Returns:
        DataFrame of RFM scores ordered by rfm_total descending

    Raises:
        ReferentialIntegrityError: If an order references an unknown customer or book
    """
    snapshot = snapshot_from_dataframes(
        books_df, customers_df, orders_df, marketing_spend_df
    )
    return rfm_scores_to_dataframe(calculate_rfm_segmentation(snapshot, config))
