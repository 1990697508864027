"""Pandas DataFrame adapters for snapshot tables."""

import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd  # type: ignore

from bookstore_analytics.foundation.records import (
    Book,
    Customer,
    MarketingSpend,
    Order,
    RetailSnapshot,
    SnapshotContract,
)
from ._utils import validate_frame

logger = logging.getLogger(__name__)

_CONTRACT = SnapshotContract()

# Identifiers and money are read as text so "007" stays "007" and Decimal conversion is exact.
_TEXT_COLUMNS = ("book_id", "customer_id", "order_id", "price", "cost")

CSV_TABLES = {
    "books": "books.csv",
    "customers": "customers.csv",
    "orders": "orders.csv",
    "marketing_spend": "marketing_spend.csv",
}


def _records(df: pd.DataFrame, table: str) -> list[dict]:
    required = SnapshotContract.REQUIRED_FIELDS[table]
    validate_frame(df, required, table)
    if df.empty:
        return []
    return df[list(required)].to_dict("records")


def dataframe_to_books(books_df: pd.DataFrame) -> List[Book]:
    """Convert a books DataFrame to validated :class:`Book` records.

    Args:
        books_df: DataFrame with columns book_id, title, author, genre,
            price, stock_qty

    Raises:
        ValueError: If columns are missing, contain nulls, or values are invalid
    """
    return _CONTRACT.validate_books(_records(books_df, "books"))


def dataframe_to_customers(customers_df: pd.DataFrame) -> List[Customer]:
    """Convert a customers DataFrame to validated :class:`Customer` records."""
    return _CONTRACT.validate_customers(_records(customers_df, "customers"))


def dataframe_to_orders(orders_df: pd.DataFrame) -> List[Order]:
    """Convert an orders DataFrame to validated :class:`Order` records."""
    return _CONTRACT.validate_orders(_records(orders_df, "orders"))


def dataframe_to_marketing_spend(spend_df: pd.DataFrame) -> List[MarketingSpend]:
    """Convert a marketing spend DataFrame to validated records."""
    return _CONTRACT.validate_marketing_spend(_records(spend_df, "marketing_spend"))


def snapshot_from_dataframes(
    books_df: pd.DataFrame,
    customers_df: pd.DataFrame,
    orders_df: pd.DataFrame,
    marketing_spend_df: Optional[pd.DataFrame] = None,
) -> RetailSnapshot:
    """Assemble a :class:`RetailSnapshot` from one DataFrame per table.

    Example:
        >>> snapshot = snapshot_from_dataframes(books_df, customers_df, orders_df)
        >>> len(snapshot.orders)
    """
    marketing_spend = (
        dataframe_to_marketing_spend(marketing_spend_df)
        if marketing_spend_df is not None
        else []
    )
    return RetailSnapshot(
        books=dataframe_to_books(books_df),
        customers=dataframe_to_customers(customers_df),
        orders=dataframe_to_orders(orders_df),
        marketing_spend=marketing_spend,
    )


def snapshot_to_dataframes(snapshot: RetailSnapshot) -> dict[str, pd.DataFrame]:
    """Return one DataFrame per snapshot table, keyed by table name.

    Money columns stay as strings to keep exact decimal values.
    """
    payload = snapshot.as_dict()
    frames: dict[str, pd.DataFrame] = {}
    for table, rows in payload.items():
        frames[table] = pd.DataFrame(
            rows, columns=list(SnapshotContract.REQUIRED_FIELDS[table])
        )
    return frames


def load_snapshot_csv(directory: Path) -> RetailSnapshot:
    """Load a snapshot from a directory of CSV files.

    Expects ``books.csv``, ``customers.csv`` and ``orders.csv``;
    ``marketing_spend.csv`` is read when present.

    Raises:
        FileNotFoundError: If a required table file is missing
    """
    directory = Path(directory)
    frames: dict[str, pd.DataFrame] = {}
    for table, filename in CSV_TABLES.items():
        path = directory / filename
        if not path.exists():
            if table == "marketing_spend":
                continue
            raise FileNotFoundError(f"Snapshot table not found: {path}")
        dtypes = {
            column: str
            for column in SnapshotContract.REQUIRED_FIELDS[table]
            if column in _TEXT_COLUMNS
        }
        frames[table] = pd.read_csv(path, dtype=dtypes)
        logger.info(f"Loaded {len(frames[table])} rows from {path}")

    return snapshot_from_dataframes(
        frames["books"],
        frames["customers"],
        frames["orders"],
        frames.get("marketing_spend"),
    )
