"""Shared utilities for pandas conversion operations."""

from decimal import Decimal
from typing import Sequence

import pandas as pd  # type: ignore


def decimal_to_float(value: Decimal) -> float:
    """Convert Decimal to float for pandas compatibility."""
    return float(value)


def float_to_decimal(value: float) -> Decimal:
    """Convert float to Decimal, avoiding binary representation noise.

    Args:
        value: Float value to convert

    Returns:
        Decimal representation of the float

    Raises:
        TypeError: If value is not numeric

    Example:
        >>> float_to_decimal(12.99)
        Decimal('12.99')
    """
    if not isinstance(value, (int, float)):
        raise TypeError(f"Expected numeric type, got {type(value)}")
    return Decimal(str(value))


def validate_frame(df: pd.DataFrame, required_cols: Sequence[str], table: str) -> None:
    """Ensure ``df`` has ``required_cols`` and no nulls in them.

    Raises:
        ValueError: If columns are missing or contain null/NaN values
    """
    missing_cols = set(required_cols) - set(df.columns)
    if missing_cols:
        raise ValueError(
            f"{table} DataFrame missing required columns: {sorted(missing_cols)}"
        )

    if df.empty:
        return

    null_cols = df[list(required_cols)].isnull().any()
    if null_cols.any():
        null_col_names = null_cols[null_cols].index.tolist()
        raise ValueError(
            f"Null/NaN values found in {table} columns: {null_col_names}. "
            "Snapshot tables require complete data."
        )
