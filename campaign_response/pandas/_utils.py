"""Shared utilities for pandas conversion operations."""

from decimal import Decimal
from numbers import Real
from typing import Sequence

import pandas as pd  # type: ignore


def to_float(value) -> float:
    """Convert a numeric cell (including Decimal) to float.

    Parquet DECIMAL columns arrive as ``Decimal`` objects; the record
    types store money as float.

    Raises:
        TypeError: If value is not numeric

    Example:
        >>> to_float(Decimal("12.50"))
        12.5
    """
    if isinstance(value, bool) or not isinstance(value, (Real, Decimal)):
        raise TypeError(f"Expected numeric type, got {type(value)}")
    return float(value)


def require_complete(
    df: pd.DataFrame, required_cols: Sequence[str], what: str
) -> None:
    """Validate required columns exist and hold no nulls.

    Raises:
        ValueError: If a column is missing or has null values
    """
    missing_cols = set(required_cols) - set(df.columns)
    if missing_cols:
        raise ValueError(f"DataFrame missing required columns: {missing_cols}")

    if df.empty:
        return

    null_cols = df[list(required_cols)].isnull().any()
    if null_cols.any():
        null_col_names = null_cols[null_cols].index.tolist()
        raise ValueError(
            f"Null/NaN values found in columns: {null_col_names}. "
            f"{what} require complete data."
        )
