"""
Error handling helpers for fact-table processing.

Column checks for the DataFrames handed over by fact stores, and a
division helper for averages over possibly-empty groups.
"""
import inspect
from functools import wraps
from typing import Iterable, Callable, Optional
import pandas as pd
import numpy as np

from tower_atlas.utils.exceptions import DataValidationError


def require_columns(required_cols: Iterable[str], df_param: str = "df"):
    """
    Decorator to validate that a DataFrame argument carries required columns.

    Parameters
    ----------
    required_cols : Iterable[str]
        Column names that must be present
    df_param : str
        Name of the DataFrame parameter to check

    Raises
    ------
    DataValidationError
        If the parameter is missing, is not a DataFrame, or lacks columns
    """
    required = set(required_cols)

    def decorator(func: Callable) -> Callable:
        sig = inspect.signature(func)

        @wraps(func)
        def wrapper(*args, **kwargs):
            bound = sig.bind_partial(*args, **kwargs)
            df = bound.arguments.get(df_param)

            if df is None:
                raise DataValidationError(f"DataFrame parameter '{df_param}' not found")
            if not isinstance(df, pd.DataFrame):
                raise DataValidationError(
                    f"Parameter '{df_param}' must be a pandas DataFrame, got {type(df)}"
                )

            validate_columns_exist(df, required, df_name=df_param)
            return func(*args, **kwargs)
        return wrapper
    return decorator


def validate_columns_exist(
    df: pd.DataFrame,
    required_columns: Iterable[str],
    df_name: str = "DataFrame"
) -> None:
    """
    Validate that all required columns exist in a DataFrame.

    Raises
    ------
    DataValidationError
        If required columns are missing
    """
    missing_cols = set(required_columns) - set(df.columns)
    if missing_cols:
        raise DataValidationError(
            f"{df_name} missing required columns: {sorted(missing_cols)}. "
            f"Available columns: {sorted(df.columns.tolist())}",
            details={'missing': sorted(missing_cols)}
        )


def safe_division(numerator: float, denominator: float,
                  default: Optional[float] = 0.0) -> Optional[float]:
    """
    Divide two numbers, returning ``default`` on zero, null or non-finite results.
    """
    if denominator == 0 or pd.isna(denominator) or pd.isna(numerator):
        return default

    try:
        result = numerator / denominator
    except (ZeroDivisionError, ValueError, TypeError):
        return default

    if not np.isfinite(result):
        return default
    return float(result)
