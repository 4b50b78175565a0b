"""
Fact table loading with validation.

Reads one fact table from CSV, applies the declared dtypes, checks the
required columns and optionally screens every row against its record
schema, dropping invalid rows.
"""
from pathlib import Path
from typing import List, Optional, Tuple, Type

import pandas as pd
from pydantic import BaseModel, ValidationError

from tower_atlas.data.schemas import RECORD_SCHEMAS
from tower_atlas.utils.dtypes import REQUIRED_COLUMNS, apply_dtypes
from tower_atlas.utils.error_handling import validate_columns_exist
from tower_atlas.utils.exceptions import DataLoadError, DataValidationError
from tower_atlas.utils.logging_config import get_logger

logger = get_logger(__name__)

# Share of invalid rows above which a table is rejected outright
MAX_ERROR_RATE = 0.10


def load_fact_table(
    file_path: Path,
    table: str,
    validate: bool = True,
    max_error_rate: float = MAX_ERROR_RATE,
) -> pd.DataFrame:
    """
    Load and validate one fact table from CSV.

    Args:
        file_path: Path to the CSV file
        table: Table name ('towers', 'tower_providers', 'cells', 'bands')
        validate: Screen rows against the table's record schema
        max_error_rate: Fail if more than this share of rows is invalid

    Returns:
        DataFrame with typed columns; invalid rows removed when validating

    Raises:
        DataLoadError: If the file is missing or unreadable
        DataValidationError: If required columns are missing or too many rows are invalid

    Example:
        >>> towers = load_fact_table(Path("data/towers.csv"), "towers")
        >>> len(towers)
        48211
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise DataLoadError(f"{table} file not found: {file_path}")

    logger.info("loading_fact_table", table=table, file=str(file_path))

    try:
        df = pd.read_csv(file_path)
    except Exception as e:
        raise DataLoadError(f"Failed to read {table} CSV: {e}") from e

    validate_columns_exist(df, REQUIRED_COLUMNS.get(table, set()), df_name=table)
    df = apply_dtypes(df, table)
    logger.info("fact_table_loaded", table=table, rows=len(df), columns=len(df.columns))

    if validate and table in RECORD_SCHEMAS and len(df) > 0:
        row_count = len(df)
        df, validation_errors = validate_dataframe(df, RECORD_SCHEMAS[table])

        if validation_errors:
            error_rate = len(validation_errors) / row_count
            logger.warning(
                "fact_table_validation_errors",
                table=table,
                total_rows=row_count,
                invalid_rows=len(validation_errors),
                error_rate=f"{error_rate:.2%}"
            )

            if error_rate > max_error_rate:
                raise DataValidationError(
                    f"{table} validation failed: {len(validation_errors)} invalid rows",
                    invalid_rows=len(validation_errors),
                    details={
                        'total_rows': row_count,
                        'error_rate': error_rate,
                        'sample_errors': validation_errors[:5],
                    }
                )

    return df


def validate_dataframe(
    df: pd.DataFrame,
    schema_class: Type[BaseModel],
) -> Tuple[pd.DataFrame, List[dict]]:
    """
    Validate DataFrame rows against a pydantic schema.

    Returns:
        Tuple of (valid_rows_df, list_of_validation_errors)
    """
    validation_errors = []
    valid_indices = []

    plain = df.astype(object).where(df.notna(), None)
    for idx, row_dict in zip(plain.index, plain.to_dict('records')):
        try:
            schema_class(**row_dict)
            valid_indices.append(idx)
        except ValidationError as e:
            validation_errors.append({
                'row_index': idx,
                'errors': e.errors(include_url=False),
                'row_sample': {k: row_dict.get(k) for k in list(row_dict.keys())[:5]},
            })

    return df.loc[valid_indices].copy(), validation_errors


def summarize_fact_table(df: pd.DataFrame, table: str) -> dict:
    """
    Summary statistics for a loaded fact table.
    """
    summary = {
        'table': table,
        'total_rows': len(df),
        'columns': list(df.columns),
    }

    if table == 'towers':
        summary.update({
            'unique_towers': df['tower_id'].nunique() if 'tower_id' in df.columns else None,
            'endc_towers': int(df['endc_available'].fillna(False).sum())
            if 'endc_available' in df.columns else None,
        })
    elif table == 'cells':
        summary.update({
            'unique_towers': df['tower_id'].nunique() if 'tower_id' in df.columns else None,
            'cells_with_bearing': int(df['bearing'].notna().sum()) if 'bearing' in df.columns else None,
        })
    elif table == 'bands':
        summary.update({
            'unique_bands': df['band_number'].nunique() if 'band_number' in df.columns else None,
        })

    return summary
