"""
Custom exception hierarchy for Tower Atlas.

All custom exceptions inherit from TowerAtlasError for easy catching.
"""


class TowerAtlasError(Exception):
    """Base exception for all Tower Atlas errors."""
    pass


class ConfigurationError(TowerAtlasError):
    """Configuration-related errors.

    Raised when configuration loading or validation fails.

    Example:
        >>> raise ConfigurationError("Grid edges must decrease from coarse to fine")
    """
    pass


class DataValidationError(TowerAtlasError):
    """Data validation errors.

    Raised when fact tables fail structural checks (e.g. missing columns).

    Attributes:
        invalid_rows: Number of rows that failed validation
        details: Dictionary with validation error details
    """

    def __init__(self, message: str, invalid_rows: int = 0, details: dict = None):
        super().__init__(message)
        self.invalid_rows = invalid_rows
        self.details = details or {}

    def __str__(self):
        base = super().__str__()
        if self.invalid_rows > 0:
            return f"{base} (invalid_rows={self.invalid_rows})"
        return base


class DataLoadError(TowerAtlasError):
    """Data loading errors.

    Raised by a fact store when its backing files or tables cannot be read.

    Example:
        >>> raise DataLoadError("Towers file not found: data/towers.csv")
    """
    pass


class QueryError(TowerAtlasError):
    """Invalid query parameters.

    Attributes:
        parameter: Name of the offending parameter
    """

    def __init__(self, message: str, parameter: str = None):
        super().__init__(message)
        self.parameter = parameter

    def __str__(self):
        base = super().__str__()
        if self.parameter:
            return f"{base} (parameter={self.parameter})"
        return base
