"""
Configuration for Tower Atlas.

Supports JSON or YAML configuration with:
- Fact store selection (CSV directory, PostgreSQL, in-memory)
- Grid edge lengths for the coarse/medium/fine aggregation tiers
- Query limits for the raw-tower tier
- Logging options
"""

import json
import os
import re
from pathlib import Path
from typing import Optional, Dict, Literal
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from tower_atlas.utils.exceptions import ConfigurationError


# Kilometres per degree of latitude (mean); only used to describe grid edges
KM_PER_DEGREE = 111.32


class GridConfig(BaseModel):
    """Grid edge lengths (decimal degrees) for each aggregation tier.

    Defaults approximate 100 km / 10 km / 1 km cells at the equator.
    """
    coarse_edge_deg: float = Field(1.0, gt=0.0, le=90.0, description="Coarse tier edge (~100 km)")
    medium_edge_deg: float = Field(0.1, gt=0.0, le=90.0, description="Medium tier edge (~10 km)")
    fine_edge_deg: float = Field(0.01, gt=0.0, le=90.0, description="Fine tier edge (~1 km)")

    @model_validator(mode='after')
    def validate_ordering(self):
        """Edges must shrink from coarse to fine."""
        if not (self.coarse_edge_deg > self.medium_edge_deg > self.fine_edge_deg):
            raise ValueError(
                "Grid edges must strictly decrease: "
                f"coarse={self.coarse_edge_deg}, medium={self.medium_edge_deg}, "
                f"fine={self.fine_edge_deg}"
            )
        return self

    def edge_for(self, resolution: str) -> float:
        """Edge length in degrees for a resolution name ('coarse', 'medium', 'fine')."""
        key = getattr(resolution, 'value', resolution)
        edges = {
            'coarse': self.coarse_edge_deg,
            'medium': self.medium_edge_deg,
            'fine': self.fine_edge_deg,
        }
        if key not in edges:
            raise KeyError(f"Unknown resolution: {key}. Available: {list(edges.keys())}")
        return edges[key]

    def edge_km(self, resolution: str) -> float:
        """Approximate edge length in kilometres."""
        return self.edge_for(resolution) * KM_PER_DEGREE


class QueryConfig(BaseModel):
    """Limits for raw-tower queries."""
    default_limit: int = Field(500, ge=1, description="Rows returned when no limit is given")
    max_limit: int = Field(5000, ge=1, description="Hard cap on requested limits")

    @model_validator(mode='after')
    def validate_limits(self):
        if self.default_limit > self.max_limit:
            raise ValueError(
                f"default_limit ({self.default_limit}) exceeds max_limit ({self.max_limit})"
            )
        return self


class CSVSourceConfig(BaseModel):
    """Configuration for a directory of CSV fact tables."""
    base_path: Path
    files: Dict[str, str] = Field(
        default_factory=lambda: {
            "towers": "towers.csv",
            "tower_providers": "tower_providers.csv",
            "cells": "cells.csv",
            "bands": "tower_bands.csv",
        }
    )

    @field_validator('base_path', mode='before')
    @classmethod
    def expand_path(cls, v):
        if isinstance(v, str):
            return Path(_expand_env_vars(v))
        return v

    def get_file_path(self, file_key: str) -> Path:
        """Get full path to a fact table file."""
        if file_key not in self.files:
            raise KeyError(f"Unknown file key: {file_key}. Available: {list(self.files.keys())}")
        return self.base_path / self.files[file_key]


class PostgresSourceConfig(BaseModel):
    """Configuration for a PostgreSQL fact store."""
    enabled: bool = False
    host: str = "localhost"
    port: int = 5432
    database: str = ""
    username: str = ""
    password: str = ""
    tables: Dict[str, str] = Field(
        default_factory=lambda: {
            "towers": "towers",
            "tower_providers": "tower_providers",
            "cells": "cells",
            "bands": "tower_bands",
        }
    )

    @field_validator('host', 'database', 'username', 'password', mode='before')
    @classmethod
    def expand_env(cls, v):
        if isinstance(v, str):
            return _expand_env_vars(v)
        return v

    def get_connection_string(self) -> str:
        """Build a SQLAlchemy PostgreSQL URL."""
        return f"postgresql://{self.username}:{self.password}@{self.host}:{self.port}/{self.database}"


class InputConfig(BaseModel):
    """Fact store selection."""
    source_type: Literal["csv", "postgres", "memory"] = "csv"
    csv: CSVSourceConfig = Field(default_factory=lambda: CSVSourceConfig(base_path=Path(".")))
    postgres: PostgresSourceConfig = Field(default_factory=PostgresSourceConfig)


class LoggingConfig(BaseModel):
    """Logging options passed to configure_logging."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = False
    file: Optional[Path] = None

    @field_validator('level', mode='before')
    @classmethod
    def upper_level(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v


class AtlasConfig(BaseModel):
    """Complete Tower Atlas configuration."""
    version: str = "1.0"
    inputs: InputConfig = Field(default_factory=InputConfig)
    grid: GridConfig = Field(default_factory=GridConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _expand_env_vars(value: str) -> str:
    """Expand ${VAR} references from the environment."""
    pattern = r'\$\{([^}]+)\}'

    def replace_var(match):
        return os.environ.get(match.group(1), '')

    return re.sub(pattern, replace_var, value)


def load_config(config_path: Path) -> AtlasConfig:
    """
    Load and validate configuration from a JSON or YAML file.

    Args:
        config_path: Path to a .json, .yaml or .yml file

    Returns:
        Validated AtlasConfig

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigurationError: If the file type is unsupported or empty
        ValidationError: If config validation fails

    Example:
        >>> config = load_config(Path("config/atlas.yaml"))
        >>> config.grid.medium_edge_deg
        0.1
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()
    with open(config_path, 'r') as f:
        if suffix == '.json':
            config_dict = json.load(f)
        elif suffix in ('.yaml', '.yml'):
            config_dict = yaml.safe_load(f)
        else:
            raise ConfigurationError(f"Unsupported config file type: {config_path.suffix}")

    if not isinstance(config_dict, dict):
        raise ConfigurationError(f"Config file is empty or not a mapping: {config_path}")

    return AtlasConfig(**config_dict)


def get_default_config(data_dir: Optional[Path] = None) -> AtlasConfig:
    """
    Default configuration, reading CSV facts from ``data_dir`` (cwd if omitted).
    """
    return AtlasConfig(
        inputs=InputConfig(
            source_type="csv",
            csv=CSVSourceConfig(base_path=data_dir or Path(".")),
        ),
    )


def save_config(config: AtlasConfig, config_path: Path) -> None:
    """
    Save configuration as JSON or YAML, chosen by file suffix.
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = config.model_dump(mode='json')

    with open(config_path, 'w') as f:
        if config_path.suffix.lower() in ('.yaml', '.yml'):
            yaml.safe_dump(config_dict, f, sort_keys=False)
        else:
            json.dump(config_dict, f, indent=2)
