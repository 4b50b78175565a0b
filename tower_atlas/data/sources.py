"""
Fact store abstraction layer.

The aggregation core reads towers, carrier associations, cells and bands
through the FactStore interface only. Implementations:
- InMemoryFactStore: DataFrames supplied by the caller
- CSVFactStore: a directory of CSV files
- SQLFactStore: any SQLAlchemy engine (PostgreSQL in production),
  with bounds, filters and limits pushed down to SQL
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional, Tuple

import pandas as pd
import sqlalchemy as sa

from tower_atlas.data.loaders import load_fact_table, summarize_fact_table
from tower_atlas.data.schemas import Bounds, split_rats
from tower_atlas.utils.config import AtlasConfig, InputConfig, PostgresSourceConfig
from tower_atlas.utils.dtypes import (
    DTYPES_BY_TABLE,
    REQUIRED_COLUMNS,
    TOWER_DATE_COLUMNS,
    apply_dtypes,
)
from tower_atlas.utils.error_handling import validate_columns_exist
from tower_atlas.utils.exceptions import ConfigurationError, QueryError
from tower_atlas.utils.logging_config import get_logger

logger = get_logger(__name__)

FACT_TABLES = ('towers', 'tower_providers', 'cells', 'bands')

# (mcc, mnc)
CarrierCode = Tuple[int, int]


def _check_limit(limit: Optional[int]) -> None:
    if limit is not None and limit < 0:
        raise QueryError(f"limit must be non-negative, got {limit}", parameter="limit")


class FactStore(ABC):
    """Read-only access to tower inventory facts."""

    @abstractmethod
    def load_towers(
        self,
        bounds: Optional[Bounds] = None,
        limit: Optional[int] = None,
        rat: Optional[str] = None,
        carrier: Optional[CarrierCode] = None,
    ) -> pd.DataFrame:
        """Towers inside ``bounds`` ordered by tower_id ascending, at most ``limit`` rows."""
        pass

    @abstractmethod
    def count_towers(
        self,
        bounds: Optional[Bounds] = None,
        rat: Optional[str] = None,
        carrier: Optional[CarrierCode] = None,
    ) -> int:
        """Number of towers matching the same filters as load_towers, ignoring any limit."""
        pass

    @abstractmethod
    def load_tower_providers(self, tower_ids: Optional[Iterable[int]] = None) -> pd.DataFrame:
        """Tower/carrier associations, optionally restricted to ``tower_ids``."""
        pass

    @abstractmethod
    def load_cells(self, tower_ids: Optional[Iterable[int]] = None) -> pd.DataFrame:
        """Radio cells, optionally restricted to ``tower_ids``."""
        pass

    @abstractmethod
    def load_bands(self, tower_ids: Optional[Iterable[int]] = None) -> pd.DataFrame:
        """Band allocations, optionally restricted to ``tower_ids``."""
        pass


class FrameFactStore(FactStore):
    """FactStore over whole tables held as DataFrames; filtering runs in pandas."""

    @abstractmethod
    def _table(self, name: str) -> pd.DataFrame:
        pass

    def _matching_towers(self, bounds, rat, carrier) -> pd.DataFrame:
        towers = self._table('towers')

        if bounds is not None:
            lat = pd.to_numeric(towers['latitude'], errors='coerce')
            lng = pd.to_numeric(towers['longitude'], errors='coerce')
            towers = towers[bounds.contains_mask(lat, lng).fillna(False)]

        if rat is not None:
            wanted = rat.strip().upper()
            if 'rat' in towers.columns:
                towers = towers[towers['rat'].map(lambda v: wanted in split_rats(v)).astype(bool)]
            else:
                # No RAT facts: no tower can be shown to serve the requested RAT
                towers = towers.iloc[0:0]

        if carrier is not None:
            providers = self._table('tower_providers')
            mcc, mnc = carrier
            mask = ((providers['mcc'] == mcc) & (providers['mnc'] == mnc)).fillna(False)
            matched = providers[mask.astype(bool)]
            if 'visible' in matched.columns:
                matched = matched[matched['visible'].fillna(True).astype(bool)]
            towers = towers[towers['tower_id'].isin(matched['tower_id'])]

        return towers.sort_values('tower_id', kind='mergesort')

    def load_towers(self, bounds=None, limit=None, rat=None, carrier=None) -> pd.DataFrame:
        _check_limit(limit)
        towers = self._matching_towers(bounds, rat, carrier)
        if limit is not None:
            towers = towers.head(limit)
        return towers.reset_index(drop=True)

    def count_towers(self, bounds=None, rat=None, carrier=None) -> int:
        return int(len(self._matching_towers(bounds, rat, carrier)))

    def _by_tower(self, name: str, tower_ids) -> pd.DataFrame:
        df = self._table(name)
        if tower_ids is not None:
            df = df[df['tower_id'].isin(list(tower_ids))]
        return df.reset_index(drop=True)

    def load_tower_providers(self, tower_ids=None) -> pd.DataFrame:
        return self._by_tower('tower_providers', tower_ids)

    def load_cells(self, tower_ids=None) -> pd.DataFrame:
        return self._by_tower('cells', tower_ids)

    def load_bands(self, tower_ids=None) -> pd.DataFrame:
        return self._by_tower('bands', tower_ids)


def _where(stmt, clauses: list):
    """Apply filter clauses to a select, if any."""
    return stmt.where(*clauses) if clauses else stmt


def _empty_table(name: str) -> pd.DataFrame:
    columns = list(DTYPES_BY_TABLE[name])
    if name == 'towers':
        columns += TOWER_DATE_COLUMNS
    return apply_dtypes(pd.DataFrame(columns=columns), name)


class InMemoryFactStore(FrameFactStore):
    """
    Fact store over caller-supplied DataFrames.

    Example:
        >>> store = InMemoryFactStore(towers=towers_df, tower_providers=providers_df)
        >>> store.count_towers(Bounds(min_lat=40, max_lat=41, min_lng=-75, max_lng=-73))
        12
    """

    def __init__(
        self,
        towers: pd.DataFrame,
        tower_providers: Optional[pd.DataFrame] = None,
        cells: Optional[pd.DataFrame] = None,
        bands: Optional[pd.DataFrame] = None,
    ):
        supplied = {
            'towers': towers,
            'tower_providers': tower_providers,
            'cells': cells,
            'bands': bands,
        }
        self._tables: Dict[str, pd.DataFrame] = {}
        for name, df in supplied.items():
            if df is None:
                self._tables[name] = _empty_table(name)
                continue
            validate_columns_exist(df, REQUIRED_COLUMNS[name], df_name=name)
            self._tables[name] = apply_dtypes(df, name)

        logger.debug(
            "memory_store_initialized",
            **{f"{name}_rows": len(df) for name, df in self._tables.items()}
        )

    def _table(self, name: str) -> pd.DataFrame:
        return self._tables[name]


class CSVFactStore(FrameFactStore):
    """Fact store reading CSV files from one directory, cached per table."""

    def __init__(self, config: InputConfig, validate: bool = True):
        self.config = config.csv
        self.validate = validate
        self._cache: Dict[str, pd.DataFrame] = {}

        logger.info(
            "csv_store_initialized",
            base_path=str(self.config.base_path),
            files=list(self.config.files.keys())
        )

    def _table(self, name: str) -> pd.DataFrame:
        if name in self._cache:
            return self._cache[name]

        file_path = self.config.get_file_path(name)
        if name != 'towers' and not file_path.exists():
            logger.warning("optional_table_missing", table=name, path=str(file_path))
            df = _empty_table(name)
        else:
            df = load_fact_table(file_path, name, validate=self.validate)
            logger.debug("fact_table_summary", **summarize_fact_table(df, name))

        self._cache[name] = df
        return df

    def clear_cache(self):
        """Clear all cached tables."""
        self._cache.clear()
        logger.info("cache_cleared")


class SQLFactStore(FactStore):
    """
    Fact store backed by a SQL database through SQLAlchemy.

    Bounds, RAT and carrier filters, ordering and limits run in the
    database, so only the requested page of towers is transferred.
    """

    def __init__(self, engine: sa.engine.Engine, tables: Optional[Dict[str, str]] = None):
        self.engine = engine
        self.table_names = dict(tables or PostgresSourceConfig().tables)
        self._metadata = sa.MetaData()
        self._reflected: Dict[str, sa.Table] = {}

        logger.info(
            "sql_store_initialized",
            dialect=engine.dialect.name,
            tables=list(self.table_names.keys())
        )

    @classmethod
    def from_config(cls, config: PostgresSourceConfig) -> 'SQLFactStore':
        """Create a store from PostgreSQL connection settings."""
        engine = sa.create_engine(config.get_connection_string())
        logger.info("postgres_engine_created", host=config.host, database=config.database)
        return cls(engine, tables=config.tables)

    def _sa_table(self, name: str) -> sa.Table:
        if name not in self._reflected:
            table_name = self.table_names.get(name)
            if not table_name:
                raise ConfigurationError(f"Table not configured for: {name}")
            self._reflected[name] = sa.Table(table_name, self._metadata, autoload_with=self.engine)
        return self._reflected[name]

    def _read(self, stmt, name: str) -> pd.DataFrame:
        with self.engine.connect() as conn:
            df = pd.read_sql(stmt, conn)
        logger.debug("sql_rows_loaded", table=name, rows=len(df))
        return apply_dtypes(df, name)

    def _tower_filters(self, bounds, rat, carrier) -> list:
        towers = self._sa_table('towers')
        clauses = []

        if bounds is not None:
            clauses.append(towers.c.latitude.between(bounds.min_lat, bounds.max_lat))
            clauses.append(towers.c.longitude.between(bounds.min_lng, bounds.max_lng))

        if rat is not None and 'rat' not in towers.c:
            clauses.append(sa.false())
        elif rat is not None:
            token = rat.strip().upper()
            col = sa.func.upper(sa.func.replace(towers.c.rat, ' ', ''))
            clauses.append(sa.or_(
                col == token,
                col.like(f"{token},%"),
                col.like(f"%,{token}"),
                col.like(f"%,{token},%"),
            ))

        if carrier is not None:
            providers = self._sa_table('tower_providers')
            mcc, mnc = carrier
            conditions = [providers.c.mcc == mcc, providers.c.mnc == mnc]
            if 'visible' in providers.c:
                conditions.append(sa.or_(providers.c.visible.is_(None), providers.c.visible == sa.true()))
            clauses.append(
                towers.c.tower_id.in_(sa.select(providers.c.tower_id).where(*conditions))
            )

        return clauses

    def load_towers(self, bounds=None, limit=None, rat=None, carrier=None) -> pd.DataFrame:
        _check_limit(limit)
        towers = self._sa_table('towers')
        stmt = _where(sa.select(towers), self._tower_filters(bounds, rat, carrier))
        stmt = stmt.order_by(towers.c.tower_id)
        if limit is not None:
            stmt = stmt.limit(limit)
        return self._read(stmt, 'towers')

    def count_towers(self, bounds=None, rat=None, carrier=None) -> int:
        towers = self._sa_table('towers')
        stmt = _where(
            sa.select(sa.func.count()).select_from(towers),
            self._tower_filters(bounds, rat, carrier),
        )
        with self.engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())

    def _by_tower(self, name: str, tower_ids) -> pd.DataFrame:
        table = self._sa_table(name)
        stmt = sa.select(table)
        if tower_ids is not None:
            stmt = stmt.where(table.c.tower_id.in_([int(t) for t in tower_ids]))
        return self._read(stmt, name)

    def load_tower_providers(self, tower_ids=None) -> pd.DataFrame:
        return self._by_tower('tower_providers', tower_ids)

    def load_cells(self, tower_ids=None) -> pd.DataFrame:
        return self._by_tower('cells', tower_ids)

    def load_bands(self, tower_ids=None) -> pd.DataFrame:
        return self._by_tower('bands', tower_ids)


def create_fact_store(config: AtlasConfig, **frames: Any) -> FactStore:
    """
    Factory for the fact store selected by ``config.inputs.source_type``.

    ``frames`` supplies the DataFrames for the 'memory' source type.

    Example:
        >>> from tower_atlas.utils.config import load_config
        >>> store = create_fact_store(load_config(Path("config/atlas.yaml")))
        >>> towers = store.load_towers(limit=10)
    """
    source_type = config.inputs.source_type

    if source_type == "csv":
        return CSVFactStore(config.inputs)
    elif source_type == "postgres":
        if not config.inputs.postgres.enabled:
            raise ConfigurationError("PostgreSQL source selected but not enabled in config")
        if not config.inputs.postgres.database:
            raise ConfigurationError("PostgreSQL database name required")
        return SQLFactStore.from_config(config.inputs.postgres)
    elif source_type == "memory":
        if 'towers' not in frames:
            raise ConfigurationError("In-memory source requires a towers DataFrame")
        return InMemoryFactStore(**frames)

    raise ConfigurationError(f"Unknown source type: {source_type}")
