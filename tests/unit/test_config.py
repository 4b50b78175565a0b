"""
Tests for configuration management.
"""
import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from tower_atlas.utils.config import (
    AtlasConfig,
    CSVSourceConfig,
    GridConfig,
    LoggingConfig,
    PostgresSourceConfig,
    QueryConfig,
    get_default_config,
    load_config,
    save_config,
)
from tower_atlas.utils.exceptions import ConfigurationError


class TestGridConfig:
    """Tests for grid edge configuration."""

    def test_defaults(self):
        config = GridConfig()

        assert config.edge_for('coarse') == 1.0
        assert config.edge_for('medium') == 0.1
        assert config.edge_for('fine') == 0.01

    def test_edge_km(self):
        assert GridConfig().edge_km('medium') == pytest.approx(11.132)

    def test_edges_must_decrease(self):
        with pytest.raises(ValidationError):
            GridConfig(coarse_edge_deg=0.1, medium_edge_deg=0.1, fine_edge_deg=0.01)

    def test_edges_must_be_positive(self):
        with pytest.raises(ValidationError):
            GridConfig(fine_edge_deg=0.0)

    def test_unknown_resolution(self):
        with pytest.raises(KeyError):
            GridConfig().edge_for('ultra')


class TestQueryConfig:
    """Tests for query limits."""

    def test_defaults(self):
        config = QueryConfig()

        assert config.default_limit == 500
        assert config.max_limit == 5000

    def test_default_above_max(self):
        with pytest.raises(ValidationError):
            QueryConfig(default_limit=100, max_limit=10)


class TestSourceConfigs:
    """Tests for CSV and PostgreSQL source configuration."""

    def test_csv_file_paths(self, tmp_path):
        config = CSVSourceConfig(base_path=tmp_path)

        assert config.get_file_path('bands') == tmp_path / "tower_bands.csv"
        with pytest.raises(KeyError):
            config.get_file_path('sites')

    def test_csv_env_expansion(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ATLAS_DATA", str(tmp_path))

        config = CSVSourceConfig(base_path="${ATLAS_DATA}/facts")

        assert config.base_path == tmp_path / "facts"

    def test_postgres_connection_string(self, monkeypatch):
        monkeypatch.setenv("ATLAS_DB_PASSWORD", "secret")

        config = PostgresSourceConfig(
            host="db", database="towers", username="atlas", password="${ATLAS_DB_PASSWORD}"
        )

        assert config.get_connection_string() == "postgresql://atlas:secret@db:5432/towers"


class TestLoggingConfig:
    """Tests for logging configuration."""

    def test_level_upper_cased(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_level(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="verbose")


class TestLoadConfig:
    """Tests for load_config, save_config and get_default_config."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "atlas.yaml"
        path.write_text(
            "inputs:\n"
            "  source_type: csv\n"
            "  csv:\n"
            f"    base_path: {tmp_path}\n"
            "grid:\n"
            "  coarse_edge_deg: 2.0\n"
            "query:\n"
            "  default_limit: 100\n"
        )

        config = load_config(path)

        assert config.grid.coarse_edge_deg == 2.0
        assert config.grid.medium_edge_deg == 0.1
        assert config.query.default_limit == 100
        assert config.inputs.csv.base_path == tmp_path

    def test_load_json(self, tmp_path):
        path = tmp_path / "atlas.json"
        path.write_text(json.dumps({'logging': {'level': 'warning'}}))

        assert load_config(path).logging.level == "WARNING"

    def test_config_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "atlas.toml"
        path.write_text("x = 1")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "atlas.yaml"
        path.write_text("")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "atlas.yaml"
        path.write_text("grid:\n  fine_edge_deg: 5.0\n")

        with pytest.raises(ValidationError):
            load_config(path)

    def test_save_and_reload(self, tmp_path):
        config = AtlasConfig(query=QueryConfig(default_limit=50, max_limit=60))
        path = tmp_path / "saved" / "atlas.yaml"

        save_config(config, path)

        assert load_config(path).query.max_limit == 60

    def test_default_config(self, tmp_path):
        config = get_default_config(tmp_path)

        assert config.inputs.source_type == "csv"
        assert config.inputs.csv.base_path == tmp_path

    def test_example_config_loads(self, monkeypatch):
        """The shipped example configuration validates."""
        monkeypatch.setenv("TOWER_ATLAS_DB_HOST", "db.internal")
        path = Path(__file__).resolve().parents[2] / "config" / "example_config.yaml"

        config = load_config(path)

        assert config.inputs.source_type == "postgres"
        assert config.inputs.postgres.host == "db.internal"
