"""Tests for database engine setup and initialization."""

from pathlib import Path

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from svcmap.infrastructure.database.engine import create_db_engine, init_database


class TestCreateDbEngine:
    def test_wal_mode_enabled(self, tmp_path: Path) -> None:
        engine = create_db_engine(tmp_path / "test.db")
        with engine.connect() as conn:
            assert conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"
        engine.dispose()

    def test_foreign_keys_enabled(self, tmp_path: Path) -> None:
        engine = create_db_engine(tmp_path / "test.db")
        with engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
        engine.dispose()

    def test_immediate_begin_takes_write_lock(self, tmp_path: Path) -> None:
        engine = create_db_engine(tmp_path / "test.db", busy_timeout=0.1)
        other = create_db_engine(tmp_path / "test.db", busy_timeout=0.1)
        try:
            with engine.connect() as conn:
                conn.execution_options(sqlite_begin="IMMEDIATE")
                with conn.begin(), other.connect() as conn2:
                    conn2.execution_options(sqlite_begin="IMMEDIATE")
                    with pytest.raises(OperationalError, match="locked"), conn2.begin():
                        pass
        finally:
            engine.dispose()
            other.dispose()


class TestInitDatabase:
    def test_creates_state_directory(self, tmp_path: Path) -> None:
        init_database(tmp_path).dispose()
        assert (tmp_path / ".svcmap").is_dir()
        assert (tmp_path / ".svcmap" / "catalog.db").exists()

    def test_custom_filename(self, tmp_path: Path) -> None:
        init_database(tmp_path, filename="other.db").dispose()
        assert (tmp_path / ".svcmap" / "other.db").exists()

    def test_creates_all_tables(self, db_engine: Engine) -> None:
        assert set(inspect(db_engine).get_table_names()) == {
            "services",
            "service_environments",
            "dependencies",
            "databases",
            "endpoints",
            "service_links",
            "service_dependencies",
            "service_db_links",
            "endpoint_dependencies",
            "endpoint_databases",
        }

    def test_idempotent(self, tmp_path: Path) -> None:
        init_database(tmp_path).dispose()
        engine = init_database(tmp_path)
        assert "services" in inspect(engine).get_table_names()
        engine.dispose()
