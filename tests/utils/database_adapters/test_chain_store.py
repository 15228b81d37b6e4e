#!/usr/bin/env python3
"""
Tests for the ChainStorePostgreSqlAdapter.

The connection pool is mocked, so these tests check which statements are
issued and how connections and transactions are handled, not PostgreSQL itself.
"""

import psycopg2
from psycopg2.pool import PoolError
import pytest
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

from models.chain.chain_learner import ChainLearner
from models.chain.errors import StorageError
from utils.database_adapters.postgresql.chain_store import ChainStorePostgreSqlAdapter

DB_CONFIG = {
    "host": "localhost",
    "port": 5432,
    "dbname": "wordchain_test",
    "user": "postgres",
    "password": "",
    "min_connections": 1,
    "max_connections": 4,
    "pool_timeout": 5,
}

POOL_PATH = "utils.database_adapters.postgresql.chain_store.BlockingThreadedConnectionPool"


@pytest.fixture
def mock_pool():
    """Patch the pool class and return the pool instance the adapter will use"""
    with patch(POOL_PATH) as pool_class:
        pool = pool_class.return_value
        conn = MagicMock()
        pool.getconn.return_value = conn
        pool.pool_class = pool_class
        yield pool


@pytest.fixture
def conn(mock_pool):
    return mock_pool.getconn.return_value


@pytest.fixture
def cursor(conn):
    return conn.cursor.return_value.__enter__.return_value


@pytest.fixture
def adapter(mock_pool, mock_logger):
    return ChainStorePostgreSqlAdapter(
        environment="test", logger=mock_logger, db_config=dict(DB_CONFIG))


def executed_sql(cursor):
    return " ".join(call_args[0][0] for call_args in cursor.execute.call_args_list)


class TestInitialization:

    def test_pool_created_from_config(self, adapter, mock_pool):
        assert adapter.is_usable()
        assert adapter.texts_table == "wordchain_test_texts"
        assert adapter.entries_table == "wordchain_test_chain_entries"

        args, kwargs = mock_pool.pool_class.call_args
        assert args == (1, 4)
        assert kwargs["dbname"] == "wordchain_test"
        assert kwargs["timeout"] == 5

    def test_missing_required_param(self, mock_pool, mock_logger):
        config = dict(DB_CONFIG, dbname=None)
        adapter = ChainStorePostgreSqlAdapter(
            environment="test", logger=mock_logger, db_config=config)

        assert not adapter.is_usable()
        mock_pool.pool_class.assert_not_called()
        mock_logger.warning.assert_called()

    def test_connection_failure_marks_unusable(self, mock_logger):
        with patch(POOL_PATH, side_effect=psycopg2.OperationalError("refused")):
            adapter = ChainStorePostgreSqlAdapter(
                environment="test", logger=mock_logger, db_config=dict(DB_CONFIG))

        assert not adapter.is_usable()
        with pytest.raises(StorageError, match="not available"):
            adapter.record_text("hello")

    def test_invalid_environment_name(self, mock_pool):
        with pytest.raises(ValueError, match="Invalid environment name"):
            ChainStorePostgreSqlAdapter(environment="test; DROP TABLE x", db_config=dict(DB_CONFIG))

    def test_config_loaded_from_settings(self, mock_pool):
        with patch("utils.database_adapters.postgresql.chain_store.load_settings",
                   return_value={"database": dict(DB_CONFIG)}) as load:
            adapter = ChainStorePostgreSqlAdapter(environment="test")

        load.assert_called_once_with("test", logger=None)
        assert adapter.is_usable()


class TestOperations:

    def test_record_text(self, adapter, mock_pool, conn, cursor):
        adapter.record_text("the cat sat")

        query, params = cursor.execute.call_args[0]
        assert "INSERT INTO wordchain_test_texts (content)" in query
        assert params == ("the cat sat",)
        conn.commit.assert_called_once()
        mock_pool.putconn.assert_called_once_with(conn)

    def test_increment_edge_is_single_upsert(self, adapter, conn, cursor):
        adapter.increment_edge("", "the")

        assert cursor.execute.call_count == 1
        query, params = cursor.execute.call_args[0]
        assert 'INSERT INTO wordchain_test_chain_entries ("from", "to", count)' in query
        assert 'ON CONFLICT ("from", "to") DO UPDATE' in query
        assert "SET count = wordchain_test_chain_entries.count + 1" in query
        assert params == ("", "the")
        conn.commit.assert_called_once()

    def test_edges_from(self, adapter, cursor):
        cursor.fetchall.return_value = [("cat", 3), ("dog", 1)]

        assert adapter.edges_from("the") == [("cat", 3), ("dog", 1)]
        query, params = cursor.execute.call_args[0]
        assert 'WHERE "from" = %s' in query
        assert params == ("the",)

    def test_edges_from_empty(self, adapter, cursor):
        cursor.fetchall.return_value = []
        assert adapter.edges_from("nothing") == []

    def test_length_stats(self, adapter, cursor):
        cursor.fetchone.return_value = (10.0, 2.0)

        assert adapter.length_stats() == (10.0, 2.0)
        query = cursor.execute.call_args[0][0]
        assert "AVG(len)::DOUBLE PRECISION" in query
        assert "STDDEV_POP(len)::DOUBLE PRECISION" in query

    def test_length_stats_without_texts(self, adapter, cursor):
        cursor.fetchone.return_value = (None, None)
        assert adapter.length_stats() == (None, None)

    def test_query_error_rolls_back_and_raises(self, adapter, mock_pool, conn, cursor, mock_logger):
        cursor.execute.side_effect = psycopg2.OperationalError("server closed the connection")

        with pytest.raises(StorageError, match="increment_edge failed"):
            adapter.increment_edge("a", "b")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        mock_pool.putconn.assert_called_once_with(conn)
        mock_logger.error.assert_called()

    def test_failed_rollback_keeps_original_error(self, adapter, conn, cursor):
        cursor.execute.side_effect = psycopg2.OperationalError("lost")
        conn.rollback.side_effect = psycopg2.InterfaceError("connection already closed")

        with pytest.raises(StorageError, match="lost"):
            adapter.record_text("hello")

    def test_pool_timeout_raises_storage_error(self, adapter, mock_pool):
        mock_pool.getconn.side_effect = PoolError("no connection available")

        with pytest.raises(StorageError, match="Could not get a database connection"):
            adapter.edges_from("a")
        mock_pool.putconn.assert_not_called()


class TestLifecycle:

    def test_setup_database_creates_tables(self, adapter, conn, cursor):
        cursor.fetchone.return_value = (False,)

        adapter.setup_database()

        sql = executed_sql(cursor)
        assert "CREATE TABLE IF NOT EXISTS wordchain_test_texts" in sql
        assert "CREATE TABLE IF NOT EXISTS wordchain_test_chain_entries" in sql
        assert 'PRIMARY KEY ("from", "to")' in sql
        conn.commit.assert_called_once()

    def test_setup_database_failure(self, adapter, conn, cursor):
        cursor.fetchone.return_value = (True,)
        cursor.execute.side_effect = [None, psycopg2.ProgrammingError("permission denied")]

        with pytest.raises(StorageError, match="Database setup failed"):
            adapter.setup_database()
        conn.rollback.assert_called_once()

    def test_close_connections(self, adapter, mock_pool):
        adapter.close_connections()
        mock_pool.closeall.assert_called_once()


class TestConcurrentIngest:

    UPSERT = ('INSERT INTO wordchain_test_chain_entries ("from", "to", count) '
              'VALUES (%s, %s, 1) '
              'ON CONFLICT ("from", "to") DO UPDATE '
              'SET count = wordchain_test_chain_entries.count + 1')

    def test_each_edge_is_one_upsert_without_reads(self, adapter, conn, cursor, mock_logger):
        # "x y x y end" derives four edges
        text = "x y x y end"
        calls = 20
        learner = ChainLearner(adapter, logger=mock_logger, max_workers=4)
        try:
            with ThreadPoolExecutor(max_workers=4) as pool:
                list(pool.map(lambda _: learner.ingest(text), range(calls)))
        finally:
            learner.close()

        statements = [" ".join(c[0][0].split()) for c in cursor.execute.call_args_list]
        upserts = [s for s in statements if "chain_entries" in s]
        text_inserts = [s for s in statements if "wordchain_test_texts" in s]

        assert len(statements) == 5 * calls
        assert len(text_inserts) == calls
        assert len(upserts) == 4 * calls
        assert set(upserts) == {self.UPSERT}
        assert not any(s.upper().startswith("SELECT") for s in statements)
        # One transaction per statement
        assert len(conn.commit.call_args_list) == 5 * calls
