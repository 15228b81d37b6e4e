#!/usr/bin/env python3
"""
ChainStorePostgreSqlAdapter - PostgreSQL storage for the word chain

This module keeps every SQL statement the chain learner and the text
synthesizer need in one place. It handles:
- Connection pooling (a blocking, thread-safe pool shared by all workers)
- Table creation and setup
- Recording ingested texts and aggregating their lengths
- Atomic increments of transition counts and lookups of outgoing edges

Tables are prefixed per environment so that test runs never touch
development data.
"""

import re
import psycopg2

from models.chain.errors import StorageError
from utils.database_adapters.postgresql.connection_pool import BlockingThreadedConnectionPool
from utils.settings import load_settings

_ENVIRONMENT_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


class ChainStorePostgreSqlAdapter:
    """
    PostgreSQL adapter holding ingested texts and weighted token transitions.

    Every public operation takes a connection from the pool, commits or rolls
    back, and hands the connection back before returning. Failures are logged
    and raised as StorageError.
    """

    def __init__(self, environment="development", logger=None, db_config=None):
        """
        Initialize the PostgreSQL adapter.

        Args:
            environment (str): Environment name, used as the table prefix
            logger: Logger instance for logging database operations
            db_config (dict, optional): The "database" section of the settings;
                loaded from the configs directory when omitted
        """
        if not _ENVIRONMENT_PATTERN.match(environment):
            raise ValueError(f"Invalid environment name: {environment!r}")

        self.environment = environment
        self.logger = logger
        self.conn_pool = None
        self.table_prefix = f"wordchain_{self.environment}"
        self.texts_table = f"{self.table_prefix}_texts"
        self.entries_table = f"{self.table_prefix}_chain_entries"

        self.is_available = False

        self.db_config = db_config or self.load_db_config()

        if self.db_config:
            self.is_available = self._initialize_connection_pool()
        elif self.logger:
            self.logger.warning("No database configuration available, adapter will not be usable", extra={
                "metrics": {"environment": self.environment}
            })

    def load_db_config(self):
        """
        Load the database section from the YAML settings.

        Returns:
            dict: Database configuration
        """
        return load_settings(self.environment, logger=self.logger)["database"]

    def _initialize_connection_pool(self):
        """
        Initialize the database connection pool based on configuration.

        Returns:
            bool: True if connection pool was successfully initialized, False otherwise
        """
        required_params = ['host', 'dbname', 'user']
        for param in required_params:
            if not self.db_config.get(param):
                if self.logger:
                    self.logger.warning(f"Missing required database parameter: {param}")
                return False

        try:
            self.conn_pool = BlockingThreadedConnectionPool(
                self.db_config.get("min_connections", 1),
                self.db_config.get("max_connections", 10),
                timeout=self.db_config.get("pool_timeout"),
                host=self.db_config.get("host", "localhost"),
                port=self.db_config.get("port", 5432),
                dbname=self.db_config.get("dbname"),
                user=self.db_config.get("user"),
                password=self.db_config.get("password", ""),
                connect_timeout=self.db_config.get("connect_timeout", 10),
            )
        except psycopg2.Error as e:
            if self.logger:
                self.logger.warning("Database connection failed", extra={
                    "metrics": {
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                })
            return False

        if self.logger:
            self.logger.info("Database connection established", extra={
                "metrics": {
                    "host": self.db_config.get("host", "localhost"),
                    "port": self.db_config.get("port", 5432),
                    "dbname": self.db_config.get("dbname"),
                    "max_connections": self.db_config.get("max_connections", 10),
                    "environment": self.environment,
                }
            })
        return True

    def get_connection(self):
        """
        Get a connection from the pool, waiting while all are in use.

        Returns:
            connection: Database connection

        Raises:
            StorageError: If the adapter is not usable or the pool gave up
        """
        if not self.is_usable():
            raise StorageError("Chain store is not available")

        try:
            return self.conn_pool.getconn()
        except psycopg2.Error as e:
            if self.logger:
                self.logger.error(f"Error getting connection from pool: {e}")
            raise StorageError(f"Could not get a database connection: {e}") from e

    def return_connection(self, conn):
        """
        Return a connection to the pool.

        Args:
            conn: The connection to return to the pool
        """
        if self.conn_pool and conn:
            try:
                self.conn_pool.putconn(conn)
            except psycopg2.Error as e:
                if self.logger:
                    self.logger.error(f"Error returning connection to pool: {e}")

    def is_usable(self):
        """
        Check if this adapter is usable (properly configured and connected).

        Returns:
            bool: True if the adapter can be used, False otherwise
        """
        return self.is_available and self.conn_pool is not None

    def _execute(self, operation, query, params=None, fetch=None):
        """
        Run one statement in its own transaction.

        Args:
            operation (str): Name used in log records and error messages
            query (str): SQL statement
            params (tuple, optional): Query parameters
            fetch (str, optional): "one" or "all" to return rows

        Returns:
            The fetched row(s), or None when `fetch` is not set
        """
        conn = self.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(query, params)
                if fetch == "one":
                    result = cur.fetchone()
                elif fetch == "all":
                    result = cur.fetchall()
                else:
                    result = None
            conn.commit()
            return result

        except psycopg2.Error as e:
            self._rollback(conn)
            if self.logger:
                self.logger.error(f"Error in {operation}: {e}", extra={
                    "metrics": {
                        "operation": operation,
                        "error_type": type(e).__name__,
                    }
                })
            raise StorageError(f"{operation} failed: {e}") from e

        finally:
            self.return_connection(conn)

    def _rollback(self, conn):
        try:
            conn.rollback()
        except psycopg2.Error as e:
            # Broken connections cannot roll back; the original error wins
            if self.logger:
                self.logger.warning(f"Rollback failed: {e}")

    def setup_database(self):
        """
        Create the texts and chain entries tables if they do not exist.

        Raises:
            StorageError: If the schema could not be created
        """
        conn = self.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT EXISTS (
                        SELECT FROM information_schema.tables
                        WHERE table_name = %s
                    )
                """,
                    (self.entries_table,),
                )
                table_exists = cur.fetchone()[0]

                if self.logger:
                    if table_exists:
                        self.logger.info(
                            f"Database schema for {self.environment} environment already exists")
                    else:
                        self.logger.info(
                            f"Creating database schema for {self.environment} environment")

                cur.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self.texts_table} (
                        id BIGSERIAL PRIMARY KEY,
                        content TEXT NOT NULL,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
                    )
                """
                )

                # The primary key also serves lookups by "from"
                cur.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self.entries_table} (
                        "from" TEXT NOT NULL,
                        "to" TEXT NOT NULL,
                        count INTEGER NOT NULL DEFAULT 1,
                        PRIMARY KEY ("from", "to")
                    )
                """
                )

            conn.commit()
            if self.logger:
                self.logger.info(
                    f"Database setup complete for {self.environment} environment")

        except psycopg2.Error as e:
            self._rollback(conn)
            if self.logger:
                self.logger.error(f"Error setting up database: {e}")
            raise StorageError(f"Database setup failed: {e}") from e

        finally:
            self.return_connection(conn)

    def record_text(self, content):
        """
        Store one ingested text. Only its length is ever read back, in aggregate.

        Args:
            content (str): The trimmed input text
        """
        self._execute(
            "record_text",
            f"INSERT INTO {self.texts_table} (content) VALUES (%s)",
            (content,),
        )

    def increment_edge(self, from_token, to_token):
        """
        Insert the transition with count 1, or add 1 to the existing count.

        This is a single conditional statement, so concurrent increments of the
        same pair are never lost.

        Args:
            from_token (str): Previous token, "" for the start of a text
            to_token (str): Following token
        """
        self._execute(
            "increment_edge",
            f"""
            INSERT INTO {self.entries_table} ("from", "to", count)
            VALUES (%s, %s, 1)
            ON CONFLICT ("from", "to") DO UPDATE
            SET count = {self.entries_table}.count + 1
        """,
            (from_token, to_token),
        )

    def edges_from(self, from_token):
        """
        Get all outgoing transitions of a token.

        Args:
            from_token (str): The token to look up, "" for the start state

        Returns:
            list: (to_token, count) tuples in storage order
        """
        rows = self._execute(
            "edges_from",
            f"""
            SELECT "to", count
            FROM {self.entries_table}
            WHERE "from" = %s
        """,
            (from_token,),
            fetch="all",
        )
        return [(to_token, count) for to_token, count in rows]

    def length_stats(self):
        """
        Get the mean and population standard deviation of recorded text lengths.

        Returns:
            tuple: (mean, stddev); both None when no text has been recorded
        """
        row = self._execute(
            "length_stats",
            f"""
            WITH lengths AS (
                SELECT length(content) AS len
                FROM {self.texts_table}
            )
            SELECT AVG(len)::DOUBLE PRECISION, STDDEV_POP(len)::DOUBLE PRECISION
            FROM lengths
        """,
            fetch="one",
        )
        if not row:
            return None, None
        return row[0], row[1]

    def close_connections(self):
        """Close all connections in the pool."""
        if self.conn_pool:
            try:
                self.conn_pool.closeall()
                if self.logger:
                    self.logger.info("Database connections closed")
            except psycopg2.Error as e:
                if self.logger:
                    self.logger.error(f"Error closing database connections: {e}")
