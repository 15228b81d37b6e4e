#!/usr/bin/env python3
"""
Blocking connection pool for PostgreSQL.

psycopg2's ThreadedConnectionPool raises PoolError as soon as every connection
is checked out. Edge increments are fanned out across worker threads, so this
pool makes callers wait for a free connection instead.
"""

import threading
from psycopg2.pool import PoolError, ThreadedConnectionPool


class BlockingThreadedConnectionPool(ThreadedConnectionPool):
    """
    ThreadedConnectionPool that blocks in getconn() while all `maxconn`
    connections are in use.

    Args:
        minconn (int): Connections opened eagerly
        maxconn (int): Upper bound on open connections
        timeout (float, optional): Seconds to wait for a free connection;
            None waits indefinitely
    """

    def __init__(self, minconn, maxconn, *args, timeout=None, **kwargs):
        self.timeout = timeout
        self._slots = threading.BoundedSemaphore(maxconn)
        super().__init__(minconn, maxconn, *args, **kwargs)

    def getconn(self, key=None):
        if not self._slots.acquire(timeout=self.timeout):
            raise PoolError(
                f"no connection available after waiting {self.timeout}s")
        try:
            return super().getconn(key)
        except Exception:
            self._slots.release()
            raise

    def putconn(self, conn=None, key=None, close=False):
        # A rejected connection never held a slot
        super().putconn(conn, key, close)
        self._slots.release()
