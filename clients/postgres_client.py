"""
PostgreSQL access for the document store.

psycopg2 over a ThreadedConnectionPool shared per database URL. Every call
borrows a connection, runs one statement in its own transaction, and returns
rows as dicts (JSONB columns decoded). Calls block; PostgresDocumentStore
moves them onto Starlette's threadpool.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Tuple

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

Params = Tuple | Dict | None

psycopg2.extras.register_default_jsonb(globally=True)


class PostgresClient:
    """
    Blocking PostgreSQL client.

    Usage:
        db = PostgresClient(database_url)
        rows = db.execute("SELECT doc_id, data FROM documents WHERE collection = %s", ("users",))
    """

    # One pool per database URL, shared by every client pointed at it
    _pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str, min_connections: int = 2, max_connections: int = 20):
        self._database_url = database_url
        self._min_connections = min_connections
        self._max_connections = max_connections
        self._pool()

    def _pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        with self._pools_lock:
            pool = self._pools.get(self._database_url)
            if pool is None:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self._min_connections,
                    maxconn=self._max_connections,
                    dsn=self._database_url,
                    connect_timeout=30,
                )
                self._pools[self._database_url] = pool
                logger.info(f"Connection pool created ({self._min_connections}-{self._max_connections})")
            return pool

    @contextmanager
    def transaction(self):
        """Borrow a connection; commit on success, roll back on any error."""
        pool = self._pool()
        conn = pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    def _run(self, query: str, params: Params) -> List[Dict[str, Any]]:
        with self.transaction() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, params)
                if cur.description is None:
                    return []
                return [dict(row) for row in cur.fetchall()]

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Run a statement; rows as dicts, empty list when it returns none."""
        return self._run(query, params)

    def execute_single(self, query: str, params: Params = None) -> Dict[str, Any] | None:
        """First row or None."""
        rows = self._run(query, params)
        return rows[0] if rows else None

    def execute_returning(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """INSERT/UPDATE/DELETE ... RETURNING; the returned rows."""
        return self._run(query, params)

    def ping(self) -> bool:
        """True if the database answers. Raises psycopg2.Error otherwise."""
        return self.execute_single("SELECT 1 AS ok")["ok"] == 1

    def close(self) -> None:
        """Close this URL's pool."""
        with self._pools_lock:
            pool = self._pools.pop(self._database_url, None)
            if pool is not None:
                pool.closeall()
                logger.info("Connection pool closed")
