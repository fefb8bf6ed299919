"""
Database Connection and Utilities
=================================
Supports both standalone connections and shared DB from a parent app.
The parent app can inject a connection pool via set_external_pool().
"""
import logging
from contextlib import contextmanager

import psycopg2
from psycopg2 import extras

logger = logging.getLogger(__name__)

# ─── External connection pool (set by parent app) ───
_external_pool = None


def set_external_pool(pool):
    """
    Set an external connection pool (e.g., psycopg2.pool).
    When set, get_db_connection() will use this pool instead of creating new connections.

    Args:
        pool: A connection pool with getconn()/putconn() methods.
    """
    global _external_pool
    _external_pool = pool


def _get_config():
    """Get the module config (avoids circular imports)."""
    from . import get_module_config
    return get_module_config()


def get_schema():
    """Get the current schema name for table-qualified queries."""
    return _get_config().DB_SCHEMA


def qualified_table(table_name):
    """
    Return a schema-qualified table name.

    Args:
        table_name: The base table name (e.g., 'pharmacies').

    Returns:
        str: Schema-qualified name (e.g., 'pharmacy.pharmacies' or 'public.pharmacies').
    """
    return f"{get_schema()}.{table_name}"


@contextmanager
def get_db_connection():
    """
    Context manager for database connections.
    Uses external pool if set, otherwise creates a new psycopg2 connection.

    Usage:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query)
    """
    conn = None
    from_pool = False

    try:
        if _external_pool is not None:
            conn = _external_pool.getconn()
            from_pool = True
        else:
            conn = psycopg2.connect(**_get_config().get_db_config())

        # Set search_path to include the module schema
        schema = get_schema()
        if schema != 'public':
            cursor = conn.cursor()
            cursor.execute(f"SET search_path TO {schema}, public")
            cursor.close()

        yield conn
    finally:
        if conn:
            if from_pool:
                _external_pool.putconn(conn)
            else:
                conn.close()


@contextmanager
def get_db_cursor(commit=False):
    """
    Context manager for database cursors with DictCursor.

    Args:
        commit: If True, commits the transaction after cursor closes.
                Any exception rolls the transaction back.

    Usage:
        with get_db_cursor() as cursor:
            cursor.execute(query)
            results = cursor.fetchall()
    """
    with get_db_connection() as conn:
        cursor = conn.cursor(cursor_factory=extras.DictCursor)
        try:
            yield cursor
            if commit:
                conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()


def check_connection():
    """Test database connection and PostGIS availability."""
    try:
        with get_db_cursor() as cursor:
            cursor.execute("SELECT version();")
            pg_version = cursor.fetchone()[0]

            cursor.execute("SELECT PostGIS_Version();")
            postgis_version = cursor.fetchone()[0]

            return {
                'status': 'connected',
                'postgresql': pg_version,
                'postgis': postgis_version,
                'schema': get_schema()
            }
    except psycopg2.Error as e:
        logger.warning("Database health check failed: %s", e)
        return {
            'status': 'error',
            'error': str(e)
        }
