"""Tests for connection helpers using a fake external pool."""
from unittest.mock import MagicMock

import pytest

from pharmacy_directory import database, init_pharmacy_module


@pytest.fixture
def pool():
    pool = MagicMock()
    database.set_external_pool(pool)
    yield pool
    database.set_external_pool(None)


def test_pool_connection_is_returned(pool):
    init_pharmacy_module(schema='public')

    with database.get_db_connection() as conn:
        assert conn is pool.getconn.return_value

    pool.putconn.assert_called_once_with(conn)
    conn.cursor.assert_not_called()


def test_non_public_schema_sets_search_path(pool):
    init_pharmacy_module(schema='pharmacy')

    with database.get_db_connection() as conn:
        pass

    conn.cursor.return_value.execute.assert_called_once_with("SET search_path TO pharmacy, public")
    assert database.qualified_table('pharmacies') == 'pharmacy.pharmacies'


def test_cursor_commits_on_success(pool):
    init_pharmacy_module(schema='public')

    with database.get_db_cursor(commit=True) as cursor:
        cursor.execute("SELECT 1")

    conn = pool.getconn.return_value
    conn.commit.assert_called_once()
    conn.rollback.assert_not_called()
    cursor.close.assert_called_once()


def test_cursor_rolls_back_on_error(pool):
    init_pharmacy_module(schema='public')

    with pytest.raises(RuntimeError):
        with database.get_db_cursor(commit=True):
            raise RuntimeError('boom')

    conn = pool.getconn.return_value
    conn.rollback.assert_called_once()
    conn.commit.assert_not_called()
    pool.putconn.assert_called_once_with(conn)
