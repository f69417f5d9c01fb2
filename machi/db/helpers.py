"""
Database helper functions for common patterns.
Reduces boilerplate in the repository layer.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg

from machi.db.pool import db_pool
from machi.errors import InfrastructureError, MachiError, ValidationError
from machi.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(InfrastructureError):
    """Raised when a statement fails or times out."""


@asynccontextmanager
async def _use_connection(
    connection: psycopg.AsyncConnection | None,
) -> AsyncGenerator[psycopg.AsyncConnection, None]:
    if connection is not None:
        yield connection
    else:
        async with db_pool.connection() as conn:
            yield conn


async def fetch_one(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> dict[str, Any] | None:
    """
    Execute query and return single row as dict.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters
        connection: Optional existing connection (e.g. inside a transaction)

    Returns:
        Dict with row data or None if no results
    """
    try:
        async with _use_connection(connection) as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                row = await cur.fetchone()
                return row if row else None

    except psycopg.Error as e:
        logger.error("Database fetch_one error", query=query[:100], error=str(e))
        raise _wrap(e, "fetch_one") from e


async def fetch_all(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[dict[str, Any]]:
    """
    Execute query and return all rows as list of dicts.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters
        connection: Optional existing connection

    Returns:
        List of dicts with row data
    """
    try:
        async with _use_connection(connection) as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchall()

    except psycopg.Error as e:
        logger.error("Database fetch_all error", query=query[:100], error=str(e))
        raise _wrap(e, "fetch_all") from e


async def fetch_val(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> Any:
    """Execute query and return the first column of the first row."""
    row = await fetch_one(query, params, connection=connection)
    return next(iter(row.values())) if row else None


async def execute_query(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> int:
    """
    Execute query and return number of affected rows.

    Without a connection the statement runs on an autocommit connection, so
    it is atomic on its own.
    """
    try:
        async with _use_connection(connection) as conn:
            cursor = await conn.execute(query, params)
            return cursor.rowcount

    except psycopg.Error as e:
        logger.error("Database execute error", query=query[:100], error=str(e))
        raise _wrap(e, "execute") from e


def _wrap(error: psycopg.Error, operation: str) -> MachiError:
    # Values the column type rejects, such as a malformed uuid, are caller input
    if isinstance(error, psycopg.DataError):
        return ValidationError(f"Invalid value: {error}")
    if isinstance(error, psycopg.errors.QueryCanceled):
        return DatabaseError(f"Query timed out: {error}", operation=operation)
    recoverable = isinstance(error, psycopg.OperationalError)
    return DatabaseError(f"Query failed: {error}", operation=operation, recoverable=recoverable)
