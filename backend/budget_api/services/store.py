"""Shared helpers for reading from the Postgres pool inside services."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from psycopg import OperationalError

if TYPE_CHECKING:
    from psycopg import AsyncConnection
    from psycopg_pool import AsyncConnectionPool
else:
    AsyncConnection = Any
    AsyncConnectionPool = Any

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BudgetStoreUnavailableError(Exception):
    """Raised when the transaction store cannot serve a read; callers may retry later."""


async def run_with_connection(
    pool: AsyncConnectionPool,
    reader: Callable[..., Awaitable[T]],
    *args: Any,
    **kwargs: Any,
) -> T:
    """
    Run one store call on its own pooled connection.

    Connection failures and pool timeouts (both OperationalError) surface as
    BudgetStoreUnavailableError. No retry happens here.
    """
    try:
        async with pool.connection() as connection:
            return await reader(connection, *args, **kwargs)
    except OperationalError as exc:
        logger.error("Store read %s failed: %s", getattr(reader, "__name__", reader), exc)
        raise BudgetStoreUnavailableError("Budget store is unavailable") from exc
