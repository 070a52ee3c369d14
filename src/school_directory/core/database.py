"""
Database Gateway

Owns the single lazily-created connection to the relational store and
exposes a parameterized execute primitive.

- One AsyncConnection per gateway, established on first use under a lock
- The schools table is created (if absent) right after connecting
- Statements are serialized on the connection and committed one by one
- Any failure discards the cached connection; the next call reconnects
- Driver errors are mapped onto a closed set of StoreErrorKind values
"""

import asyncio
import contextlib
import enum
import logging
import ssl
from collections.abc import Mapping
from typing import Any

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import URL, Result
from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool
from sqlalchemy.sql import Executable

from school_directory.core.config import Settings

logger = logging.getLogger(__name__)

# Store-specific codes that mean "unique constraint violated"
MYSQL_DUPLICATE_ENTRY = 1062
POSTGRES_UNIQUE_VIOLATION = "23505"
SQLITE_CONSTRAINT_UNIQUE = 2067
SQLITE_CONSTRAINT_PRIMARYKEY = 1555


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class StoreErrorKind(str, enum.Enum):
    """Closed set of persistence failure kinds."""

    CONNECTION = "connection"
    DUPLICATE = "duplicate"
    CONSTRAINT = "constraint"
    STATEMENT = "statement"


class StoreError(Exception):
    """A failure talking to the store, tagged with a stable kind."""

    def __init__(self, kind: StoreErrorKind, message: str, code: int | str | None = None):
        self.kind = kind
        self.message = message
        self.code = code
        super().__init__(message)

    def __repr__(self) -> str:
        return f"<StoreError(kind={self.kind.value}, code={self.code})>"


def _driver_error_code(orig: BaseException | None) -> int | str | None:
    """Pull the store-specific error code off a DBAPI exception."""
    if orig is None:
        return None
    for attr in ("sqlstate", "pgcode", "sqlite_errorcode"):
        value = getattr(orig, attr, None)
        if value:
            return value
    # MySQL drivers put the errno first in args
    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


def _is_unique_violation(orig: BaseException | None, code: int | str | None) -> bool:
    if code in (
        MYSQL_DUPLICATE_ENTRY,
        POSTGRES_UNIQUE_VIOLATION,
        SQLITE_CONSTRAINT_UNIQUE,
        SQLITE_CONSTRAINT_PRIMARYKEY,
    ):
        return True
    message = str(orig).lower() if orig is not None else ""
    return "unique constraint" in message or "duplicate entry" in message


def classify_error(exc: BaseException) -> StoreError:
    """
    Map a SQLAlchemy / driver / OS exception onto a StoreError.

    Args:
        exc: The exception raised while connecting or executing

    Returns:
        StoreError with its kind set and the driver code preserved
    """
    if isinstance(exc, StoreError):
        return exc

    orig = getattr(exc, "orig", None)
    code = _driver_error_code(orig)

    if isinstance(exc, IntegrityError):
        kind = (
            StoreErrorKind.DUPLICATE
            if _is_unique_violation(orig, code)
            else StoreErrorKind.CONSTRAINT
        )
    elif isinstance(exc, (OperationalError, InterfaceError, DisconnectionError, OSError)):
        kind = StoreErrorKind.CONNECTION
    elif isinstance(exc, DBAPIError) and exc.connection_invalidated:
        kind = StoreErrorKind.CONNECTION
    else:
        kind = StoreErrorKind.STATEMENT

    return StoreError(kind, str(orig if orig is not None else exc), code)


def _connect_args(use_ssl: bool) -> dict[str, Any]:
    if not use_ssl:
        return {}
    # Managed hosts commonly present certificates we cannot verify
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return {"ssl": context}


class DatabaseGateway:
    """Lazily-connected, single-connection access to the store."""

    def __init__(
        self,
        url: str | URL,
        *,
        use_ssl: bool = False,
        echo: bool = False,
    ):
        self._url = url
        self._use_ssl = use_ssl
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._connection: AsyncConnection | None = None
        self._connect_lock = asyncio.Lock()
        self._execute_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseGateway":
        return cls(
            settings.database_connection_url,
            use_ssl=settings.db_ssl,
            echo=settings.db_echo,
        )

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    def _get_engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_async_engine(
                self._url,
                echo=self._echo,
                poolclass=NullPool,
                connect_args=_connect_args(self._use_ssl),
            )
        return self._engine

    async def connect(self) -> AsyncConnection:
        """
        Return the cached connection, establishing it on first use.

        The first successful connection also checks the link with SELECT 1
        and creates the schools table if it does not exist yet.

        Raises:
            StoreError: If the store is unreachable or bootstrap fails
        """
        if self._connection is not None:
            return self._connection

        async with self._connect_lock:
            if self._connection is not None:
                return self._connection

            logger.info("Connecting to database")
            connection: AsyncConnection | None = None
            try:
                connection = await self._get_engine().connect()
                await connection.execute(text("SELECT 1"))
                await connection.run_sync(Base.metadata.create_all, checkfirst=True)
                await connection.commit()
            except (SQLAlchemyError, OSError) as e:
                logger.error(f"Database connection failed: {e}")
                if connection is not None:
                    with contextlib.suppress(SQLAlchemyError, OSError):
                        await connection.close()
                raise classify_error(e) from e

            self._connection = connection
            logger.info("Database connected, schools table ready")
            return connection

    async def execute(
        self,
        statement: Executable,
        parameters: Mapping[str, Any] | None = None,
    ) -> Result:
        """
        Execute a parameterized statement and commit it.

        Args:
            statement: SQLAlchemy Core statement or text() with bind params
            parameters: Values for the statement's bind parameters

        Returns:
            Buffered result (rows for SELECT, inserted_primary_key for INSERT)

        Raises:
            StoreError: On connection or statement failure
        """
        async with self._execute_lock:
            connection = await self.connect()
            try:
                if parameters is None:
                    result = await connection.execute(statement)
                else:
                    result = await connection.execute(statement, parameters)
                await connection.commit()
                return result
            except (SQLAlchemyError, OSError) as e:
                error = classify_error(e)
                logger.error(
                    f"Query execution failed ({error.kind.value}, code={error.code}): "
                    f"{error.message}"
                )
                await self._discard(connection)
                raise error from e

    async def ping(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            await self.execute(text("SELECT 1"))
            return True
        except StoreError:
            return False

    async def _discard(self, connection: AsyncConnection | None = None) -> None:
        """
        Close a connection and drop it from the cache so the next call reconnects.

        With no argument the cached connection is discarded. A failed
        connection that is no longer the cached one is closed without
        touching the cache.
        """
        if connection is None:
            connection = self._connection
        if self._connection is connection:
            self._connection = None
        if connection is not None:
            with contextlib.suppress(SQLAlchemyError, OSError):
                await connection.close()

    async def close(self) -> None:
        """Close the connection and dispose of the engine."""
        await self._discard()
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None


async def init_db(settings: Settings) -> DatabaseGateway:
    """
    Create the gateway and try to connect eagerly.

    A failed eager connect is logged and left for the first request to retry.
    """
    gateway = DatabaseGateway.from_settings(settings)
    try:
        await gateway.connect()
    except StoreError as e:
        logger.warning(f"Database not reachable at startup, will retry lazily: {e.message}")
        if settings.is_production:
            raise
    return gateway


async def close_db(gateway: DatabaseGateway | None) -> None:
    if gateway is not None:
        await gateway.close()


def get_db(request: Request) -> DatabaseGateway:
    """FastAPI dependency returning the application's gateway."""
    return request.app.state.db
