import logging
import re
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, NamedTuple, Optional, Sequence

from fastapi import Request
from sqlalchemy import event, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()

Row = Dict[str, Any]
Params = Optional[Sequence[Any]]

_INSERT_RE = re.compile(r"^\s*INSERT\s+INTO\s+", re.IGNORECASE)
_RETURNING_RE = re.compile(r"\bRETURNING\b", re.IGNORECASE)
_TRAILING_SEMICOLON_RE = re.compile(r";\s*$")

PG_UNIQUE_VIOLATION = "23505"
SQLITE_UNIQUE_VIOLATION = "SQLITE_CONSTRAINT_UNIQUE"


class RunResult(NamedTuple):
    id: Optional[int]
    changes: int


def is_insert(sql: str) -> bool:
    return bool(_INSERT_RE.match(sql))


def translate_placeholders(sql: str) -> str:
    """
    Rewrite positional ``?`` placeholders to ``$1..$n`` by occurrence order.

    Quoted literals, quoted identifiers and comments are copied through
    untouched, so a ``?`` inside them is never numbered.
    """
    out = []
    index = 0
    i = 0
    length = len(sql)

    while i < length:
        ch = sql[i]

        if ch in ("'", '"'):
            # A doubled quote closes and reopens the literal, which copies through unchanged
            end = sql.find(ch, i + 1)
            end = length if end == -1 else end + 1
            out.append(sql[i:end])
            i = end
            continue

        if sql.startswith("--", i):
            end = sql.find("\n", i)
            end = length if end == -1 else end
            out.append(sql[i:end])
            i = end
            continue

        if sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            end = length if end == -1 else end + 2
            out.append(sql[i:end])
            i = end
            continue

        if ch == "?":
            index += 1
            out.append(f"${index}")
        else:
            out.append(ch)
        i += 1

    return "".join(out)


def add_returning_id(sql: str) -> str:
    """Append ``RETURNING id`` to a top-level INSERT that has no RETURNING clause."""
    if not is_insert(sql) or _RETURNING_RE.search(sql):
        return sql
    return _TRAILING_SEMICOLON_RE.sub("", sql.rstrip()) + " RETURNING id"


class Transaction:
    """Query interface bound to a single connection inside an open transaction."""

    def __init__(self, database: "Database", conn: AsyncConnection):
        self.database = database
        self.conn = conn

    async def run(self, sql: str, params: Params = None) -> RunResult:
        return await self.database._run(self.conn, sql, params)

    async def get(self, sql: str, params: Params = None) -> Optional[Row]:
        return await self.database._get(self.conn, sql, params)

    async def all(self, sql: str, params: Params = None) -> List[Row]:
        return await self.database._all(self.conn, sql, params)


class Database(ABC):
    """
    Uniform ``run``/``get``/``all`` contract over either storage engine.

    SQL is always written with ``?`` placeholders; each dialect prepares the
    statement for its driver. Every call outside ``transaction()`` runs in its
    own short transaction on a pooled connection.
    """

    dialect_name = ""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine: Optional[AsyncEngine] = None

    @abstractmethod
    def _create_engine(self) -> AsyncEngine:
        ...

    @abstractmethod
    def prepare(self, sql: str) -> str:
        """Return the statement in the driver's native placeholder syntax."""

    @abstractmethod
    def inserted_id(self, result: Any, sql: str) -> Optional[int]:
        ...

    @abstractmethod
    def is_unique_violation(self, exc: BaseException) -> bool:
        ...

    async def connect(self) -> None:
        if self.engine is not None:
            return
        engine = self._create_engine()
        try:
            async with engine.connect() as conn:
                await conn.exec_driver_sql("SELECT 1")
        except Exception as e:
            logger.error(f"Could not connect to {self.dialect_name} database: {e}")
            await engine.dispose()
            raise
        self.engine = engine
        logger.info(f"Connected to {self.dialect_name} database")

    async def close(self) -> None:
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        logger.info("Database engine disposed")

    def _require_engine(self) -> AsyncEngine:
        if self.engine is None:
            raise RuntimeError("Database not connected")
        return self.engine

    async def _execute(self, conn: AsyncConnection, sql: str, params: Params):
        statement = self.prepare(sql)
        values = tuple(params or ())
        try:
            return statement, await conn.exec_driver_sql(statement, values)
        except SQLAlchemyError as e:
            logger.error(f"{self.dialect_name} query error: {e} | sql={statement!r} params={values!r}")
            raise

    async def _run(self, conn: AsyncConnection, sql: str, params: Params) -> RunResult:
        statement, result = await self._execute(conn, sql, params)
        return RunResult(id=self.inserted_id(result, statement), changes=result.rowcount)

    async def _get(self, conn: AsyncConnection, sql: str, params: Params) -> Optional[Row]:
        _, result = await self._execute(conn, sql, params)
        row = result.mappings().first()
        return dict(row) if row is not None else None

    async def _all(self, conn: AsyncConnection, sql: str, params: Params) -> List[Row]:
        _, result = await self._execute(conn, sql, params)
        return [dict(row) for row in result.mappings().all()]

    async def run(self, sql: str, params: Params = None) -> RunResult:
        async with self._require_engine().begin() as conn:
            return await self._run(conn, sql, params)

    async def get(self, sql: str, params: Params = None) -> Optional[Row]:
        async with self._require_engine().begin() as conn:
            return await self._get(conn, sql, params)

    async def all(self, sql: str, params: Params = None) -> List[Row]:
        async with self._require_engine().begin() as conn:
            return await self._all(conn, sql, params)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """Commit when the block exits normally, roll back on any exception."""
        async with self._require_engine().begin() as conn:
            yield Transaction(self, conn)

    # Schema helpers

    async def create_tables(self) -> None:
        from .. import models  # noqa: F401  registers every table on Base.metadata

        async with self._require_engine().begin() as conn:
            logger.info("Creating database tables...")
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created successfully")

    async def column_names(self, table: str) -> List[str]:
        async with self._require_engine().connect() as conn:
            return await conn.run_sync(
                lambda sync_conn: [column["name"] for column in inspect(sync_conn).get_columns(table)]
            )

    async def indexes(self, table: str) -> List[Row]:
        """Reflected indexes as ``{"name", "unique", "column_names"}`` dicts."""
        async with self._require_engine().connect() as conn:
            return await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_indexes(table))

    async def index_names(self, table: str) -> List[str]:
        return [index["name"] for index in await self.indexes(table)]

    async def create_index(self, index) -> None:
        async with self._require_engine().begin() as conn:
            await conn.run_sync(index.create)


class SQLiteDatabase(Database):
    """Embedded file storage; the driver understands ``?`` natively."""

    dialect_name = "SQLite"

    def _create_engine(self) -> AsyncEngine:
        engine = create_async_engine(
            f"sqlite+aiosqlite:///{self.settings.sqlite_path}",
            echo=False,
        )

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    def prepare(self, sql: str) -> str:
        return sql

    def inserted_id(self, result: Any, sql: str) -> Optional[int]:
        return result.lastrowid if is_insert(sql) else None

    def is_unique_violation(self, exc: BaseException) -> bool:
        orig = getattr(exc, "orig", exc)
        return getattr(orig, "sqlite_errorname", None) == SQLITE_UNIQUE_VIOLATION


class PostgresDatabase(Database):
    """Networked server; ``?`` becomes ``$n`` and inserts return their id."""

    dialect_name = "PostgreSQL"

    def _create_engine(self) -> AsyncEngine:
        database_url = self.settings.database_url
        for prefix in ("postgresql://", "postgres://"):
            if database_url.startswith(prefix):
                database_url = database_url.replace(prefix, "postgresql+asyncpg://", 1)
                break

        connect_args = {}
        if self.settings.database_ssl != "disable":
            connect_args["ssl"] = self.settings.database_ssl

        return create_async_engine(
            database_url,
            echo=False,
            pool_pre_ping=True,
            pool_recycle=3600,
            connect_args=connect_args,
        )

    def prepare(self, sql: str) -> str:
        return add_returning_id(translate_placeholders(sql))

    def inserted_id(self, result: Any, sql: str) -> Optional[int]:
        if not is_insert(sql) or not result.returns_rows:
            return None
        row = result.mappings().first()
        return row.get("id") if row is not None else None

    def is_unique_violation(self, exc: BaseException) -> bool:
        orig = getattr(exc, "orig", exc)
        codes = {
            getattr(orig, "sqlstate", None),
            getattr(orig, "pgcode", None),
            getattr(getattr(orig, "__cause__", None), "sqlstate", None),
        }
        return PG_UNIQUE_VIOLATION in codes


def create_database(settings: Settings) -> Database:
    """Pick the dialect once, at process start."""
    if settings.use_postgres:
        return PostgresDatabase(settings)
    return SQLiteDatabase(settings)


def get_db(request: Request) -> Database:
    """Dependency to get the process-wide database"""
    return request.app.state.db
