"""Async access to the single libsql database behind every store.

The ``libsql`` driver is synchronous, so every call is pushed onto a worker
thread with ``asyncio.to_thread()``. Where the data lives:

- an explicit ``local_path_override`` (tests) always wins;
- otherwise ``TURSO_DATABASE_URL`` (+ ``TURSO_AUTH_TOKEN``) selects Turso;
- otherwise the local file at ``settings.database_path``.

Stores open one short-lived connection per operation through
:func:`connect`, which applies the store's ``CREATE TABLE`` statements the
first time a given database is touched in this process. Connections to the
same database are handed out one at a time; overlapping libsql writers fail
with "database is locked" once ``busy_timeout`` runs out.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import libsql

from zuychin.config import settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence
    from pathlib import Path

_LOCAL_PRAGMAS = ("PRAGMA journal_mode=WAL", "PRAGMA busy_timeout=5000")


@dataclass(frozen=True)
class DatabaseTarget:
    """Where a connection should point."""

    location: str
    remote: bool = False
    auth_token: str = ""


def resolve_target(local_path_override: Path | None = None) -> DatabaseTarget:
    if local_path_override:
        local_path_override.parent.mkdir(parents=True, exist_ok=True)
        return DatabaseTarget(str(local_path_override))
    if settings.turso_database_url:
        return DatabaseTarget(
            settings.turso_database_url, remote=True, auth_token=settings.turso_auth_token
        )
    settings.database_path.parent.mkdir(parents=True, exist_ok=True)
    return DatabaseTarget(str(settings.database_path))


def _open(target: DatabaseTarget) -> Any:
    if target.remote:
        return libsql.connect(database=target.location, auth_token=target.auth_token)
    conn = libsql.connect(target.location)
    for pragma in _LOCAL_PRAGMAS:
        conn.execute(pragma)
    return conn


class AsyncCursor:
    """Thread-offloaded view of a driver cursor."""

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    async def fetchone(self) -> tuple | None:
        return await asyncio.to_thread(self._cursor.fetchone)

    async def fetchall(self) -> list[tuple]:
        return await asyncio.to_thread(self._cursor.fetchall)


class AsyncConnection:
    """Thread-offloaded view of a driver connection."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    async def execute(self, sql: str, params: tuple = ()) -> AsyncCursor:
        return AsyncCursor(await asyncio.to_thread(self._conn.execute, sql, params))

    async def commit(self) -> None:
        await asyncio.to_thread(self._conn.commit)

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)

    async def apply_schema(self, statements: Sequence[str]) -> None:
        for statement in statements:
            await self.execute(statement)
        await self.commit()


# (location, schema) pairs already applied in this process.
_schemas_applied: set[tuple[str, str]] = set()

# One lock per database location. Locks belong to the loop that made them.
_locks: dict[str, asyncio.Lock] = {}
_locks_loop: asyncio.AbstractEventLoop | None = None


def _lock_for(location: str) -> asyncio.Lock:
    global _locks_loop  # noqa: PLW0603
    loop = asyncio.get_running_loop()
    if loop is not _locks_loop:
        _locks.clear()
        _locks_loop = loop
    if location not in _locks:
        _locks[location] = asyncio.Lock()
    return _locks[location]


@asynccontextmanager
async def connect(
    schema: Sequence[str] = (),
    *,
    local_path_override: Path | None = None,
) -> AsyncIterator[AsyncConnection]:
    """Open a connection, make sure *schema* exists, close on exit.

    Holds the database's lock for the whole block, so callers must not open
    a second connection to the same database inside it.
    """
    target = resolve_target(local_path_override)
    async with _lock_for(target.location):
        db = AsyncConnection(await asyncio.to_thread(_open, target))
        try:
            key = (target.location, "\n".join(schema))
            if schema and key not in _schemas_applied:
                await db.apply_schema(schema)
                _schemas_applied.add(key)
            yield db
        finally:
            await db.close()
