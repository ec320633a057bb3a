"""PostgreSQL session lifecycle using asyncpg.

A ConnectionManager owns at most one PostgresSession at a time. Each session
is opened and kept alive by its own drive task; reconnecting cancels that task
(which closes the pool) before the next session is built.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable

import asyncpg

from habitkeeper.config import config
from habitkeeper.db import schema
from habitkeeper.errors import (
    DRIVER_ERRORS,
    EstablishFailedError,
    IncompleteConfigError,
    NoSessionError,
    StoreConnectionError,
)
from habitkeeper.models import ConnectionConfig

log = logging.getLogger("habitkeeper.postgres")

PROBE_SQL = "SELECT 1;"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class PostgresSession:
    """One asyncpg pool bound to a ConnectionConfig, TLS disabled."""

    def __init__(self, db_config: ConnectionConfig):
        self.db_config = db_config
        self.pool: asyncpg.Pool | None = None

    async def open(self):
        self.pool = await asyncpg.create_pool(
            host=self.db_config.host,
            port=self.db_config.port,
            user=self.db_config.username,
            password=self.db_config.password,
            database=self.db_config.database,
            ssl=False,
            min_size=1,
            max_size=config.db.pool_max_size,
            timeout=config.db.connect_timeout_s,
        )

    async def fetchval(self, query: str, *args):
        return await self.pool.fetchval(query, *args)

    async def execute(self, query: str, *args) -> str:
        return await self.pool.execute(query, *args)

    async def close(self):
        if self.pool is not None:
            pool, self.pool = self.pool, None
            await pool.close()


class ConnectionManager:
    def __init__(
        self,
        connector: Callable[[ConnectionConfig], PostgresSession] = PostgresSession,
        settle_s: float | None = None,
        keepalive_interval_s: float | None = None,
        connect_timeout_s: float | None = None,
    ):
        self._connector = connector
        self.settle_s = config.db.settle_s if settle_s is None else settle_s
        self.connect_timeout_s = (
            config.db.connect_timeout_s if connect_timeout_s is None else connect_timeout_s
        )
        self.keepalive_interval_s = (
            config.db.keepalive_interval_s if keepalive_interval_s is None else keepalive_interval_s
        )
        self.state = ConnectionState.DISCONNECTED
        self._session: PostgresSession | None = None
        self._ready: asyncio.Event | None = None
        self._drive_task: asyncio.Task | None = None
        self._last_error: BaseException | None = None
        self._lock = asyncio.Lock()

    @property
    def drive_task(self) -> asyncio.Task | None:
        return self._drive_task

    @property
    def has_session(self) -> bool:
        return self._session is not None and self._ready is not None and self._ready.is_set()

    async def connect(self, db_config: ConnectionConfig):
        """Replace the current session with one for `db_config`.

        Raises IncompleteConfigError, EstablishFailedError or SchemaInitError.
        """
        missing = db_config.missing_fields()
        if missing:
            raise IncompleteConfigError(missing)

        async with self._lock:
            await self._teardown()
            self.state = ConnectionState.CONNECTING
            log.info(
                f"Connecting to {db_config.host}:{db_config.port}/{db_config.database} "
                f"as {db_config.username}"
            )

            session = self._connector(db_config)
            ready = asyncio.Event()
            self._session = session
            self._ready = ready
            self._last_error = None
            self._drive_task = asyncio.create_task(self._drive(session, ready))

            await self._wait_ready(ready, self._drive_task)

            if not await self.test_connection():
                detail = str(self._last_error) if self._last_error else "Failed to establish connection"
                await self._fail()
                raise EstablishFailedError(detail)

            try:
                await schema.ensure_schema(self._require_session())
            except StoreConnectionError:
                await self._fail()
                raise

            self.state = ConnectionState.CONNECTED
            log.info("Connection established")

    async def test_connection(self) -> bool:
        """Round-trip a trivial query. Never raises."""
        if not self.has_session:
            log.info("No session available for liveness probe")
            return False
        try:
            await self._session.fetchval(PROBE_SQL)
            return True
        except Exception as e:
            log.warning(f"Liveness probe failed: {e}")
            return False

    async def execute(self, query: str, *args) -> str:
        """Run a statement on the session. Only allowed once Connected."""
        if self.state is not ConnectionState.CONNECTED:
            raise NoSessionError(f"No database session (state: {self.state.value})")
        return await self._require_session().execute(query, *args)

    async def close(self):
        async with self._lock:
            await self._teardown()
            self.state = ConnectionState.DISCONNECTED

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    def _require_session(self) -> PostgresSession:
        if not self.has_session:
            raise NoSessionError("No database session")
        return self._session

    async def _wait_ready(self, ready: asyncio.Event, drive_task: asyncio.Task):
        """Pause for the settling interval, then keep waiting for the drive task
        to either open the session or give up, bounded by connect_timeout_s.
        """
        waiter = asyncio.ensure_future(ready.wait())
        watched = {waiter, drive_task}
        try:
            done, _ = await asyncio.wait(
                watched, timeout=self.settle_s, return_when=asyncio.FIRST_COMPLETED
            )
            if done:
                return
            log.info(
                f"Session not ready after {self.settle_s}s settling wait, "
                f"waiting up to {self.connect_timeout_s}s"
            )
            done, _ = await asyncio.wait(
                watched, timeout=self.connect_timeout_s, return_when=asyncio.FIRST_COMPLETED
            )
            if not done:
                log.warning(f"Session not ready after {self.connect_timeout_s}s")
        finally:
            waiter.cancel()

    async def _fail(self):
        await self._teardown()
        self.state = ConnectionState.FAILED

    async def _teardown(self):
        task, self._drive_task = self._drive_task, None
        self._session = None
        self._ready = None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.info("Previous session torn down")

    async def _drive(self, session: PostgresSession, ready: asyncio.Event):
        """Open the session, then keep it alive until cancelled."""
        try:
            await session.open()
        except Exception as e:
            self._last_error = e
            log.error(f"Failed to open session: {e}")
            await self._close_session(session)
            return

        ready.set()
        healthy = True
        try:
            while True:
                await asyncio.sleep(self.keepalive_interval_s)
                try:
                    await session.fetchval(PROBE_SQL)
                except DRIVER_ERRORS as e:
                    if healthy:
                        log.warning(f"Keepalive failed, pool will reconnect on next use: {e}")
                    healthy = False
                    continue
                if not healthy:
                    log.info("Keepalive recovered")
                healthy = True
        finally:
            await self._close_session(session)

    @staticmethod
    async def _close_session(session: PostgresSession):
        try:
            await session.close()
        except DRIVER_ERRORS as e:
            log.warning(f"Error closing session: {e}")
