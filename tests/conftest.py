"""Shared fixtures: an in-memory stand-in for a PostgreSQL session."""

import asyncio

import asyncpg
import pytest

from habitkeeper.db.postgres import ConnectionManager
from habitkeeper.db.sqlite import SettingsStore
from habitkeeper.models import ConnectionConfig
from habitkeeper.services.writer import EntryWriter


class FakeDatabase:
    """Server-side state shared by every FakeSession it hands out."""

    def __init__(self):
        self.rows: dict[tuple, tuple] = {}
        self.tables: set[str] = set()
        self.sessions: list["FakeSession"] = []
        self.queries: list[tuple[str, tuple]] = []
        self.max_live = 0
        self.open_error: Exception | None = None
        self.probe_error: Exception | None = None
        self.schema_error: Exception | None = None
        self.insert_error: Exception | None = None
        self.open_delay = 0.0
        self.schema_gate: asyncio.Event | None = None

    def connect(self, db_config: ConnectionConfig) -> "FakeSession":
        session = FakeSession(self, db_config)
        self.sessions.append(session)
        return session

    @property
    def live_sessions(self) -> list["FakeSession"]:
        return [s for s in self.sessions if s.opened and not s.closed]


class FakeSession:
    def __init__(self, db: FakeDatabase, db_config: ConnectionConfig):
        self.db = db
        self.db_config = db_config
        self.opened = False
        self.closed = False
        self.probes = 0

    async def open(self):
        if self.db.open_delay:
            await asyncio.sleep(self.db.open_delay)
        if self.db.open_error:
            raise self.db.open_error
        self.opened = True
        self.db.max_live = max(self.db.max_live, len(self.db.live_sessions))

    async def fetchval(self, query: str, *args):
        self._check_open()
        self.probes += 1
        if self.db.probe_error:
            raise self.db.probe_error
        return 1

    async def execute(self, query: str, *args) -> str:
        self._check_open()
        self.db.queries.append((query, args))
        statement = query.strip().upper()
        if statement.startswith("CREATE TABLE"):
            if self.db.schema_gate:
                await self.db.schema_gate.wait()
            if self.db.schema_error:
                raise self.db.schema_error
            self.db.tables.add("habit_tracking")
            return "CREATE TABLE"
        if statement.startswith("INSERT"):
            if self.db.insert_error:
                raise self.db.insert_error
            key = (args[0], args[1], args[4])
            if key in self.db.rows:
                raise asyncpg.exceptions.UniqueViolationError(
                    'duplicate key value violates unique constraint "habit_tracking_pkey"'
                )
            self.db.rows[key] = args
            return "INSERT 0 1"
        raise AssertionError(f"unexpected statement: {query}")

    async def close(self):
        self.closed = True

    def _check_open(self):
        if not self.opened or self.closed:
            raise ConnectionResetError("session is closed")


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def db_config():
    return ConnectionConfig(
        host="localhost", port=5432, username="tracker", password="secret", database="habits"
    )


@pytest.fixture
async def manager(fake_db):
    manager = ConnectionManager(fake_db.connect, settle_s=0.2, keepalive_interval_s=3600)
    yield manager
    await manager.close()


@pytest.fixture
async def connected(manager, db_config):
    await manager.connect(db_config)
    return manager


@pytest.fixture
def writer(manager):
    return EntryWriter(manager)


@pytest.fixture
async def settings_store(tmp_path):
    store = SettingsStore(tmp_path / "settings.db")
    await store.open()
    yield store
    await store.close()
