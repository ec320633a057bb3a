"""Local settings store using aiosqlite. Holds the PostgreSQL connection parameters."""

import logging
from pathlib import Path

import aiosqlite

from habitkeeper.config import config
from habitkeeper.models import ConnectionConfig

log = logging.getLogger("habitkeeper.settings")

SCHEMA = """
CREATE TABLE IF NOT EXISTS settings (
    key     TEXT PRIMARY KEY,
    value   TEXT NOT NULL
);
"""

KEY_USER = "postgresUser"
KEY_PASS = "postgresPass"
KEY_HOST = "postgresHost"
KEY_PORT = "postgresPort"
KEY_DB = "postgresDB"


class SettingsStore:
    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else config.db.settings_path
        self._db: aiosqlite.Connection | None = None

    async def open(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(str(self.path))
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()
        log.info(f"Settings store opened at {self.path}")

    async def close(self):
        if self._db:
            await self._db.close()
            self._db = None

    async def get(self, key: str, default: str | None = None) -> str | None:
        cursor = await self._conn().execute("SELECT value FROM settings WHERE key = ?", (key,))
        row = await cursor.fetchone()
        return row["value"] if row else default

    async def set_many(self, values: dict[str, str]):
        await self._conn().executemany(
            """INSERT INTO settings (key, value) VALUES (?, ?)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value""",
            list(values.items()),
        )
        await self._conn().commit()

    async def save_connection_config(self, db_config: ConnectionConfig):
        values = {
            KEY_USER: db_config.username,
            KEY_HOST: db_config.host,
            KEY_DB: db_config.database,
        }
        if db_config.port is not None:
            values[KEY_PORT] = str(db_config.port)
        if db_config.password is not None:
            values[KEY_PASS] = db_config.password
        await self.set_many(values)
        log.info(
            f"Saved connection settings for {db_config.username}@{db_config.host}:"
            f"{db_config.port}/{db_config.database}"
        )

    async def load_connection_config(self) -> ConnectionConfig:
        raw_port = await self.get(KEY_PORT)
        try:
            port = int(raw_port) if raw_port is not None else config.db.default_port
        except ValueError:
            log.warning(f"Ignoring non-numeric {KEY_PORT}: {raw_port!r}")
            port = None
        return ConnectionConfig(
            host=await self.get(KEY_HOST, ""),
            port=port,
            username=await self.get(KEY_USER, ""),
            password=await self.get(KEY_PASS),
            database=await self.get(KEY_DB, ""),
        )

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("Settings store not opened")
        return self._db
