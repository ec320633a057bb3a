"""HabitKeeper, the object a UI talks to: settings, connect, start/stop timer."""

import logging

from habitkeeper.config import config
from habitkeeper.db.postgres import ConnectionManager
from habitkeeper.db.sqlite import SettingsStore
from habitkeeper.errors import StoreConnectionError
from habitkeeper.models import ConnectionConfig, TimerEntry, TimerType
from habitkeeper.services.timer import TimerTracker
from habitkeeper.services.writer import EntryWriter

log = logging.getLogger("habitkeeper.keeper")


class HabitKeeper:
    def __init__(
        self,
        settings: SettingsStore,
        manager: ConnectionManager,
        tracker: TimerTracker | None = None,
    ):
        self.settings = settings
        self.manager = manager
        self.tracker = tracker or TimerTracker(EntryWriter(manager))

    @classmethod
    def build(cls, connector=None) -> "HabitKeeper":
        """Wire up the default components from `config`."""
        manager = ConnectionManager(connector) if connector else ConnectionManager()
        return cls(SettingsStore(), manager)

    async def open(self):
        """Open the settings store and reconnect with saved settings, if any."""
        await self.settings.open()
        db_config = await self.settings.load_connection_config()
        if not db_config.is_complete():
            log.info("No saved connection settings, waiting for configuration")
            return
        try:
            await self.manager.connect(db_config)
        except StoreConnectionError as e:
            log.warning(f"Could not reconnect with saved settings: {e}")

    async def close(self):
        self.tracker.stop()
        await self.tracker.wait_for_writes(timeout=config.timer.write_drain_timeout_s)
        await self.manager.close()
        await self.settings.close()

    async def set_config(self, db_config: ConnectionConfig):
        await self.settings.save_connection_config(db_config)

    async def get_config(self) -> ConnectionConfig:
        return await self.settings.load_connection_config()

    async def connect(self):
        """Connect with whatever is stored right now. Errors propagate to the caller."""
        db_config = await self.settings.load_connection_config()
        await self.manager.connect(db_config)

    def start_timer(self, timer_type: TimerType, name: str, description: str = "") -> TimerEntry:
        return self.tracker.start(timer_type, name, description)

    def stop_timer(self) -> TimerEntry | None:
        """Stop the running timer and return the frozen entry being written."""
        if self.tracker.stop() is None:
            return None
        return self.tracker.last_completed

    def current_timer(self) -> TimerEntry | None:
        return self.tracker.current
