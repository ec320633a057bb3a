"""Timer session tracker: Idle -> Running -> Idle, one entry per run."""

import asyncio
import logging
from datetime import datetime
from typing import Callable

from habitkeeper.config import config
from habitkeeper.errors import WriteError
from habitkeeper.models import TimerEntry, TimerType
from habitkeeper.services.writer import EntryWriter

log = logging.getLogger("habitkeeper.timer")


class TimerTracker:
    def __init__(
        self,
        writer: EntryWriter,
        clock: Callable[[], datetime] = datetime.now,
        tick_interval_s: float | None = None,
    ):
        self.writer = writer
        self.clock = clock
        self.tick_interval_s = (
            config.timer.tick_interval_s if tick_interval_s is None else tick_interval_s
        )
        self.current: TimerEntry | None = None
        self.last_completed: TimerEntry | None = None
        self._ticker: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self.current is not None

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    def start(self, timer_type: TimerType, name: str, description: str = "") -> TimerEntry:
        """Begin a new session, flushing the running one first."""
        self.stop()
        self.current = TimerEntry(
            type=timer_type, name=name, description=description, start_time=self.clock()
        )
        self._ticker = asyncio.create_task(self._tick_loop())
        log.info(f"Started {timer_type.value} timer {name!r}")
        return self.current

    def tick(self):
        if self.current is not None:
            self.current = self.current.refreshed(self.clock())

    def stop(self) -> asyncio.Task | None:
        """Freeze the running entry and submit it in the background.

        Returns the write task, or None when idle. The task resolves to True
        when the row was written; failures are logged, never raised.
        """
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        if self.current is None:
            return None

        completed = self.current.refreshed(self.clock())
        self.current = None
        self.last_completed = completed
        log.info(f"Stopped {completed.type.value} timer {completed.name!r} after {completed.duration} min")

        task = asyncio.create_task(self._submit(completed))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def wait_for_writes(self, timeout: float | None = None):
        """Wait for submitted writes to settle. Unfinished writes are left running."""
        if not self._pending:
            return
        _, pending = await asyncio.wait(set(self._pending), timeout=timeout)
        if pending:
            log.warning(f"{len(pending)} timer writes still pending after {timeout}s")

    async def _tick_loop(self):
        while True:
            await asyncio.sleep(self.tick_interval_s)
            self.tick()

    async def _submit(self, entry: TimerEntry) -> bool:
        try:
            await self.writer.insert(entry)
        except WriteError as e:
            # TODO: keep failed entries in a local outbox and replay them after the next connect
            task_type, name, begin = entry.key
            log.error(
                f"Dropping {task_type} entry {name!r} "
                f"({begin.isoformat()}, {entry.duration} min): {e}"
            )
            return False
        return True
