"""Persist completed timer entries into habit_tracking."""

import logging

from habitkeeper.db.postgres import ConnectionManager
from habitkeeper.errors import DRIVER_ERRORS, InsertFailedError, NoSessionError, WriteNoSessionError
from habitkeeper.models import TimerEntry

log = logging.getLogger("habitkeeper.writer")

INSERT_SQL = """
    INSERT INTO habit_tracking (task_type, task_name, description, mins, begin_time, end_time)
    VALUES ($1, $2, $3, $4, $5, $6)
"""


class EntryWriter:
    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    async def insert(self, entry: TimerEntry):
        """Write one row for `entry`. No retries.

        Raises WriteNoSessionError when disconnected, InsertFailedError on any
        driver failure, primary-key collisions included.
        """
        task_type, name, begin = entry.key
        log.info(f"Inserting {task_type} entry {name!r} started {begin.isoformat()}")
        try:
            await self.manager.execute(INSERT_SQL, *entry.as_row())
        except NoSessionError as e:
            log.error("No PostgreSQL session available")
            raise WriteNoSessionError(str(e)) from e
        except DRIVER_ERRORS as e:
            log.error(f"Failed to insert timer entry: {e!r}")
            raise InsertFailedError(str(e)) from e
        log.info(f"Inserted {entry.duration} min {task_type} entry {name!r}")
