"""habit_tracking table creation. Runs after every successful connect."""

import logging

from habitkeeper.errors import DRIVER_ERRORS, SchemaInitError

log = logging.getLogger("habitkeeper.schema")

SCHEMA = """
CREATE TABLE IF NOT EXISTS habit_tracking (
    task_type   TEXT NOT NULL,
    task_name   TEXT NOT NULL,
    description TEXT,
    mins        INTEGER,
    begin_time  TIMESTAMP NOT NULL,
    end_time    TIMESTAMP,
    PRIMARY KEY (task_type, task_name, begin_time)
);
"""


async def ensure_schema(session):
    """Create habit_tracking if absent on an opened session.

    The manager hands over its session while still Connecting; its own
    execute() stays closed until this has run. Raises SchemaInitError when
    the statement fails.
    """
    try:
        await session.execute(SCHEMA)
    except DRIVER_ERRORS as e:
        log.error(f"Table creation failed: {e}")
        raise SchemaInitError(f"Failed to create habit_tracking: {e}") from e
    log.info("habit_tracking table ready")
