"""Exception types raised by the connection and write paths."""

import asyncio

import asyncpg

# Failures surfaced by the driver or the socket underneath it.
DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


class HabitKeeperError(Exception):
    pass


class StoreConnectionError(HabitKeeperError):
    """The database session could not be established or is missing."""


class EstablishFailedError(StoreConnectionError):
    """The transport was created but never answered the liveness probe."""


class NoSessionError(StoreConnectionError):
    """An operation that needs a live session ran without one."""


class IncompleteConfigError(StoreConnectionError):
    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Connection settings incomplete: missing {', '.join(missing)}")


class SchemaInitError(StoreConnectionError):
    """Creating the habit_tracking table failed at the driver."""


class WriteError(HabitKeeperError):
    pass


class WriteNoSessionError(WriteError):
    """Insert attempted while disconnected."""


class InsertFailedError(WriteError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Failed to insert timer entry: {detail}")
