"""Tests for the HabitKeeper facade."""

import pytest

from habitkeeper.db.postgres import ConnectionState
from habitkeeper.db.sqlite import SettingsStore
from habitkeeper.errors import EstablishFailedError, IncompleteConfigError
from habitkeeper.models import TimerType
from habitkeeper.services.keeper import HabitKeeper


@pytest.fixture
async def keeper(settings_store, manager):
    keeper = HabitKeeper(settings_store, manager)
    yield keeper
    await manager.close()


@pytest.mark.asyncio
async def test_connect_reads_settings_at_call_time(keeper, db_config, fake_db):
    with pytest.raises(IncompleteConfigError):
        await keeper.connect()

    await keeper.set_config(db_config)
    await keeper.connect()

    assert keeper.manager.state is ConnectionState.CONNECTED
    assert fake_db.sessions[-1].db_config == db_config


@pytest.mark.asyncio
async def test_connect_failure_propagates(keeper, db_config, fake_db):
    await keeper.set_config(db_config)
    fake_db.open_error = ConnectionRefusedError("could not connect to server")

    with pytest.raises(EstablishFailedError, match="could not connect"):
        await keeper.connect()
    assert keeper.manager.state is ConnectionState.FAILED


@pytest.mark.asyncio
async def test_open_reconnects_with_saved_settings(tmp_path, manager, db_config, fake_db):
    path = tmp_path / "settings.db"
    first = SettingsStore(path)
    await first.open()
    await first.save_connection_config(db_config)
    await first.close()

    keeper = HabitKeeper(SettingsStore(path), manager)
    await keeper.open()
    try:
        assert manager.state is ConnectionState.CONNECTED
    finally:
        await keeper.close()


@pytest.mark.asyncio
async def test_open_tolerates_unreachable_database(tmp_path, manager, db_config, fake_db):
    path = tmp_path / "settings.db"
    first = SettingsStore(path)
    await first.open()
    await first.save_connection_config(db_config)
    await first.close()

    fake_db.open_error = ConnectionRefusedError("connection refused")
    keeper = HabitKeeper(SettingsStore(path), manager)
    await keeper.open()
    try:
        assert manager.state is ConnectionState.FAILED
    finally:
        await keeper.close()


@pytest.mark.asyncio
async def test_timer_round_trip_writes_row(keeper, db_config, fake_db):
    await keeper.set_config(db_config)
    await keeper.connect()

    started = keeper.start_timer(TimerType.HOBBY, "piano", "scales")
    assert keeper.current_timer() is started

    stopped = keeper.stop_timer()
    assert stopped.name == "piano"
    assert keeper.current_timer() is None
    await keeper.tracker.wait_for_writes()

    assert list(fake_db.rows) == [("hobby", "piano", started.start_time)]


@pytest.mark.asyncio
async def test_stop_timer_when_idle(keeper):
    assert keeper.stop_timer() is None


@pytest.mark.asyncio
async def test_close_flushes_running_timer(keeper, db_config, fake_db):
    await keeper.set_config(db_config)
    await keeper.connect()
    keeper.start_timer(TimerType.TASK, "late night fix")

    await keeper.close()

    assert len(fake_db.rows) == 1
    assert keeper.manager.state is ConnectionState.DISCONNECTED
