"""Settings and connection API: what the settings form's Save button calls."""

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from habitkeeper.errors import IncompleteConfigError, StoreConnectionError
from habitkeeper.models import ConnectionConfig
from habitkeeper.services.keeper import HabitKeeper

router = APIRouter(tags=["settings"])


class SettingsUpdate(BaseModel):
    host: str
    port: int = Field(5432, ge=1, le=65535)
    username: str
    password: str = ""
    database: str


def get_keeper(request: Request) -> HabitKeeper:
    return request.app.state.keeper


async def _connect(keeper: HabitKeeper) -> dict:
    try:
        await keeper.connect()
    except IncompleteConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreConnectionError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"state": keeper.manager.state.value}


@router.get("/settings")
async def get_settings(request: Request):
    """Stored connection settings. The password is never echoed back."""
    db_config = await get_keeper(request).get_config()
    return {
        "host": db_config.host,
        "port": db_config.port,
        "username": db_config.username,
        "database": db_config.database,
        "has_password": bool(db_config.password),
    }


@router.put("/settings")
async def save_settings(body: SettingsUpdate, request: Request):
    """Persist settings, then connect with them."""
    keeper = get_keeper(request)
    await keeper.set_config(ConnectionConfig(**body.model_dump()))
    return await _connect(keeper)


@router.post("/connect")
async def connect(request: Request):
    return await _connect(get_keeper(request))


@router.get("/connection")
async def connection_status(request: Request):
    manager = get_keeper(request).manager
    return {
        "state": manager.state.value,
        "alive": await manager.test_connection(),
    }
