"""Timer API: start/stop sessions."""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from habitkeeper.models import TimerType

router = APIRouter(tags=["timer"])


class TimerStart(BaseModel):
    type: TimerType = TimerType.TASK
    name: str
    description: str = ""


@router.get("/timer")
async def current_timer(request: Request):
    entry = request.app.state.keeper.current_timer()
    return {"timer": entry.to_dict() if entry else None}


@router.post("/timer/start")
async def start_timer(body: TimerStart, request: Request):
    """Start a session. A running session is stopped and written first."""
    entry = request.app.state.keeper.start_timer(body.type, body.name, body.description)
    return {"timer": entry.to_dict()}


@router.post("/timer/stop")
async def stop_timer(request: Request):
    entry = request.app.state.keeper.stop_timer()
    return {"timer": entry.to_dict() if entry else None}
