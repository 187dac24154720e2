from typing import Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel


class StateView(BaseModel):
    device_id: str
    role: str
    phase: str
    status: str
    local_choice: str | None
    remote_choice: str | None
    outcome: str | None
    accepting_input: bool
    attached: bool


web_router = APIRouter(tags=["web"])


@web_router.get("/state")
def state(request: Request) -> StateView:
    return StateView(**request.app.state.device.snapshot())


@web_router.post("/lifecycle/{action}")
async def lifecycle(action: Literal["pause", "resume"], request: Request) -> StateView:
    """Foreground/background hook: the channel only listens while resumed."""
    device = request.app.state.device
    if action == "pause":
        await device.pause()
    else:
        await device.resume()
    return StateView(**device.snapshot())
