import asyncio
import logging
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from rpslink.game.events import ClientEvent, Notification
from rpslink.game.models import Choice
from rpslink.services.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


class ClientMessage(BaseModel):
    type: ClientEvent
    data: dict | None = None
    meta: dict | None = None


def new_cid() -> str:
    return uuid.uuid4().hex


def _payload(evt, data, cid):
    return {
        "type": evt.value if isinstance(evt, Notification) else evt,
        "data": data,
        "meta": {"cid": cid or new_cid()},
    }


def _err(msg, cid):
    return {
        "type": "ERROR",
        "data": {"message": msg},
        "meta": {"cid": cid or new_cid()},
    }


def _parse_client_raw(raw: str) -> ClientMessage:
    try:
        return ClientMessage.model_validate_json(raw)
    except ValidationError:
        pass

    t = (raw or "").strip().lower()
    if t == "ping":
        return ClientMessage(type=ClientEvent.PING)
    if t == "reset":
        return ClientMessage(type=ClientEvent.RESET)
    if t in ("again", "play_again"):
        return ClientMessage(type=ClientEvent.PLAY_AGAIN)

    choice = Choice.from_input(t)
    if choice is None:
        raise ValueError("Unsupported message")
    return ClientMessage(type=ClientEvent.CHOOSE, data={"choice": choice.value})


class NotificationPump:
    """
    Forwards controller notifications to every presentation client, in the
    order the controller emitted them.
    """

    def __init__(self, manager: ConnectionManager) -> None:
        self.manager = manager
        self.queue: asyncio.Queue = asyncio.Queue()
        self._task: asyncio.Task | None = None

    def __call__(self, notification: Notification, data: dict) -> None:
        self.queue.put_nowait(_payload(notification, data, None))

    def start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            message = await self.queue.get()
            await self.manager.broadcast(message)


ws_router = APIRouter(tags=["websocket"])


@ws_router.websocket("/ws")
async def presentation_endpoint(websocket: WebSocket):
    """WebSocket for the screen of this device: user actions in, notifications out."""
    device = websocket.app.state.device
    manager: ConnectionManager = websocket.app.state.manager

    await manager.connect(websocket)
    logger.info("presentation client connected to %s", device.device_id)
    await manager.send_to(websocket, _payload("SNAPSHOT", device.snapshot(), None))

    try:
        while True:
            raw_data = await websocket.receive_text()

            try:
                msg = _parse_client_raw(raw_data)
            except (ValueError, ValidationError) as e:
                logger.debug("bad presentation message %r: %s", raw_data, e)
                await manager.send_to(websocket, _err(str(e), None))
                continue

            cid = (msg.meta or {}).get("cid")
            controller = device.controller

            if msg.type is ClientEvent.CHOOSE:
                choice = Choice.from_input(str((msg.data or {}).get("choice", "")))
                if choice is None:
                    await manager.send_to(websocket, _err("CHOOSE requires data.choice rock|paper|scissors", cid))
                    continue
                if not controller.submit_choice(choice):
                    await manager.send_to(websocket, _err("Input is disabled", cid))
            elif msg.type is ClientEvent.RESET:
                controller.request_reset()
            elif msg.type is ClientEvent.PLAY_AGAIN:
                controller.request_play_again()
            elif msg.type is ClientEvent.PING:
                await manager.send_to(websocket, {"type": "PONG", "data": None, "meta": {"cid": cid or new_cid()}})

    except WebSocketDisconnect:
        logger.info("presentation client left %s", device.device_id)
        await manager.disconnect(websocket)
