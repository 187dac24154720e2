import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Presentation clients attached to this device's screen."""

    def __init__(self):
        self.clients: set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.clients.add(websocket)

    async def disconnect(self, websocket: WebSocket) -> None:
        if websocket not in self.clients:
            return
        self.clients.discard(websocket)
        try:
            await websocket.close()
        except RuntimeError:
            # already closed by the client
            pass

    async def send_to(self, websocket: WebSocket, message: dict) -> None:
        await websocket.send_json(message)

    async def broadcast(self, message: dict) -> None:
        dead = []
        for ws in list(self.clients):
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.debug("dropping presentation client: %s", e)
                dead.append(ws)

        for ws in dead:
            self.clients.discard(ws)
