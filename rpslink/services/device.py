"""
Device runtime: the single owner of one controller and its Round.

The owner context is the asyncio loop ``start()`` runs on. Inbound commands
arrive on the channel's context and are moved onto that loop with
``call_soon_threadsafe`` before the controller sees them, so every mutation of
the Round happens on one thread and no lock is needed.

Outbound commands become background tasks. Game logic never looks at their
result; ``drain()`` awaits whatever is still in flight, for shutdown and tests.
"""
from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Callable

from rpslink.config import Settings
from rpslink.exceptions import InvalidRole
from rpslink.game.controllers import EmitFn, PeerController, PrimaryController, RoundController
from rpslink.game.events import Notification
from rpslink.services.channel import MessageChannel

logger = logging.getLogger(__name__)


class Device:
    def __init__(self, controller: RoundController, channel: MessageChannel) -> None:
        self.controller = controller
        self.channel = channel
        self.loop: asyncio.AbstractEventLoop | None = None
        self.listeners: list[EmitFn] = []
        self._pending: set[asyncio.Task] = set()

        controller.send = self.dispatch
        controller.emit = self._fanout

    @classmethod
    def for_role(
        cls,
        role: str,
        channel: MessageChannel,
        *,
        send_phone_choice: bool = True,
        wait_for_peer: bool = False,
    ) -> Device:
        if role == "primary":
            controller: RoundController = PrimaryController(
                send_phone_choice=send_phone_choice,
                wait_for_peer=wait_for_peer,
            )
        elif role == "peer":
            controller = PeerController()
        else:
            raise InvalidRole(role)
        return cls(controller, channel)

    @classmethod
    def from_settings(cls, settings: Settings, channel: MessageChannel) -> Device:
        return cls.for_role(
            settings.ROLE,
            channel,
            send_phone_choice=settings.SEND_PHONE_CHOICE,
            wait_for_peer=settings.PRIMARY_WAITS_FOR_PEER,
        )

    @property
    def device_id(self) -> str:
        return self.channel.device_id

    # --------- lifecycle ---------

    async def start(self) -> None:
        self.loop = asyncio.get_running_loop()
        self.channel.on_receive(self._on_inbound)
        await self.channel.attach()
        logger.info("%s started as %s", self.device_id, self.controller.role.value)

    async def resume(self) -> None:
        await self.channel.attach()

    async def pause(self) -> None:
        await self.channel.detach()

    async def drain(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        await self.drain()
        await self.channel.close()
        logger.info("%s closed", self.device_id)

    # --------- presentation ---------

    def subscribe(self, listener: EmitFn) -> Callable[[], None]:
        self.listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self.listeners:
                self.listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> dict:
        return {
            "device_id": self.device_id,
            "attached": self.channel.attached,
            **self.controller.snapshot(),
        }

    # --------- plumbing ---------

    def dispatch(self, raw: str) -> None:
        if self.loop is None:
            raise RuntimeError("Device.start() must run before anything is sent")
        task = self.loop.create_task(self.channel.send(raw))
        self._pending.add(task)
        task.add_done_callback(partial(self._sent, raw))

    def _sent(self, raw: str, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("%s: sending %r failed: %s", self.device_id, raw, exc)
            return
        logger.debug("%s: %r -> %s", self.device_id, raw, task.result())

    def _on_inbound(self, path: str, raw: str) -> None:
        if path != self.channel.path:
            logger.debug("%s ignores message on %s", self.device_id, path)
            return
        if self.loop is None or self.loop.is_closed():
            logger.debug("%s owner loop gone, dropping %r", self.device_id, raw)
            return
        self.loop.call_soon_threadsafe(self.controller.handle_command, raw)

    def _fanout(self, notification: Notification, data: dict) -> None:
        for listener in list(self.listeners):
            try:
                listener(notification, data)
            except Exception:
                logger.exception("%s listener failed on %s", self.device_id, notification.value)
