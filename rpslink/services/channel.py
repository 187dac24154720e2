"""
Message channel between the two devices.

A channel sends a short text command to every currently reachable peer and
hands inbound commands to a single registered handler. Delivery is best
effort and at most once: nothing is queued, retried or acknowledged, and
commands arriving while the channel is detached are dropped.

The handler is invoked on the transport's own context (a worker thread for
the loopback hub, a listener task for redis). Whoever owns game state must
marshal onto its own context before acting on a command.
"""
from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from rpslink.exceptions import ChannelError

logger = logging.getLogger(__name__)

ReceiveFn = Callable[[str, str], None]


class MessageChannel(ABC):
    def __init__(self, device_id: str, path: str = "/cmd") -> None:
        self.device_id = device_id
        self.path = path
        self.attached = False
        self._handler: ReceiveFn | None = None

    def on_receive(self, handler: ReceiveFn) -> None:
        """Register the inbound handler, called as handler(path, command)."""
        if self._handler is not None and self._handler is not handler:
            raise ChannelError(f"Channel for {self.device_id} already has a handler")
        self._handler = handler

    async def send(self, command: str) -> dict[str, bool]:
        """Send to each reachable peer. Returns peer_id -> delivered; never raises."""
        try:
            peers = await self.reachable_peers()
        except Exception as e:
            logger.warning("%s could not list peers: %s", self.device_id, e)
            return {}

        outcome: dict[str, bool] = {}
        for peer in peers:
            try:
                outcome[peer] = await self._send_to(peer, command)
            except Exception as e:
                logger.warning("%s -> %s failed: %s", self.device_id, peer, e)
                outcome[peer] = False
        if not any(outcome.values()):
            logger.info("%s: %r reached no peer", self.device_id, command)
        return outcome

    @abstractmethod
    async def reachable_peers(self) -> list[str]:
        ...

    @abstractmethod
    async def _send_to(self, peer: str, command: str) -> bool:
        ...

    async def attach(self) -> None:
        self.attached = True

    async def detach(self) -> None:
        self.attached = False

    async def close(self) -> None:
        await self.detach()

    def _deliver(self, path: str, command: str) -> None:
        if not self.attached:
            logger.debug("%s detached, dropping %r", self.device_id, command)
            return
        if self._handler is None:
            logger.debug("%s has no handler, dropping %r", self.device_id, command)
            return
        self._handler(path, command)


class LoopbackHub:
    """
    In-process transport pairing devices that live in the same interpreter.

    Deliveries run one at a time on a worker thread, so handlers always see a
    foreign context, as they would with a real radio. ``loss`` drops that
    fraction of sends to simulate a lossy link.
    """

    def __init__(self, loss: float = 0.0, rng: random.Random | None = None) -> None:
        self.loss = loss
        self.rng = rng or random.Random()
        self.channels: dict[str, LoopbackChannel] = {}
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="loopback")

    def channel(self, device_id: str, path: str = "/cmd") -> LoopbackChannel:
        if device_id in self.channels:
            raise ChannelError(f"Device {device_id} is already on this hub")
        ch = LoopbackChannel(self, device_id, path)
        self.channels[device_id] = ch
        return ch

    def reachable(self, exclude: str) -> list[str]:
        return [d for d, ch in self.channels.items() if d != exclude and ch.attached]

    def post(self, target: str, path: str, command: str) -> bool:
        ch = self.channels.get(target)
        if ch is None:
            return False
        if self.loss and self.rng.random() < self.loss:
            logger.debug("loopback dropped %r to %s", command, target)
            return False
        self._executor.submit(ch._deliver, path, command)
        return True

    def inject(self, target: str, command: str, path: str | None = None) -> bool:
        """Deliver a raw command to ``target`` as if a peer had sent it."""
        ch = self.channels[target]
        return self.post(target, path if path is not None else ch.path, command)

    def flush(self) -> None:
        """Block until every delivery queued so far has been handed to its channel."""
        self._executor.submit(lambda: None).result()

    def close(self) -> None:
        self._executor.shutdown(wait=True)


class LoopbackChannel(MessageChannel):
    def __init__(self, hub: LoopbackHub, device_id: str, path: str = "/cmd") -> None:
        super().__init__(device_id, path)
        self.hub = hub

    async def reachable_peers(self) -> list[str]:
        return self.hub.reachable(exclude=self.device_id)

    async def _send_to(self, peer: str, command: str) -> bool:
        return self.hub.post(peer, self.path, command)
