"""
Redis pub/sub transport.

Each attached device subscribes to ``{prefix}:{device_id}{path}``. Reachable
peers are whoever else is subscribed on the same path right now, found with
PUBSUB CHANNELS on demand. Pub/sub keeps nothing for absent subscribers, which
is exactly the at-most-once contract of a channel.
"""
from __future__ import annotations

import asyncio
import logging

import redis.asyncio as redis

from rpslink.services.channel import MessageChannel

logger = logging.getLogger(__name__)


class RedisChannel(MessageChannel):
    def __init__(self, client: redis.Redis, device_id: str, path: str = "/cmd", prefix: str = "rps") -> None:
        super().__init__(device_id, path)
        self.client = client
        self.prefix = prefix
        self._pubsub = None
        self._listener: asyncio.Task | None = None

    def channel_name(self, device_id: str) -> str:
        return f"{self.prefix}:{device_id}{self.path}"

    async def reachable_peers(self) -> list[str]:
        names = await self.client.pubsub_channels(f"{self.prefix}:*{self.path}")
        peers = []
        for name in names:
            if isinstance(name, bytes):
                name = name.decode("utf-8")
            device = name[len(self.prefix) + 1:len(name) - len(self.path)]
            if device and device != self.device_id:
                peers.append(device)
        return sorted(peers)

    async def _send_to(self, peer: str, command: str) -> bool:
        receivers = await self.client.publish(self.channel_name(peer), command)
        return receivers > 0

    async def attach(self) -> None:
        if self.attached:
            return
        self._pubsub = self.client.pubsub()
        await self._pubsub.subscribe(self.channel_name(self.device_id))
        self._listener = asyncio.create_task(self._listen(self._pubsub))
        self.attached = True
        logger.info("%s listening on %s", self.device_id, self.channel_name(self.device_id))

    async def detach(self) -> None:
        if not self.attached:
            return
        self.attached = False
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self._pubsub is not None:
            await self._pubsub.unsubscribe()
            await self._pubsub.aclose()
            self._pubsub = None
        logger.info("%s stopped listening", self.device_id)

    async def _listen(self, pubsub) -> None:
        own = f"{self.prefix}:{self.device_id}"
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                channel = _text(message["channel"])
                path = channel[len(own):] if channel.startswith(own) else ""
                self._deliver(path, _text(message["data"]))
        except redis.RedisError as e:
            logger.error("%s listener stopped: %s", self.device_id, e)
            if self._pubsub is not pubsub:
                return
            # the subscription died with the connection; the next attach() subscribes again
            self.attached = False
            self._listener = None
            self._pubsub = None
            await pubsub.aclose()


def _text(value) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)
