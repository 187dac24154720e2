import asyncio

import pytest

from rpslink.services.channel import LoopbackHub


class Recorder:
    """Collects everything a controller emits."""

    def __init__(self):
        self.events = []

    def __call__(self, notification, data):
        self.events.append((notification, data))

    def of(self, notification):
        return [data for n, data in self.events if n == notification]

    def clear(self):
        self.events.clear()


async def _wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


@pytest.fixture()
def recorder():
    return Recorder()


@pytest.fixture()
def sent():
    return []


@pytest.fixture()
def wait_until():
    return _wait_until


@pytest.fixture()
def hub():
    h = LoopbackHub()
    yield h
    h.close()
