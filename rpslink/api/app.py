from contextlib import asynccontextmanager

from fastapi import FastAPI

from rpslink.api.main import api_router
from rpslink.api.routes.ws import NotificationPump
from rpslink.config import Settings, get_settings
from rpslink.db.redis import create_client
from rpslink.logs import setup_logging
from rpslink.services.channel import LoopbackHub, MessageChannel
from rpslink.services.connection_manager import ConnectionManager
from rpslink.services.device import Device
from rpslink.services.redis_channel import RedisChannel


def build_channel(settings: Settings) -> MessageChannel:
    if settings.TRANSPORT == "redis":
        return RedisChannel(
            create_client(settings.REDIS_URI),
            settings.DEVICE_ID,
            path=settings.CHANNEL_PATH,
            prefix=settings.REDIS_PREFIX,
        )
    # a lone loopback device has nobody to talk to; useful for driving the screen by hand
    return LoopbackHub().channel(settings.DEVICE_ID, settings.CHANNEL_PATH)


def create_app(device: Device | None = None, settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        dev = device or Device.from_settings(settings, build_channel(settings))
        manager = ConnectionManager()
        pump = NotificationPump(manager)
        pump.start()
        dev.subscribe(pump)
        await dev.start()

        app.state.device = dev
        app.state.manager = manager
        yield
        await dev.close()
        await pump.stop()
        hub = getattr(dev.channel, "hub", None)
        if device is None and hub is not None:
            hub.close()

    app = FastAPI(
        title="rpslink",
        description="Rock paper scissors between a primary and a peer device",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(api_router)
    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    uvicorn.run(create_app(settings=settings), host=settings.HOST, port=settings.PORT)
