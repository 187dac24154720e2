import logging

import pytest
from pydantic import ValidationError

from rpslink.api.app import build_channel
from rpslink.config import Settings
from rpslink.logs import setup_logging
from rpslink.services.channel import LoopbackChannel
from rpslink.services.redis_channel import RedisChannel


def test_settings_read_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("RPSLINK_ROLE", "peer")
    monkeypatch.setenv("RPSLINK_DEVICE_ID", "watch")
    monkeypatch.setenv("RPSLINK_PRIMARY_WAITS_FOR_PEER", "true")

    s = Settings()

    assert s.ROLE == "peer"
    assert s.DEVICE_ID == "watch"
    assert s.PRIMARY_WAITS_FOR_PEER is True
    assert s.CHANNEL_PATH == "/cmd"


def test_settings_reject_unknown_role() -> None:
    with pytest.raises(ValidationError):
        Settings(ROLE="referee")


def test_build_channel_follows_transport() -> None:
    loop_ch = build_channel(Settings(TRANSPORT="loopback", DEVICE_ID="phone"))
    assert isinstance(loop_ch, LoopbackChannel)
    loop_ch.hub.close()

    redis_ch = build_channel(Settings(TRANSPORT="redis", DEVICE_ID="watch", REDIS_PREFIX="game"))
    assert isinstance(redis_ch, RedisChannel)
    assert redis_ch.channel_name("watch") == "game:watch/cmd"


def test_setup_logging_is_idempotent() -> None:
    root = logging.getLogger()
    level = root.level

    setup_logging("debug")
    setup_logging("INFO")

    ours = [h for h in root.handlers if getattr(h, "_rpslink", False)]
    assert len(ours) == 1
    assert root.level == logging.INFO

    root.removeHandler(ours[0])
    root.setLevel(level)
