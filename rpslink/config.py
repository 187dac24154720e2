from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="RPSLINK_", extra="ignore")

    ROLE: Literal["primary", "peer"] = "primary"
    DEVICE_ID: str = "phone"
    CHANNEL_PATH: str = "/cmd"

    TRANSPORT: Literal["redis", "loopback"] = "redis"
    REDIS_URI: str = "redis://localhost:6379/0"
    REDIS_PREFIX: str = "rps"

    # the peer never acts on the primary's choice; keep sending it for parity with older watches
    SEND_PHONE_CHOICE: bool = True
    # primary input stays disabled after a reset until the peer's choice arrives
    PRIMARY_WAITS_FOR_PEER: bool = False

    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
