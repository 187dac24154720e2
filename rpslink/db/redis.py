import redis.asyncio as redis


def create_client(uri: str) -> redis.Redis:
    return redis.from_url(uri, encoding="utf-8", decode_responses=True)
