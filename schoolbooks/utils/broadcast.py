import json
import logging

import redis

log = logging.getLogger(__name__)


def user_channel(user_id) -> str:
    return f"user.{user_id}"


class LogBroadcaster:
    """Used when no Redis is configured: events only go to the log."""

    def publish(self, channel: str, payload: dict):
        log.info("broadcast %s %s", channel, json.dumps(payload, default=str))


class RedisBroadcaster:
    """Publishes each event as JSON on a Redis pub/sub channel."""

    def __init__(self, client: redis.Redis):
        self._redis = client

    def publish(self, channel: str, payload: dict):
        self._redis.publish(channel, json.dumps(payload, default=str))
