import json
from datetime import timedelta

import redis

from schoolbooks.db import db
from schoolbooks.models import CacheEntry, utcnow


class DatabaseCache:
    """Key/value rows in ``cache_entries``.

    Every process on the same database sees the same values, so a cron run of
    ``flask refresh-tlds`` reaches the web workers without Redis.
    """

    def get(self, key):
        row = db.session.get(CacheEntry, key)
        if row is None or row.expires_at <= utcnow():
            return None
        return row.value

    def set(self, key, data, ttl: int):
        row = db.session.get(CacheEntry, key) or CacheEntry(key=key)
        row.value = data
        row.expires_at = utcnow() + timedelta(seconds=ttl)
        db.session.add(row)
        db.session.commit()


class RedisCache:
    """Values are stored JSON encoded under ``prefix + key``."""

    def __init__(self, client: redis.Redis, prefix: str = "schoolbooks:"):
        self._redis = client
        self.prefix = prefix

    def get(self, key):
        raw = self._redis.get(self.prefix + key)
        return json.loads(raw) if raw is not None else None

    def set(self, key, data, ttl: int):
        self._redis.setex(self.prefix + key, ttl, json.dumps(data))
