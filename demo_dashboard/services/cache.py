import json
import logging

import redis

logger = logging.getLogger(__name__)


class Cache:
    """JSON get/set/delete over a Redis-compatible key-value store."""

    def __init__(self, client):
        self._r = client

    @classmethod
    def from_url(cls, url):
        return cls(redis.StrictRedis.from_url(url, decode_responses=True))

    def get(self, key):
        raw = self._r.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Discarding undecodable cache value under {key}")
            return None

    def set(self, key, value, ex=None):
        """Store ``value`` as JSON. ``ex`` is a TTL in seconds, or no expiry."""
        payload = json.dumps(value)
        if ex:
            self._r.set(key, payload, ex=int(ex))
        else:
            self._r.set(key, payload)

    def delete(self, key):
        self._r.delete(key)
