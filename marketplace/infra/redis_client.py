"""
Client Redis partagé (cache des sessions de paiement, verrous consultatifs).
- USE_FAKE_REDIS_FOR_TESTS=1: utilise fakeredis (tests), comme le lifespan du rate limiter.
"""
import os
from typing import Optional

import redis

from marketplace.config import REDIS_URL

_redis: Optional[redis.Redis] = None

def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
            import fakeredis  # tests only
            _redis = fakeredis.FakeRedis(decode_responses=True)
        else:
            _redis = redis.Redis.from_url(REDIS_URL, encoding="utf-8", decode_responses=True)
    return _redis

def reset_redis() -> None:
    """Oublie l'instance courante (tests, rechargement de config)."""
    global _redis
    _redis = None
