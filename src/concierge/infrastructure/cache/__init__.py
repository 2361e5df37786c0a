"""
Cache infrastructure.
"""

from concierge.infrastructure.cache.redis_cache_client import RedisCacheClient

__all__ = ["RedisCacheClient"]
