"""
Redis-based caching service for compliance explanations

Explanations for unknown or restricted HS codes come from a paid model call
and change rarely, so they are cached by prompt to cut latency and API cost.
"""

import hashlib
import logging
import time
from datetime import timedelta
from typing import Optional, Dict, Any, Union

import redis.asyncio as redis
from redis.asyncio import Redis

from ..core.config import settings


logger = logging.getLogger(__name__)


class CacheService:
    """Redis-based caching service for explanation oracle output"""
    
    # Cache configuration
    DEFAULT_TTL_HOURS = 168  # 7 days
    STATS_TTL_DAYS = 30
    
    # Cache keys
    CACHE_KEY_PREFIX = "trade_compliance:explanation"
    STATS_KEY_PREFIX = "trade_compliance:explanation_stats"
    
    def __init__(self, redis_url: Optional[str] = None):
        """Initialize Redis connection settings"""
        self.redis_url = redis_url or settings.REDIS_URL
        self._redis: Optional[Redis] = None
        self._connection_pool = None
        
    async def initialize(self) -> bool:
        """Initialize Redis connection with fallback handling"""
        try:
            self._connection_pool = redis.ConnectionPool.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=20,
                retry_on_timeout=True,
                socket_connect_timeout=2,  # Fail fast when Redis is down
                socket_timeout=3,
            )
            
            self._redis = redis.Redis(connection_pool=self._connection_pool)
            
            # Test connection
            await self._redis.ping()
            logger.info("Redis cache service initialized successfully")
            return True
            
        except Exception as e:
            logger.error(f"Failed to initialize Redis cache: {str(e)}")
            self._redis = None
            return False
    
    async def close(self):
        """Close Redis connection and cleanup resources"""
        if self._redis:
            await self._redis.aclose()
        if self._connection_pool:
            await self._connection_pool.disconnect()
        self._redis = None
        logger.info("Redis cache service closed")
    
    def _generate_cache_key(self, prompt: str) -> str:
        """Generate cache key for an explanation prompt"""
        prompt_hash = hashlib.sha256(prompt.strip().encode()).hexdigest()[:16]
        return f"{self.CACHE_KEY_PREFIX}:{prompt_hash}"
    
    def _generate_stats_key(self, metric: str) -> str:
        """Generate cache key for statistics"""
        return f"{self.STATS_KEY_PREFIX}:{metric}"
    
    async def get_cached_explanation(self, prompt: str) -> Optional[str]:
        """
        Retrieve a cached explanation
        
        Args:
            prompt: Prompt the explanation was generated for
            
        Returns:
            Explanation text if found in cache, None otherwise
        """
        if not self._redis:
            return None
            
        try:
            cache_key = self._generate_cache_key(prompt)
            cached_text = await self._redis.get(cache_key)
            
            await self._update_access_stats("hits" if cached_text else "misses")
            
            if cached_text:
                logger.debug(f"Cache hit for prompt: {prompt[:50]}...")
                return cached_text
            
            logger.debug(f"Cache miss for prompt: {prompt[:50]}...")
            return None
            
        except Exception as e:
            logger.error(f"Error retrieving from cache: {str(e)}")
            return None
    
    async def cache_explanation(
        self,
        prompt: str,
        explanation: str,
        ttl_hours: Optional[int] = None
    ) -> bool:
        """
        Cache an explanation
        
        Args:
            prompt: Prompt the explanation was generated for
            explanation: Explanation text
            ttl_hours: Custom TTL in hours, uses default if None
            
        Returns:
            True if successfully cached, False otherwise
        """
        if not self._redis:
            return False
            
        try:
            cache_key = self._generate_cache_key(prompt)
            ttl = timedelta(hours=ttl_hours or self.DEFAULT_TTL_HOURS)
            await self._redis.setex(cache_key, ttl, explanation)
            logger.debug(f"Cached explanation for prompt: {prompt[:50]}...")
            return True
            
        except Exception as e:
            logger.error(f"Error caching explanation: {str(e)}")
            return False
    
    async def invalidate_cache_by_pattern(self, pattern: str) -> int:
        """
        Invalidate cache entries matching pattern
        
        Args:
            pattern: Redis key pattern (supports wildcards)
            
        Returns:
            Number of keys deleted
        """
        if not self._redis:
            return 0
            
        try:
            keys = await self._redis.keys(pattern)
            
            if keys:
                deleted_count = await self._redis.delete(*keys)
                logger.info(f"Invalidated {deleted_count} cache entries matching pattern: {pattern}")
                return deleted_count
            
            return 0
            
        except Exception as e:
            logger.error(f"Error invalidating cache: {str(e)}")
            return 0
    
    async def get_cache_statistics(self) -> Dict[str, Any]:
        """Get cache statistics"""
        if not self._redis:
            return {"error": "Redis not available"}
        
        try:
            cache_keys = await self._redis.keys(f"{self.CACHE_KEY_PREFIX}:*")
            
            hit_count = await self._redis.get(self._generate_stats_key("hits")) or "0"
            miss_count = await self._redis.get(self._generate_stats_key("misses")) or "0"
            
            total_requests = int(hit_count) + int(miss_count)
            hit_ratio = (int(hit_count) / total_requests * 100) if total_requests > 0 else 0
            
            return {
                "redis_status": "connected",
                "total_cache_entries": len(cache_keys),
                "cache_hits": int(hit_count),
                "cache_misses": int(miss_count),
                "hit_ratio_percent": round(hit_ratio, 2),
            }
            
        except Exception as e:
            logger.error(f"Error getting cache statistics: {str(e)}")
            return {"error": str(e)}
    
    async def _update_access_stats(self, metric: str):
        """Update hit/miss counters for cache monitoring"""
        try:
            stats_key = self._generate_stats_key(metric)
            await self._redis.incr(stats_key)
            await self._redis.expire(stats_key, timedelta(days=self.STATS_TTL_DAYS))
        except Exception as e:
            logger.error(f"Error updating access stats: {str(e)}")
    
    async def is_available(self) -> bool:
        """Check if Redis cache is available"""
        if not self._redis:
            return False
            
        try:
            await self._redis.ping()
            return True
        except Exception:
            return False
    
    async def clear_all_cache(self) -> int:
        """Clear all explanation cache entries"""
        return await self.invalidate_cache_by_pattern(f"{self.CACHE_KEY_PREFIX}:*")


# Fallback mechanism when Redis is unavailable or disabled
class NoOpCacheService:
    """No-operation cache service for fallback when Redis is unavailable"""
    
    async def initialize(self) -> bool:
        return False
    
    async def close(self):
        pass
    
    async def get_cached_explanation(self, prompt: str) -> Optional[str]:
        return None
    
    async def cache_explanation(self, prompt: str, explanation: str, ttl_hours: Optional[int] = None) -> bool:
        return False
    
    async def invalidate_cache_by_pattern(self, pattern: str) -> int:
        return 0
    
    async def get_cache_statistics(self) -> Dict[str, Any]:
        return {"error": "Cache not available"}
    
    async def is_available(self) -> bool:
        return False
    
    async def clear_all_cache(self) -> int:
        return 0


# Create singleton instances
cache_service = CacheService()
noop_cache_service = NoOpCacheService()

RECONNECT_INTERVAL_SECONDS = 60
_last_connect_attempt: Optional[float] = None


async def get_cache_service() -> Union[CacheService, NoOpCacheService]:
    """
    Get cache service instance for dependency injection
    
    Falls back to the no-op cache when caching is disabled or Redis is down.
    Reconnection is attempted at most once per RECONNECT_INTERVAL_SECONDS.
    """
    global _last_connect_attempt
    
    if not settings.EXPLANATION_CACHE_ENABLED:
        return noop_cache_service
    
    if await cache_service.is_available():
        return cache_service
    
    now = time.monotonic()
    if _last_connect_attempt is not None and now - _last_connect_attempt < RECONNECT_INTERVAL_SECONDS:
        return noop_cache_service
    
    _last_connect_attempt = now
    if await cache_service.initialize():
        return cache_service
    return noop_cache_service
