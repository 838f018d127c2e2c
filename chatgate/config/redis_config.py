"""
Redis Configuration Module
Handles the Redis connection backing the usage store.
"""

import logging
import os
import threading

import redis
from redis.connection import ConnectionPool

logger = logging.getLogger(__name__)


class RedisConfig:
    """Redis configuration and connection management"""

    def __init__(self):
        # REDIS_URL (full connection string) wins over the individual host/port settings
        self.redis_url = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
        self.redis_password = os.environ.get("REDIS_PASSWORD")
        self.redis_host = os.environ.get("REDIS_HOST", "localhost")
        self.redis_port = int(os.environ.get("REDIS_PORT", "6379"))
        self.redis_db = int(os.environ.get("REDIS_DB", "0"))
        self.redis_max_connections = int(os.environ.get("REDIS_MAX_CONNECTIONS", "50"))
        self.redis_socket_timeout = int(os.environ.get("REDIS_SOCKET_TIMEOUT", "5"))
        self.redis_socket_connect_timeout = int(os.environ.get("REDIS_SOCKET_CONNECT_TIMEOUT", "3"))
        self.redis_retry_on_timeout = (
            os.environ.get("REDIS_RETRY_ON_TIMEOUT", "true").lower() == "true"
        )

        self._client: redis.Redis | None = None
        self._pool: ConnectionPool | None = None

    def get_connection_pool(self) -> ConnectionPool:
        """Get Redis connection pool"""
        if self._pool is None:
            if self.redis_url and "://" in self.redis_url:
                connection_kwargs = {
                    "max_connections": self.redis_max_connections,
                    "socket_timeout": self.redis_socket_timeout,
                    "socket_connect_timeout": self.redis_socket_connect_timeout,
                    "retry_on_timeout": self.redis_retry_on_timeout,
                    "decode_responses": True,
                }
                self._pool = ConnectionPool.from_url(self.redis_url, **connection_kwargs)
            else:
                self._pool = ConnectionPool(
                    host=self.redis_host,
                    port=self.redis_port,
                    db=self.redis_db,
                    password=self.redis_password,
                    max_connections=self.redis_max_connections,
                    socket_timeout=self.redis_socket_timeout,
                    socket_connect_timeout=self.redis_socket_connect_timeout,
                    retry_on_timeout=self.redis_retry_on_timeout,
                    decode_responses=True,
                )
        return self._pool

    def get_client(self) -> redis.Redis:
        """
        Get Redis client instance.

        The client connects lazily. Unlike a cache, the usage store has no
        fallback, so connection errors surface on first use instead of being
        hidden here.
        """
        if self._client is None:
            self._client = redis.Redis(connection_pool=self.get_connection_pool())
            logger.info("Redis client created for usage store")
        return self._client


# Global Redis configuration instance
_redis_config = None
_redis_config_lock = threading.Lock()


def get_redis_config() -> RedisConfig:
    """Get global Redis configuration instance (thread-safe singleton).

    Uses double-checked locking so that the common case (instance already
    created) never acquires the lock.
    """
    global _redis_config
    if _redis_config is None:
        with _redis_config_lock:
            if _redis_config is None:
                _redis_config = RedisConfig()
    return _redis_config


def get_redis_client() -> redis.Redis:
    """Get Redis client instance"""
    config = get_redis_config()
    return config.get_client()
