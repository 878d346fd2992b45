"""
Redis 后端连接

显式创建、显式关闭的 redis.asyncio 客户端，注入到日志存储和缓存中。
"""

import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from .config import RedisConfig
from .exceptions import BackendUnavailable

logger = logging.getLogger(__name__)


class RedisBackend:
    """Redis 连接生命周期管理"""

    def __init__(self, config: RedisConfig, client: Optional[Redis] = None):
        """
        Args:
            config: Redis 连接配置
            client: 已创建的客户端（测试时注入）
        """
        self.config = config
        self._client = client

    async def connect(self) -> Redis:
        """
        建立连接并 PING 一次

        Raises:
            BackendUnavailable: 连接失败时抛出
        """
        if self._client is not None:
            return self._client

        client = aioredis.Redis(
            host=self.config.host,
            port=self.config.port,
            db=self.config.db,
            password=self.config.password,
            socket_timeout=self.config.socket_timeout,
            socket_connect_timeout=self.config.socket_connect_timeout,
            decode_responses=True,
        )
        # 连接池在每次命令时自动重连，PING 失败也保留客户端
        self._client = client
        try:
            await client.ping()
        except RedisError as e:
            logger.error(f"Failed to connect to Redis at {self.config.host}:{self.config.port}: {e}")
            raise BackendUnavailable(f"Redis connection failed: {e}") from e

        logger.info(f"Connected to Redis at {self.config.host}:{self.config.port}/{self.config.db}")
        return client

    async def close(self):
        """关闭连接"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")

    @property
    def client(self) -> Redis:
        if self._client is None:
            raise BackendUnavailable("Redis client not connected. Call connect() first.")
        return self._client

    async def ping(self) -> bool:
        """健康检查"""
        try:
            return bool(await self.client.ping())
        except (RedisError, BackendUnavailable) as e:
            logger.warning(f"Redis ping failed: {e}")
            return False
