"""
聚合结果缓存

整份聚合结果序列化后存入 Redis 的一个 key，带 TTL。
/api/collect 采集完成后强制重算覆盖。
"""

import json
import logging
from typing import Any, Dict, List

from redis.exceptions import RedisError

from .aggregator import AggregationEngine, serialize_snapshot
from .backend import RedisBackend
from .exceptions import BackendUnavailable

logger = logging.getLogger(__name__)


class SnapshotCache:
    """聚合快照缓存"""

    def __init__(self, backend: RedisBackend, engine: AggregationEngine, key: str, ttl: int = 800):
        """
        Args:
            backend: Redis 后端
            engine: 聚合引擎（缓存未命中时调用）
            key: 缓存 key
            ttl: 过期时间（秒）
        """
        self.backend = backend
        self.engine = engine
        self.key = key
        self.ttl = ttl

    async def get_or_compute(self) -> str:
        """
        读取缓存，未命中或已过期时重算

        Raises:
            BackendUnavailable: Redis 不可用
        """
        try:
            cached = await self.backend.client.get(self.key)
        except RedisError as e:
            raise BackendUnavailable(f"cache read failed: {e}") from e

        if cached is not None:
            logger.debug(f"Cache hit: {self.key}")
            return cached

        logger.debug(f"Cache miss: {self.key}")
        return await self.force_recompute()

    async def force_recompute(self) -> str:
        """跳过缓存读取，重算并覆盖缓存"""
        aggregates = await self.engine.compute()
        snapshot = serialize_snapshot(aggregates)
        try:
            await self.backend.client.set(self.key, snapshot, ex=self.ttl)
        except RedisError as e:
            raise BackendUnavailable(f"cache write failed: {e}") from e
        logger.info(f"Snapshot recomputed: {len(aggregates)} channels")
        return snapshot


def truncate_snapshot(snapshot: str, limit: int) -> List[Dict[str, Any]]:
    """
    截取每个通道最近 limit 个点

    只处理已序列化的快照，不访问日志。

    Args:
        snapshot: 序列化的聚合结果
        limit: 每个通道保留的点数（>= 0）

    Returns:
        新的通道列表（浅拷贝）
    """
    if limit < 0:
        raise ValueError("limit must be >= 0")

    result = []
    for item in json.loads(snapshot):
        item = dict(item)
        series = item.get("series") or []
        # limit 为 0 时 series[-0:] 会返回整个列表
        item["series"] = series[len(series) - limit:] if len(series) > limit else list(series)
        result.append(item)
    return result
