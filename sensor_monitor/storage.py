"""
Redis 存储层

- ChannelLogStore：每个数据源一条追加日志（Redis list），写入时按保留窗口裁剪
- UploadStore：设备主动上报的最新一条数据（只保留最新值）
"""

import json
import logging
from typing import Any, Dict, List, Optional

from redis.exceptions import RedisError

from .backend import RedisBackend
from .exceptions import BackendUnavailable
from .models import Reading

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class ChannelLogStore:
    """按通道保存原始读数的追加日志"""

    def __init__(self, backend: RedisBackend, retention_days: int, default_interval: int):
        """
        Args:
            backend: Redis 后端
            retention_days: 聚合窗口天数
            default_interval: 未指定间隔时使用的采样间隔（秒）
        """
        self.backend = backend
        self.retention_days = retention_days
        self.default_interval = default_interval

    def retention_samples(self, sample_interval: Optional[int] = None) -> int:
        """保留窗口内的采样点数"""
        interval = sample_interval or self.default_interval
        return self.retention_days * SECONDS_PER_DAY // interval

    async def append(self, log_key: str, reading: Reading, sample_interval: Optional[int] = None):
        """
        追加一条读数并裁剪日志

        日志保留 2 倍窗口的数据量，用于吸收重采样回看和乱序到达。

        Raises:
            BackendUnavailable: Redis 不可用
        """
        payload = json.dumps(reading.to_record())
        keep = 2 * self.retention_samples(sample_interval)
        client = self.backend.client
        try:
            await client.rpush(log_key, payload)
            await client.ltrim(log_key, -keep, -1)
        except RedisError as e:
            logger.error(f"Failed to append to {log_key}: {e}")
            raise BackendUnavailable(f"append to {log_key} failed: {e}") from e
        logger.debug(f"Appended to {log_key}: {payload}")

    async def read_window(self, log_key: str, retention_samples: int) -> List[str]:
        """
        读取最近 retention_samples 条原始记录（从旧到新）

        日志不足时返回已有的全部记录，可能为空。

        Raises:
            BackendUnavailable: Redis 不可用
        """
        if retention_samples <= 0:
            return []
        try:
            return await self.backend.client.lrange(log_key, -retention_samples, -1)
        except RedisError as e:
            logger.error(f"Failed to read {log_key}: {e}")
            raise BackendUnavailable(f"read of {log_key} failed: {e}") from e


class UploadStore:
    """设备上报的最新数据，每个 chip 一个 key"""

    def __init__(self, backend: RedisBackend, key_prefix: str):
        self.backend = backend
        self.key_prefix = key_prefix

    def key(self, chip: str) -> str:
        return self.key_prefix + chip

    async def save(self, chip: str, payload: Dict[str, Any]):
        """覆盖保存最新上报数据（无过期时间）"""
        try:
            await self.backend.client.set(self.key(chip), json.dumps(payload))
        except RedisError as e:
            raise BackendUnavailable(f"upload save for {chip} failed: {e}") from e

    async def latest(self, chip: str) -> Optional[Dict[str, Any]]:
        """
        获取最新上报数据

        Returns:
            上报内容；没有数据或内容损坏时返回 None
        """
        try:
            raw = await self.backend.client.get(self.key(chip))
        except RedisError as e:
            raise BackendUnavailable(f"upload read for {chip} failed: {e}") from e

        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding unreadable upload for {chip}")
            return None
        return data if isinstance(data, dict) else None
