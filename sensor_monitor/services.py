"""
服务装配

按配置创建 Redis 后端、日志存储、聚合引擎、缓存和采集编排器，
并管理后端连接的生命周期。
"""

import logging
from typing import Optional

from .aggregator import AggregationEngine
from .backend import RedisBackend
from .cache import SnapshotCache
from .collector import CollectionOrchestrator
from .collectors import build_collector
from .config import AppConfig
from .storage import ChannelLogStore, UploadStore

logger = logging.getLogger(__name__)


class SensorServices:
    """进程内所有组件的容器"""

    def __init__(self, config: AppConfig, backend: Optional[RedisBackend] = None):
        self.config = config
        self.backend = backend or RedisBackend(config.redis)

        sampling = config.sampling
        self.log_store = ChannelLogStore(self.backend, sampling.retention_days, sampling.sample_interval)
        self.uploads = UploadStore(self.backend, config.upload.key_prefix)
        self.engine = AggregationEngine(
            self.log_store,
            config.channels,
            sampling.log_key_prefix,
            sampling.carry_forward_steps,
        )
        self.cache = SnapshotCache(self.backend, self.engine, config.cache.key, config.cache.ttl)

        collectors = [
            build_collector(source, self.uploads, config.collector.timeout)
            for source in config.sources
            if source.enabled
        ]
        self.orchestrator = CollectionOrchestrator(
            collectors,
            self.log_store,
            config.log_key,
            config.trim_interval,
        )

    async def start(self):
        """连接后端"""
        await self.backend.connect()
        logger.info(
            f"Services ready: {len(self.orchestrator.collectors)} sources, "
            f"{len(self.config.channels)} channels"
        )

    async def stop(self):
        """关闭后端连接"""
        await self.backend.close()
